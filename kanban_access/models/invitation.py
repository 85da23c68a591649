import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index

from kanban_access.core.roles import BoardRole
from kanban_access.db.base import Base, utcnow


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class Invitation(Base):
    """Приглашение на доску.

    Статус не хранится в таблице: он вычисляется из accepted_at и expires_at,
    поэтому не может разойтись с временными метками.
    """

    __tablename__ = "user_invitations"

    id = Column(Integer, primary_key=True, index=True)
    board_id = Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    # Email хранится в нижнем регистре
    email = Column(String(255), nullable=False, index=True)
    role = Column(
        Enum(BoardRole, name="invitation_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    invited_by = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(255), nullable=False, unique=True, index=True)
    # Время последней отправки (обновляется при повторной отправке)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_user_invitations_board_email", "board_id", "email"),
    )

    def status_at(self, now: Optional[datetime] = None) -> InvitationStatus:
        if self.accepted_at is not None:
            return InvitationStatus.ACCEPTED
        if (now or utcnow()) > self.expires_at:
            return InvitationStatus.EXPIRED
        return InvitationStatus.PENDING

    @property
    def status(self) -> InvitationStatus:
        return self.status_at()
