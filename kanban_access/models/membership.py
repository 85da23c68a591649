from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from kanban_access.core.roles import BoardRole
from kanban_access.db.base import Base, utcnow


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class BoardMembership(Base):
    """Участник доски с ролью; одна строка на пару (доска, пользователь)"""

    __tablename__ = "board_members"

    board_id = Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    role = Column(
        Enum(BoardRole, name="board_role", values_callable=_enum_values),
        nullable=False,
        default=BoardRole.MEMBER,
        index=True,
    )
    # Дата вступления на доску
    created_at = Column(DateTime, default=utcnow, nullable=False)

    board = relationship("Board", back_populates="memberships")
    user = relationship("User")

    def __repr__(self):
        return f"<BoardMembership board={self.board_id} user={self.user_id} role={self.role.value}>"
