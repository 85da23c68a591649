import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, Text, Index

from kanban_access.db.base import Base, utcnow


class AuditAction(str, enum.Enum):
    INVITE_USER = "invite_user"
    UPDATE_USER = "update_user"
    REMOVE_USER = "remove_user"
    RESET_PASSWORD = "reset_password"
    UPDATE_ROLE = "update_role"
    INVITATION_CANCELLED = "invitation_cancelled"
    INVITATION_RESENT = "invitation_resent"


class AuditSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditCategory(str, enum.Enum):
    USER_MANAGEMENT = "user_management"
    SECURITY = "security"
    SYSTEM = "system"
    DATA_ACCESS = "data_access"


class AuditLog(Base):
    """Журнал действий администраторов. Только добавление записей."""

    __tablename__ = "admin_audit_log"

    id = Column(Integer, primary_key=True, index=True)
    admin_user_id = Column(String(64), nullable=False, index=True)
    target_user_id = Column(String(64), nullable=True, index=True)
    board_id = Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=True)
    action = Column(
        Enum(AuditAction, name="audit_action", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=False, default="unknown")
    user_agent = Column(Text, nullable=False, default="unknown")
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("idx_admin_audit_board_created", "board_id", "created_at"),
    )
