import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Enum

from kanban_access.db.base import Base, utcnow


class CardPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Card(Base):
    """Модель карточки для канбан-системы"""

    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    # board_id дублируется, чтобы проверять доступ без join через колонку
    board_id = Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    column_id = Column(Integer, ForeignKey("columns.id", ondelete="CASCADE"), nullable=False, index=True)
    assignee_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    due_date = Column(DateTime, nullable=True)
    priority = Column(
        Enum(CardPriority, name="card_priority", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CardPriority.MEDIUM,
    )
    # Позиция внутри колонки
    position = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
