from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from kanban_access.db.base import Base, utcnow


class BoardColumn(Base):
    """Модель колонки/списка для канбан-системы"""

    __tablename__ = "columns"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    # Разреженная позиция; порядок при чтении: (position, id)
    position = Column(Integer, nullable=False, default=1)
    board_id = Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
