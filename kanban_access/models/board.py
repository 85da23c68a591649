from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from kanban_access.db.base import Base, utcnow


class Board(Base):
    """Модель доски для канбан-системы"""

    __tablename__ = "boards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    # Мягкое удаление
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Владение доской выражено ролью owner в board_members, а не отдельным полем
    memberships = relationship("BoardMembership", back_populates="board", passive_deletes=True)
