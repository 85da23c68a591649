from sqlalchemy import Column, String, DateTime

from kanban_access.db.base import Base, utcnow


class User(Base):
    """Профиль пользователя, синхронизированный с провайдером идентификации"""

    __tablename__ = "users"

    # Идентификатор выдаётся внешним провайдером и уже проверен
    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
