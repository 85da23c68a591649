from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from kanban_access.logs import debug_logger
from kanban_access.models.user import User


class UserService:
    """Local mirror of identity-provider profiles"""

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
        """Get user by id"""
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)"""
        query = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def ensure_profile(
        db: AsyncSession,
        user_id: str,
        email: str,
        name: Optional[str] = None
    ) -> User:
        """Create or refresh the profile of a user verified by the identity provider"""
        email = email.strip().lower()
        user = await UserService.get_by_id(db, user_id)

        if user is None:
            user = User(id=user_id, email=email, name=name)
            db.add(user)
            debug_logger.info(f"Создан профиль пользователя {user_id}")
        else:
            user.email = email
            if name is not None:
                user.name = name

        await db.flush()
        return user
