from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_access.api.dependencies.auth import get_current_user_id
from kanban_access.core.roles import BoardRole, parse_role
from kanban_access.db.database import get_async_session
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.services.authorization_service import AuthorizationGuard


def require_board_role(minimum_role: BoardRole):
    """
    Build a dependency that authorizes the current user on ``board_id``

    Args:
        minimum_role: Lowest role allowed to call the route

    Returns:
        Dependency resolving to an AuthorizedContext; Unauthorized and
        Forbidden are turned into responses by the exception handlers
    """
    minimum_role = parse_role(minimum_role)

    async def check_board_role(
        board_id: int,
        user_id: str = Depends(get_current_user_id),
        db: AsyncSession = Depends(get_async_session)
    ) -> AuthorizedContext:
        return await AuthorizationGuard.require_role(db, user_id, board_id, minimum_role)

    return check_board_role
