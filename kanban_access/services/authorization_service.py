from sqlalchemy.ext.asyncio import AsyncSession

from kanban_access.core.exceptions import Forbidden, Unauthorized
from kanban_access.core.roles import BoardRole, parse_role, role_at_least
from kanban_access.logs import debug_logger
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.services.membership_service import MembershipService


class AuthorizationGuard:
    """The only place where board privilege is decided"""

    @staticmethod
    async def require_role(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        minimum_role: BoardRole
    ) -> AuthorizedContext:
        """
        Check that a user holds at least ``minimum_role`` on a board

        Args:
            db: Database session
            user_id: Verified user id supplied by the identity provider
            board_id: Board ID
            minimum_role: Lowest role allowed to perform the operation

        Returns:
            AuthorizedContext to be passed to the board mutators

        Raises:
            Unauthorized: The user is not a member of the board
            Forbidden: The user's role is below ``minimum_role``
        """
        minimum_role = parse_role(minimum_role)
        role = await MembershipService.get_role(db, user_id, board_id)

        if role is None:
            debug_logger.warning(f"Пользователь {user_id} не участник доски {board_id}")
            raise Unauthorized()

        if not role_at_least(role, minimum_role):
            debug_logger.warning(
                f"Недостаточно прав у {user_id} на доске {board_id}: {role.value} < {minimum_role.value}"
            )
            raise Forbidden(f"Operation not allowed with your role: {role.value}")

        return AuthorizedContext(user_id=user_id, board_id=board_id, role=role)
