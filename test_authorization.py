import pytest
from unittest.mock import AsyncMock, patch
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_access.core.exceptions import Forbidden, Unauthorized
from kanban_access.core.roles import BoardRole
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.services.authorization_service import AuthorizationGuard


class TestRequireRoleDispatch:
    """Тесты решения о доступе без базы данных"""

    @pytest.fixture
    def mock_db(self):
        return AsyncMock(spec=AsyncSession)

    @pytest.mark.asyncio
    async def test_non_member_unauthorized(self, mock_db):
        """Пользователь без членства получает Unauthorized"""
        with patch(
            'kanban_access.services.authorization_service.MembershipService.get_role',
            AsyncMock(return_value=None)
        ):
            with pytest.raises(Unauthorized):
                await AuthorizationGuard.require_role(mock_db, "u1", 1, BoardRole.VIEWER)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role, minimum", [
        (BoardRole.VIEWER, BoardRole.MEMBER),
        (BoardRole.MEMBER, BoardRole.ADMIN),
        (BoardRole.ADMIN, BoardRole.OWNER),
    ])
    async def test_insufficient_role_forbidden(self, mock_db, role, minimum):
        with patch(
            'kanban_access.services.authorization_service.MembershipService.get_role',
            AsyncMock(return_value=role)
        ):
            with pytest.raises(Forbidden):
                await AuthorizationGuard.require_role(mock_db, "u1", 1, minimum)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", list(BoardRole))
    async def test_viewer_minimum_allows_everyone(self, mock_db, role):
        with patch(
            'kanban_access.services.authorization_service.MembershipService.get_role',
            AsyncMock(return_value=role)
        ):
            context = await AuthorizationGuard.require_role(mock_db, "u1", 5, BoardRole.VIEWER)

        assert context == AuthorizedContext(user_id="u1", board_id=5, role=role)

    @pytest.mark.asyncio
    async def test_minimum_as_string(self, mock_db):
        with patch(
            'kanban_access.services.authorization_service.MembershipService.get_role',
            AsyncMock(return_value=BoardRole.ADMIN)
        ):
            context = await AuthorizationGuard.require_role(mock_db, "u1", 1, "admin")

        assert context.role == BoardRole.ADMIN


class TestRequireRoleWithDatabase:
    """Тесты проверки доступа на реальных данных"""

    @pytest.mark.asyncio
    async def test_owner_context(self, db_session, make_user, make_board):
        owner = await make_user()
        board = await make_board(owner)

        context = await AuthorizationGuard.require_role(db_session, owner.id, board.id, BoardRole.ADMIN)

        assert context.user_id == owner.id
        assert context.board_id == board.id
        assert context.role == BoardRole.OWNER

    @pytest.mark.asyncio
    async def test_member_of_other_board(self, db_session, make_user, make_board):
        """Членство на одной доске не даёт доступа к другой"""
        owner = await make_user()
        other_owner = await make_user()
        await make_board(owner)
        other_board = await make_board(other_owner)

        with pytest.raises(Unauthorized):
            await AuthorizationGuard.require_role(db_session, owner.id, other_board.id, BoardRole.VIEWER)

    @pytest.mark.asyncio
    async def test_context_is_immutable(self, db_session, make_user, make_board):
        owner = await make_user()
        board = await make_board(owner)
        context = await AuthorizationGuard.require_role(db_session, owner.id, board.id, BoardRole.VIEWER)

        with pytest.raises(ValidationError):
            context.board_id = board.id + 1
