import pytest
from sqlalchemy import select, func

from kanban_access.core.exceptions import NotFound
from kanban_access.core.roles import BoardRole
from kanban_access.models.audit_log import AuditLog
from kanban_access.models.board import Board
from kanban_access.models.card import Card
from kanban_access.models.column import BoardColumn
from kanban_access.models.invitation import Invitation
from kanban_access.models.membership import BoardMembership
from kanban_access.schemas.card import CardCreate
from kanban_access.services.board_service import BoardService
from kanban_access.services.card_service import CardService
from kanban_access.services.column_service import ColumnService
from kanban_access.services.invitation_service import InvitationService
from kanban_access.services.membership_service import MembershipService


async def _count(db, model, *where):
    return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar()


class TestBoardLifecycle:
    """Тесты жизненного цикла доски"""

    @pytest.mark.asyncio
    async def test_create_makes_creator_owner(self, db_session, make_user):
        user = await make_user()

        board = await BoardService.create(db_session, user.id, "Roadmap")

        assert board.name == "Roadmap"
        assert board.is_archived is False
        assert await MembershipService.get_role(db_session, user.id, board.id) == BoardRole.OWNER

    @pytest.mark.asyncio
    async def test_rename_and_archive(self, db_session, make_user, make_board, make_context):
        owner = await make_user()
        board = await make_board(owner)
        context = make_context(owner, board)

        await BoardService.rename(db_session, context, "Renamed")
        await BoardService.archive(db_session, context)

        assert board.name == "Renamed"
        assert board.is_archived is True
        assert await BoardService.get_boards_by_user(db_session, owner.id) == []

        await BoardService.archive(db_session, context, archived=False)
        boards = await BoardService.get_boards_by_user(db_session, owner.id)
        assert boards == [(board, BoardRole.OWNER)]

    @pytest.mark.asyncio
    async def test_boards_of_user_with_roles(self, db_session, make_user, make_board, add_member):
        owner = await make_user()
        user = await make_user()
        own = await make_board(user, "Own")
        shared = await make_board(owner, "Shared")
        await add_member(shared, user, BoardRole.VIEWER)

        boards = dict((board.name, role) for board, role in await BoardService.get_boards_by_user(db_session, user.id))

        assert boards == {"Own": BoardRole.OWNER, "Shared": BoardRole.VIEWER}
        assert own.id != shared.id

    @pytest.mark.asyncio
    async def test_delete_removes_everything_scoped_to_board(
        self, db_session, make_user, make_board, add_member, make_context, notifier
    ):
        """Удаление доски удаляет участников, колонки, карточки, приглашения и аудит"""
        owner = await make_user()
        member = await make_user()
        board = await make_board(owner)
        keep = await make_board(owner, "Keep")
        await add_member(board, member)
        context = make_context(owner, board)
        column = await ColumnService.create(db_session, context, "To Do")
        await CardService.create(db_session, context, CardCreate(title="Task", column_id=column.id))
        await InvitationService.invite(db_session, context, "guest@example.com", BoardRole.VIEWER, notifier)
        board_id = board.id

        await BoardService.delete(db_session, context)

        assert await BoardService.get_by_id(db_session, board_id) is None
        assert await _count(db_session, BoardMembership, BoardMembership.board_id == board_id) == 0
        assert await _count(db_session, BoardColumn, BoardColumn.board_id == board_id) == 0
        assert await _count(db_session, Card, Card.board_id == board_id) == 0
        assert await _count(db_session, Invitation, Invitation.board_id == board_id) == 0
        assert await _count(db_session, AuditLog, AuditLog.board_id == board_id) == 0
        assert await _count(db_session, Board) == 1
        assert await MembershipService.get_role(db_session, owner.id, keep.id) == BoardRole.OWNER

    @pytest.mark.asyncio
    async def test_missing_board(self, db_session, make_user, make_context):
        owner = await make_user()
        ghost = Board(id=404, name="Ghost")

        with pytest.raises(NotFound):
            await BoardService.rename(db_session, make_context(owner, ghost), "Nope")
