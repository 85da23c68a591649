import pytest
from pydantic import ValidationError

from kanban_access.core.roles import BoardRole
from kanban_access.models.invitation import InvitationStatus
from kanban_access.schemas.board import BoardCompleteResponse, BoardResponse, BoardWithRole
from kanban_access.schemas.card import CardCreate, CardPositionUpdate, CardResponse
from kanban_access.schemas.column import ColumnPositionUpdate, ColumnResponse
from kanban_access.schemas.invitation import InvitationResponse, InviteUserRequest
from kanban_access.schemas.membership import MemberListQuery, MembershipResponse
from kanban_access.services.board_service import BoardService
from kanban_access.services.card_service import CardService
from kanban_access.services.column_service import ColumnService
from kanban_access.services.invitation_service import InvitationService
from kanban_access.services.membership_service import MembershipService


class TestRequestSchemas:
    """Тесты валидации входных схем"""

    def test_invite_defaults_to_member(self):
        request = InviteUserRequest(email="someone@example.com")

        assert request.role == BoardRole.MEMBER

    def test_invite_owner_rejected(self):
        with pytest.raises(ValidationError):
            InviteUserRequest(email="someone@example.com", role="owner")

    def test_invite_bad_email(self):
        with pytest.raises(ValidationError):
            InviteUserRequest(email="not-an-email")

    def test_positions_start_at_one(self):
        with pytest.raises(ValidationError):
            ColumnPositionUpdate(id=1, position=0)
        with pytest.raises(ValidationError):
            CardPositionUpdate(id=1, column_id=1, position=0)

    def test_card_title_required(self):
        with pytest.raises(ValidationError):
            CardCreate(title="", column_id=1)

    def test_empty_due_date(self):
        assert CardCreate(title="A", column_id=1, due_date=None).due_date is None

    def test_member_query_limits(self):
        with pytest.raises(ValidationError):
            MemberListQuery(limit=101)
        with pytest.raises(ValidationError):
            MemberListQuery(sort_by="password")


class TestResponseSchemas:
    """Ответные схемы строятся из ORM-объектов"""

    @pytest.mark.asyncio
    async def test_board_with_columns(self, db_session, make_user, make_board, make_context):
        owner = await make_user()
        board = await make_board(owner, "Release")
        context = make_context(owner, board)
        await ColumnService.create(db_session, context, "Done", position=2)
        await ColumnService.create(db_session, context, "To Do", position=1)

        columns = await ColumnService.get_by_board_id(db_session, board.id)
        response = BoardCompleteResponse(
            **BoardResponse.model_validate(board).model_dump(),
            columns=[ColumnResponse.model_validate(c) for c in columns],
        )

        assert response.name == "Release"
        assert [c.title for c in response.columns] == ["To Do", "Done"]

    @pytest.mark.asyncio
    async def test_boards_with_role(self, db_session, make_user, make_board):
        owner = await make_user()
        await make_board(owner, "Mine")

        items = [
            BoardWithRole(**BoardResponse.model_validate(board).model_dump(), role=role)
            for board, role in await BoardService.get_boards_by_user(db_session, owner.id)
        ]

        assert [(i.name, i.role) for i in items] == [("Mine", BoardRole.OWNER)]

    @pytest.mark.asyncio
    async def test_card_and_membership(self, db_session, make_user, make_board, make_context):
        owner = await make_user()
        board = await make_board(owner)
        context = make_context(owner, board)
        column = await ColumnService.create(db_session, context, "To Do")
        card = await CardService.create(db_session, context, CardCreate(title="Task", column_id=column.id))

        card_response = CardResponse.model_validate(card)
        membership = MembershipResponse.model_validate(await MembershipService.get(db_session, owner.id, board.id))

        assert card_response.column_id == column.id
        assert card_response.priority.value == "medium"
        assert membership.role == BoardRole.OWNER

    @pytest.mark.asyncio
    async def test_invitation_status_is_derived(self, db_session, make_user, make_board, make_context, notifier):
        owner = await make_user()
        board = await make_board(owner)
        invitation = await InvitationService.invite(
            db_session, make_context(owner, board), "guest@example.com", BoardRole.VIEWER, notifier
        )

        response = InvitationResponse.model_validate(invitation)

        assert response.status == InvitationStatus.PENDING
        assert "token" not in response.model_dump()
