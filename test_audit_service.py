from datetime import timedelta

import pytest
from unittest.mock import patch
from sqlalchemy import select

from kanban_access.core.roles import BoardRole
from kanban_access.db.base import utcnow
from kanban_access.models.audit_log import AuditAction, AuditCategory, AuditLog, AuditSeverity
from kanban_access.schemas.audit_log import AuditLogFilters
from kanban_access.schemas.authorization import RequestMeta
from kanban_access.services.audit_service import AuditService
from kanban_access.services.membership_service import MembershipService


class TestRecord:
    """Тесты записи в журнал аудита"""

    @pytest.mark.asyncio
    async def test_record_adds_severity_and_category(self, db_session, make_user, make_board):
        owner = await make_user()
        board = await make_board(owner)

        entry = await AuditService.record(
            db_session,
            admin_user_id=owner.id,
            action=AuditAction.RESET_PASSWORD,
            board_id=board.id,
            target_user_id="user-9",
            details={"reason": "requested"},
            meta=RequestMeta(ip_address="192.168.1.5", user_agent="Mozilla/5.0"),
            severity=AuditSeverity.HIGH,
            category=AuditCategory.SECURITY,
        )

        assert entry.id is not None
        assert entry.details["reason"] == "requested"
        assert entry.details["severity"] == "high"
        assert entry.details["category"] == "security"
        assert "timestamp" in entry.details
        assert entry.ip_address == "192.168.1.5"

    @pytest.mark.asyncio
    async def test_missing_meta_is_unknown(self, db_session, make_user):
        owner = await make_user()

        entry = await AuditService.record(db_session, admin_user_id=owner.id, action=AuditAction.UPDATE_USER)

        assert entry.ip_address == "unknown"
        assert entry.user_agent == "unknown"
        assert entry.details["severity"] == "medium"
        assert entry.details["category"] == "user_management"

    @pytest.mark.asyncio
    async def test_critical_event_logged(self, db_session, make_user):
        owner = await make_user()

        with patch('kanban_access.services.audit_service.api_logger') as mock_logger:
            await AuditService.record(
                db_session,
                admin_user_id=owner.id,
                action=AuditAction.REMOVE_USER,
                severity=AuditSeverity.CRITICAL,
            )

        mock_logger.critical.assert_called_once()

    @pytest.mark.asyncio
    async def test_failure_is_not_fatal(self, db_session, make_user, make_board, add_member, make_context):
        """Ошибка записи аудита не отменяет уже выполненное действие"""
        owner = await make_user()
        user = await make_user()
        board = await make_board(owner)
        await add_member(board, user, BoardRole.MEMBER)
        await MembershipService.set_role(db_session, make_context(owner, board), user.id, BoardRole.VIEWER)

        with patch('kanban_access.services.audit_service.api_logger') as mock_logger:
            # admin_user_id NOT NULL: вставка падает внутри точки сохранения
            entry = await AuditService.record(db_session, admin_user_id=None, action=AuditAction.UPDATE_ROLE)

        assert entry is None
        mock_logger.error.assert_called_once()

        await db_session.commit()
        assert await MembershipService.get_role(db_session, user.id, board.id) == BoardRole.VIEWER
        actions = (await db_session.execute(select(AuditLog.action))).scalars().all()
        assert actions == [AuditAction.UPDATE_ROLE]


class TestListForBoard:
    """Тесты чтения журнала аудита"""

    @pytest.mark.asyncio
    async def test_newest_first_and_filters(self, db_session, make_user, make_board):
        owner = await make_user()
        board = await make_board(owner)
        other_board = await make_board(owner, "Other")

        await AuditService.record(db_session, owner.id, AuditAction.INVITE_USER, board_id=board.id)
        await AuditService.record(db_session, owner.id, AuditAction.UPDATE_ROLE, board_id=board.id, target_user_id="u2")
        await AuditService.record(db_session, owner.id, AuditAction.REMOVE_USER, board_id=board.id, target_user_id="u3")
        await AuditService.record(db_session, owner.id, AuditAction.INVITE_USER, board_id=other_board.id)

        logs, total = await AuditService.list_for_board(db_session, board.id)
        assert total == 3
        assert [log.action for log in logs] == [
            AuditAction.REMOVE_USER, AuditAction.UPDATE_ROLE, AuditAction.INVITE_USER
        ]

        logs, total = await AuditService.list_for_board(
            db_session, board.id, AuditLogFilters(action=AuditAction.UPDATE_ROLE)
        )
        assert total == 1
        assert logs[0].target_user_id == "u2"

        logs, total = await AuditService.list_for_board(db_session, board.id, AuditLogFilters(target_user_id="u3"))
        assert [log.action for log in logs] == [AuditAction.REMOVE_USER]

    @pytest.mark.asyncio
    async def test_date_range_and_paging(self, db_session, make_user, make_board):
        owner = await make_user()
        board = await make_board(owner)
        for _ in range(5):
            await AuditService.record(db_session, owner.id, AuditAction.UPDATE_USER, board_id=board.id)

        logs, total = await AuditService.list_for_board(db_session, board.id, AuditLogFilters(page=2, limit=2))
        assert total == 5
        assert len(logs) == 2

        future = utcnow() + timedelta(days=1)
        logs, total = await AuditService.list_for_board(db_session, board.id, AuditLogFilters(start_date=future))
        assert total == 0

    def test_no_mutation_api(self):
        """Журнал только дополняется: методов изменения и удаления нет"""
        public = {name for name in dir(AuditService) if not name.startswith('_')}
        assert public == {"record", "list_for_board"}
