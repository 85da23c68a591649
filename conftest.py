import os
import itertools

# Настройки должны быть заданы до импорта пакета
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["DEBUG"] = "false"

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from kanban_access.core.exceptions import NotificationDeliveryError
from kanban_access.core.roles import BoardRole
from kanban_access.db.models import Base
from kanban_access.models.user import User
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.services.board_service import BoardService
from kanban_access.services.membership_service import MembershipService
from kanban_access.services.notification_service import NotificationSender


class FakeNotifier(NotificationSender):
    """Records outgoing messages instead of sending them"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, to_email, template_kind, payload):
        if self.fail:
            raise NotificationDeliveryError()
        self.sent.append((to_email, template_kind, payload))


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    # pysqlite сам управляет транзакциями и ломает SAVEPOINT; берём управление на себя
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    async def _make_user(email=None, name=None, user_id=None):
        n = next(counter)
        user = User(
            id=user_id or f"user-{n}",
            email=email or f"user{n}@example.com",
            name=name or f"User {n}",
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
def make_board(db_session):
    async def _make_board(owner, name="Test Board"):
        return await BoardService.create(db_session, owner.id, name)

    return _make_board


@pytest.fixture
def add_member(db_session):
    async def _add_member(board, user, role=BoardRole.MEMBER):
        return await MembershipService.create(db_session, board.id, user.id, role)

    return _add_member


def context_for(user, board, role=BoardRole.OWNER) -> AuthorizedContext:
    """Context as the guard would issue it"""
    return AuthorizedContext(user_id=user.id, board_id=board.id, role=role)


@pytest.fixture
def make_context():
    return context_for
