from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from kanban_access.core.exceptions import NotFound
from kanban_access.core.roles import BoardRole
from kanban_access.db.base import utcnow
from kanban_access.logs import debug_logger, log_function
from kanban_access.models.audit_log import AuditLog
from kanban_access.models.board import Board
from kanban_access.models.card import Card
from kanban_access.models.column import BoardColumn
from kanban_access.models.invitation import Invitation
from kanban_access.models.membership import BoardMembership
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.services.membership_service import MembershipService


class BoardService:
    """CRUD operations service for Board model"""

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        user_id: str,
        name: str
    ) -> Board:
        """Create a new board; the creator becomes its owner"""
        board = Board(name=name)
        db.add(board)
        await db.flush()

        await MembershipService.create(db, board.id, user_id, BoardRole.OWNER)

        debug_logger.info(f"Создана доска {board.id} '{name}', владелец {user_id}")
        return board

    @staticmethod
    async def get_by_id(db: AsyncSession, board_id: int) -> Optional[Board]:
        result = await db.execute(select(Board).where(Board.id == board_id))
        return result.scalars().first()

    @staticmethod
    async def get_boards_by_user(
        db: AsyncSession,
        user_id: str,
        include_archived: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Tuple[Board, BoardRole]]:
        """Get all boards a user is a member of together with the user's role"""
        query = (
            select(Board, BoardMembership.role)
            .join(BoardMembership, BoardMembership.board_id == Board.id)
            .where(BoardMembership.user_id == user_id)
        )
        if not include_archived:
            query = query.where(Board.is_archived.is_(False))
        query = query.order_by(Board.created_at.desc(), Board.id.desc()).offset(skip).limit(limit)

        result = await db.execute(query)
        return [(board, role) for board, role in result.all()]

    @staticmethod
    async def _get_for_context(db: AsyncSession, context: AuthorizedContext) -> Board:
        board = await BoardService.get_by_id(db, context.board_id)
        if board is None:
            raise NotFound("Board not found")
        return board

    @staticmethod
    async def rename(
        db: AsyncSession,
        context: AuthorizedContext,
        name: str
    ) -> Board:
        board = await BoardService._get_for_context(db, context)
        board.name = name
        board.updated_at = utcnow()
        await db.flush()
        return board

    @staticmethod
    @log_function()
    async def archive(
        db: AsyncSession,
        context: AuthorizedContext,
        archived: bool = True
    ) -> Board:
        """Archive or restore a board (soft delete)"""
        board = await BoardService._get_for_context(db, context)
        board.is_archived = archived
        board.updated_at = utcnow()
        await db.flush()

        debug_logger.info(f"Доска {board.id} {'архивирована' if archived else 'восстановлена'}")
        return board

    @staticmethod
    @log_function()
    async def delete(db: AsyncSession, context: AuthorizedContext) -> None:
        """Hard delete a board and everything scoped to it.

        Children are deleted explicitly so the result does not depend on the
        database enforcing ON DELETE CASCADE.
        """
        board = await BoardService._get_for_context(db, context)
        board_id = board.id

        await db.execute(delete(Card).where(Card.board_id == board_id))
        await db.execute(delete(BoardColumn).where(BoardColumn.board_id == board_id))
        await db.execute(delete(Invitation).where(Invitation.board_id == board_id))
        await db.execute(delete(AuditLog).where(AuditLog.board_id == board_id))
        await db.execute(delete(BoardMembership).where(BoardMembership.board_id == board_id))
        await db.execute(delete(Board).where(Board.id == board_id))
        await db.flush()

        debug_logger.info(f"Доска {board_id} удалена пользователем {context.user_id}")
