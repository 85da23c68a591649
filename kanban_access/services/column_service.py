from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError

from kanban_access.core.exceptions import NotFound, NonEmptyColumn
from kanban_access.db.base import utcnow
from kanban_access.logs import debug_logger, api_logger, log_function
from kanban_access.models.card import Card
from kanban_access.models.column import BoardColumn
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.schemas.card import BulkReorderResult
from kanban_access.schemas.column import ColumnPositionUpdate
from kanban_access.services.position_service import PositionService


class ColumnService:
    """Column operations on an authorized board"""

    @staticmethod
    async def get_by_id(db: AsyncSession, column_id: int) -> Optional[BoardColumn]:
        result = await db.execute(select(BoardColumn).where(BoardColumn.id == column_id))
        return result.scalars().first()

    @staticmethod
    async def get_in_board(
        db: AsyncSession,
        context: AuthorizedContext,
        column_id: int
    ) -> BoardColumn:
        """Get a column of the context's board; columns of other boards look absent"""
        column = await ColumnService.get_by_id(db, column_id)
        if column is None or column.board_id != context.board_id:
            raise NotFound("Column not found")
        return column

    @staticmethod
    async def get_by_board_id(db: AsyncSession, board_id: int) -> List[BoardColumn]:
        """Get all columns for a board in display order"""
        query = PositionService.ordered(BoardColumn, BoardColumn.board_id == board_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        context: AuthorizedContext,
        title: str,
        position: Optional[int] = None
    ) -> BoardColumn:
        """Create a new column; without a position it is placed last"""
        if position is None:
            position = await PositionService.next_position(
                db, BoardColumn, BoardColumn.board_id == context.board_id
            )

        column = BoardColumn(title=title, board_id=context.board_id, position=position)
        db.add(column)
        await db.flush()

        debug_logger.info(f"Создана колонка {column.id} на доске {context.board_id}, позиция {position}")
        return column

    @staticmethod
    async def update(
        db: AsyncSession,
        context: AuthorizedContext,
        column_id: int,
        title: Optional[str] = None,
        position: Optional[int] = None
    ) -> BoardColumn:
        """Rename and/or reposition a column"""
        column = await ColumnService.get_in_board(db, context, column_id)

        if title is not None:
            column.title = title
            column.updated_at = utcnow()
            await db.flush()
        if position is not None:
            await PositionService.move_to(db, column, None, position)

        return column

    @staticmethod
    @log_function()
    async def delete(
        db: AsyncSession,
        context: AuthorizedContext,
        column_id: int
    ) -> None:
        """Delete an empty column; cards must be moved or deleted first"""
        column = await ColumnService.get_in_board(db, context, column_id)

        card_count = (await db.execute(
            select(func.count(Card.id)).where(Card.column_id == column_id)
        )).scalar() or 0
        if card_count > 0:
            debug_logger.warning(f"Колонка {column_id} содержит {card_count} карточек, удаление отклонено")
            raise NonEmptyColumn(
                f"Cannot delete column with {card_count} card(s). Move or delete the cards first."
            )

        await db.delete(column)
        await db.flush()
        debug_logger.info(f"Колонка {column_id} удалена с доски {context.board_id}")

    @staticmethod
    @log_function()
    async def bulk_update(
        db: AsyncSession,
        context: AuthorizedContext,
        updates: List[ColumnPositionUpdate]
    ) -> BulkReorderResult:
        """Reorder columns of a board.

        Each write is applied on its own; one failure does not undo the
        others. Failed ids are returned so the caller can re-fetch and retry.
        """
        await PositionService.assert_same_parent_group(
            db, context.board_id, column_ids=[item.id for item in updates]
        )

        outcome = BulkReorderResult()
        current_time = utcnow()
        for item in updates:
            try:
                async with db.begin_nested():
                    stmt = update(BoardColumn).where(
                        BoardColumn.id == item.id,
                        BoardColumn.board_id == context.board_id
                    ).values(position=item.position, updated_at=current_time)
                    result = await db.execute(stmt)
                if result.rowcount:
                    outcome.updated.append(item.id)
                else:
                    outcome.failed.append(item.id)
            except SQLAlchemyError as e:
                debug_logger.error(f"Ошибка при изменении позиции колонки {item.id}")
                api_logger.error(f"Failed to reorder column {item.id}: {str(e)}")
                outcome.failed.append(item.id)

        return outcome
