from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from kanban_access.core.exceptions import CrossGroupViolation, NotFound
from kanban_access.db.base import utcnow
from kanban_access.logs import debug_logger, api_logger, log_function
from kanban_access.models.card import Card
from kanban_access.models.column import BoardColumn
from kanban_access.schemas.authorization import AuthorizedContext
from kanban_access.schemas.card import BulkReorderResult, CardCreate, CardPositionUpdate
from kanban_access.services.column_service import ColumnService
from kanban_access.services.position_service import PositionService


class CardService:
    """Card operations on an authorized board"""

    @staticmethod
    async def get_by_id(db: AsyncSession, card_id: int) -> Optional[Card]:
        result = await db.execute(select(Card).where(Card.id == card_id))
        return result.scalars().first()

    @staticmethod
    async def get_in_board(
        db: AsyncSession,
        context: AuthorizedContext,
        card_id: int
    ) -> Card:
        card = await CardService.get_by_id(db, card_id)
        if card is None or card.board_id != context.board_id:
            raise NotFound("Card not found")
        return card

    @staticmethod
    async def get_by_column_id(db: AsyncSession, column_id: int) -> List[Card]:
        """Get all cards of a column in display order"""
        query = PositionService.ordered(Card, Card.column_id == column_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def _target_column(
        db: AsyncSession,
        context: AuthorizedContext,
        column_id: int
    ) -> BoardColumn:
        column = await ColumnService.get_by_id(db, column_id)
        if column is None:
            raise NotFound("Column not found")
        if column.board_id != context.board_id:
            raise CrossGroupViolation("Column does not belong to this board")
        return column

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        context: AuthorizedContext,
        data: CardCreate
    ) -> Card:
        """Create a new card; without a position it is placed last in its column"""
        await CardService._target_column(db, context, data.column_id)

        position = data.position
        if position is None:
            position = await PositionService.next_position(db, Card, Card.column_id == data.column_id)

        card = Card(
            title=data.title,
            description=data.description,
            board_id=context.board_id,
            column_id=data.column_id,
            assignee_id=data.assignee_id,
            due_date=data.due_date,
            priority=data.priority,
            position=position,
        )
        db.add(card)
        await db.flush()

        debug_logger.info(f"Создана новая карточка: ID {card.id}, в колонке {data.column_id}")
        return card

    @staticmethod
    @log_function()
    async def move(
        db: AsyncSession,
        context: AuthorizedContext,
        card_id: int,
        column_id: int,
        position: Optional[int] = None
    ) -> Card:
        """Move a card to a column of the same board; no position means drag-to-end"""
        card = await CardService.get_in_board(db, context, card_id)
        await CardService._target_column(db, context, column_id)

        old_column_id = card.column_id
        await PositionService.move_to(db, card, column_id, position)

        debug_logger.info(f"Карточка {card_id} перемещена из колонки {old_column_id} в колонку {column_id}")
        return card

    @staticmethod
    async def delete(
        db: AsyncSession,
        context: AuthorizedContext,
        card_id: int
    ) -> None:
        card = await CardService.get_in_board(db, context, card_id)
        await db.delete(card)
        await db.flush()
        debug_logger.info(f"Карточка {card_id} удалена")

    @staticmethod
    @log_function()
    async def bulk_update(
        db: AsyncSession,
        context: AuthorizedContext,
        updates: List[CardPositionUpdate]
    ) -> BulkReorderResult:
        """Apply a batch of card moves from a drag-and-drop session.

        Every card and every target column must belong to the context's board.
        Writes are independent: a failed one is reported, the rest stay applied.
        """
        await PositionService.assert_same_parent_group(
            db,
            context.board_id,
            column_ids=[item.column_id for item in updates],
            card_ids=[item.id for item in updates],
        )

        outcome = BulkReorderResult()
        current_time = utcnow()
        for item in updates:
            try:
                async with db.begin_nested():
                    stmt = update(Card).where(
                        Card.id == item.id,
                        Card.board_id == context.board_id
                    ).values(column_id=item.column_id, position=item.position, updated_at=current_time)
                    result = await db.execute(stmt)
                if result.rowcount:
                    outcome.updated.append(item.id)
                else:
                    outcome.failed.append(item.id)
            except SQLAlchemyError as e:
                debug_logger.error(f"Ошибка при перемещении карточки {item.id}")
                api_logger.error(f"Failed to move card {item.id} to column {item.column_id}: {str(e)}")
                outcome.failed.append(item.id)

        debug_logger.info(
            f"Пакетное обновление карточек доски {context.board_id}: "
            f"{len(outcome.updated)} успешно, {len(outcome.failed)} с ошибкой"
        )
        return outcome
