from typing import Iterable, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.sql import Select

from kanban_access.core import get_settings
from kanban_access.core.exceptions import CrossGroupViolation, NotFound
from kanban_access.db.base import utcnow
from kanban_access.logs import debug_logger
from kanban_access.models.card import Card
from kanban_access.models.column import BoardColumn

settings = get_settings()

Positioned = Union[BoardColumn, Card]


class PositionService:
    """Sparse integer ordering of columns within a board and cards within a column.

    Positions are not dense and not unique. A move writes only the moved row;
    siblings are never shifted or compacted. Readers sort by (position, id),
    so duplicates left behind by concurrent moves still give a stable order.
    """

    # Перетаскивание в конец списка
    END_POSITION = settings.END_OF_LIST_POSITION

    @staticmethod
    async def next_position(db: AsyncSession, model, *parent_filter) -> int:
        """max(position) + 1 among the siblings matched by parent_filter, 1 if none"""
        query = select(func.max(model.position)).where(*parent_filter)
        result = await db.execute(query)
        max_position = result.scalar()
        return (max_position or 0) + 1

    @staticmethod
    def ordered(model, *parent_filter) -> Select:
        """Select siblings in read order"""
        return select(model).where(*parent_filter).order_by(model.position, model.id)

    @staticmethod
    async def move_to(
        db: AsyncSession,
        entity: Positioned,
        new_parent_id: Optional[int],
        new_position: Optional[int]
    ) -> Positioned:
        """Write the new parent (cards only) and position of a single entity.

        The caller has already checked that ``new_parent_id`` is a column of
        the entity's board. No other row is touched.
        """
        if new_position is None:
            new_position = PositionService.END_POSITION

        if isinstance(entity, Card) and new_parent_id is not None:
            entity.column_id = new_parent_id
        entity.position = new_position
        entity.updated_at = utcnow()
        await db.flush()

        debug_logger.debug(
            f"{type(entity).__name__} {entity.id} перемещена: parent={new_parent_id}, position={new_position}"
        )
        return entity

    @staticmethod
    async def assert_same_parent_group(
        db: AsyncSession,
        board_id: int,
        column_ids: Iterable[int] = (),
        card_ids: Iterable[int] = ()
    ) -> None:
        """Make sure a batch of columns and cards all belong to one board.

        Raises:
            NotFound: a referenced column or card does not exist
            CrossGroupViolation: some entity belongs to another board
        """
        column_ids = set(column_ids)
        card_ids = set(card_ids)

        if column_ids:
            result = await db.execute(
                select(BoardColumn.id, BoardColumn.board_id).where(BoardColumn.id.in_(column_ids))
            )
            rows = result.all()
            if len(rows) != len(column_ids):
                raise NotFound("Some columns not found")
            if any(row.board_id != board_id for row in rows):
                raise CrossGroupViolation("All columns must belong to the same board")

        if card_ids:
            result = await db.execute(
                select(Card.id, Card.board_id).where(Card.id.in_(card_ids))
            )
            rows = result.all()
            if len(rows) != len(card_ids):
                raise NotFound("Some cards not found")
            if any(row.board_id != board_id for row in rows):
                raise CrossGroupViolation("All cards must belong to the same board")
