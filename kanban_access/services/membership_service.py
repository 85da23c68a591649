from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from kanban_access.core.exceptions import (
    LastOwnerViolation,
    MembershipConflict,
    NotFound,
    SelfRemovalForbidden,
    StoreError,
)
from kanban_access.core.roles import BoardRole, parse_role
from kanban_access.logs import api_logger, debug_logger, log_function
from kanban_access.models.audit_log import AuditAction, AuditSeverity
from kanban_access.models.membership import BoardMembership
from kanban_access.models.user import User
from kanban_access.schemas.authorization import AuthorizedContext, RequestMeta
from kanban_access.schemas.membership import MemberListQuery
from kanban_access.services.audit_service import AuditService


class MembershipService:
    """Reads and writes the board membership relation.

    Mutators flush but never commit: the role change and its audit entry are
    committed together by whoever owns the session.
    """

    @staticmethod
    async def get(
        db: AsyncSession,
        user_id: str,
        board_id: int
    ) -> Optional[BoardMembership]:
        query = select(BoardMembership).where(
            BoardMembership.user_id == user_id,
            BoardMembership.board_id == board_id
        )
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_role(
        db: AsyncSession,
        user_id: str,
        board_id: int
    ) -> Optional[BoardRole]:
        """Get a user's role on a board, None if the user is not a member"""
        query = select(BoardMembership.role).where(
            BoardMembership.user_id == user_id,
            BoardMembership.board_id == board_id
        )
        result = await db.execute(query)
        return result.scalar()

    @staticmethod
    async def is_owner(db: AsyncSession, user_id: str, board_id: int) -> bool:
        return await MembershipService.get_role(db, user_id, board_id) == BoardRole.OWNER

    @staticmethod
    async def count_owners(db: AsyncSession, board_id: int, lock: bool = False) -> int:
        """Count owners of a board.

        With ``lock=True`` the owner rows are selected FOR UPDATE, so a
        concurrent demotion or removal of another owner waits for this
        transaction and the last-owner check cannot be raced.
        """
        query = select(BoardMembership.user_id).where(
            BoardMembership.board_id == board_id,
            BoardMembership.role == BoardRole.OWNER
        )
        if lock:
            query = query.with_for_update()
        result = await db.execute(query)
        return len(result.scalars().all())

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        board_id: int,
        user_id: str,
        role: BoardRole
    ) -> BoardMembership:
        """Add a user to a board.

        Never overwrites an existing membership: if the pair already exists
        MembershipConflict is raised and the existing role is kept.
        """
        role = parse_role(role)
        if await MembershipService.get(db, user_id, board_id) is not None:
            debug_logger.warning(f"Пользователь {user_id} уже участник доски {board_id}")
            raise MembershipConflict()

        membership = BoardMembership(board_id=board_id, user_id=user_id, role=role)
        try:
            # Точка сохранения: при гонке откатывается только эта вставка
            async with db.begin_nested():
                db.add(membership)
                await db.flush()
        except IntegrityError as e:
            # Конфликт только если пара действительно уже есть; иначе это нарушение другого ограничения
            if await MembershipService.get(db, user_id, board_id) is not None:
                debug_logger.warning(f"Параллельная вставка участника {user_id} на доску {board_id}")
                raise MembershipConflict() from None
            debug_logger.error(f"Не удалось добавить {user_id} на доску {board_id}")
            api_logger.error(f"Membership insert failed: board={board_id} user={user_id}: {str(e)}")
            raise StoreError() from e

        debug_logger.info(f"Пользователь {user_id} добавлен на доску {board_id} с ролью {role.value}")
        return membership

    @staticmethod
    @log_function()
    async def set_role(
        db: AsyncSession,
        context: AuthorizedContext,
        target_user_id: str,
        new_role: BoardRole,
        meta: Optional[RequestMeta] = None
    ) -> BoardMembership:
        """Change a member's role on the context's board and audit the change"""
        new_role = parse_role(new_role)
        board_id = context.board_id

        membership = await MembershipService.get(db, target_user_id, board_id)
        if membership is None:
            raise NotFound("Target user is not a member of this board")

        old_role = membership.role
        if old_role == BoardRole.OWNER and new_role != BoardRole.OWNER:
            if await MembershipService.count_owners(db, board_id, lock=True) <= 1:
                debug_logger.warning(f"Попытка понизить последнего владельца доски {board_id}")
                raise LastOwnerViolation("Cannot change the role of the last board owner")

        membership.role = new_role
        await db.flush()

        debug_logger.info(
            f"Роль пользователя {target_user_id} на доске {board_id}: {old_role.value} -> {new_role.value}"
        )

        await AuditService.record(
            db,
            admin_user_id=context.user_id,
            action=AuditAction.UPDATE_ROLE,
            board_id=board_id,
            target_user_id=target_user_id,
            details={"from": old_role.value, "to": new_role.value},
            meta=meta,
            severity=AuditSeverity.HIGH if new_role == BoardRole.OWNER else AuditSeverity.MEDIUM,
        )
        return membership

    @staticmethod
    @log_function()
    async def remove(
        db: AsyncSession,
        context: AuthorizedContext,
        target_user_id: str,
        meta: Optional[RequestMeta] = None
    ) -> None:
        """Remove a member from the context's board and audit the removal"""
        board_id = context.board_id

        if target_user_id == context.user_id:
            raise SelfRemovalForbidden()

        membership = await MembershipService.get(db, target_user_id, board_id)
        if membership is None:
            raise NotFound("Target user is not a member of this board")

        removed_role = membership.role
        if removed_role == BoardRole.OWNER:
            if await MembershipService.count_owners(db, board_id, lock=True) <= 1:
                debug_logger.warning(f"Попытка удалить последнего владельца доски {board_id}")
                raise LastOwnerViolation("Cannot remove the last board owner")

        await db.delete(membership)
        await db.flush()

        debug_logger.info(f"Пользователь {target_user_id} удалён с доски {board_id}")

        await AuditService.record(
            db,
            admin_user_id=context.user_id,
            action=AuditAction.REMOVE_USER,
            board_id=board_id,
            target_user_id=target_user_id,
            details={"role": removed_role.value},
            meta=meta,
        )

    @staticmethod
    async def list_members(
        db: AsyncSession,
        board_id: int,
        params: Optional[MemberListQuery] = None
    ) -> Tuple[List[BoardMembership], int]:
        """Get a page of board members with their profiles and the total count"""
        params = params or MemberListQuery()

        conditions = [BoardMembership.board_id == board_id]
        if params.role is not None:
            conditions.append(BoardMembership.role == params.role)
        if params.search:
            pattern = f"%{params.search.lower()}%"
            conditions.append(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))

        count_query = (
            select(func.count())
            .select_from(BoardMembership)
            .join(User, User.id == BoardMembership.user_id)
            .where(*conditions)
        )
        total = (await db.execute(count_query)).scalar() or 0

        sort_columns = {
            "name": User.name,
            "email": User.email,
            "role": BoardMembership.role,
            "joined_at": BoardMembership.created_at,
        }
        sort_column = sort_columns[params.sort_by]
        sort_column = sort_column.desc() if params.sort_order == "desc" else sort_column.asc()

        query = (
            select(BoardMembership)
            .join(User, User.id == BoardMembership.user_id)
            .where(*conditions)
            .options(selectinload(BoardMembership.user))
            .order_by(sort_column, BoardMembership.user_id)
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    @staticmethod
    async def role_distribution(db: AsyncSession, board_id: int) -> Dict[str, int]:
        query = (
            select(BoardMembership.role, func.count())
            .where(BoardMembership.board_id == board_id)
            .group_by(BoardMembership.role)
        )
        result = await db.execute(query)
        distribution = {role.value: 0 for role in BoardRole}
        for role, count in result.all():
            distribution[role.value] = count
        return distribution
