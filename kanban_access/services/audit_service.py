from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from kanban_access.db.base import utcnow
from kanban_access.logs import debug_logger, api_logger
from kanban_access.models.audit_log import AuditLog, AuditAction, AuditSeverity, AuditCategory
from kanban_access.schemas.authorization import RequestMeta
from kanban_access.schemas.audit_log import AuditLogFilters


class AuditService:
    """Append-only recorder of privileged actions.

    Entries are written once and only read afterwards; there is no update or
    delete method.
    """

    @staticmethod
    async def record(
        db: AsyncSession,
        admin_user_id: str,
        action: AuditAction,
        board_id: Optional[int] = None,
        target_user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        meta: Optional[RequestMeta] = None,
        severity: AuditSeverity = AuditSeverity.MEDIUM,
        category: AuditCategory = AuditCategory.USER_MANAGEMENT,
    ) -> Optional[AuditLog]:
        """Append an audit entry inside the caller's transaction.

        The insert runs in a SAVEPOINT. If it fails only the audit row is
        rolled back: the privileged action that was already applied stays, the
        failure is logged and None is returned.
        """
        meta = meta or RequestMeta()
        payload = dict(details or {})
        payload.update(
            severity=severity.value,
            category=category.value,
            timestamp=utcnow().isoformat(),
        )

        entry = AuditLog(
            admin_user_id=admin_user_id,
            target_user_id=target_user_id,
            board_id=board_id,
            action=action,
            details=payload,
            ip_address=meta.ip_address or "unknown",
            user_agent=meta.user_agent or "unknown",
        )

        try:
            async with db.begin_nested():
                db.add(entry)
                await db.flush()
        except SQLAlchemyError as e:
            debug_logger.error(f"Не удалось записать аудит {action.value} для доски {board_id}")
            api_logger.error(
                f"Audit entry lost: action={action.value} admin={admin_user_id} "
                f"board={board_id} target={target_user_id}: {str(e)}"
            )
            return None

        api_logger.info(
            f"Admin action logged: action={action.value} admin={admin_user_id} "
            f"board={board_id} target={target_user_id} severity={severity.value}"
        )
        if severity == AuditSeverity.CRITICAL:
            api_logger.critical(f"CRITICAL SECURITY EVENT: {action.value} by {admin_user_id} on board {board_id}")

        return entry

    @staticmethod
    async def list_for_board(
        db: AsyncSession,
        board_id: int,
        filters: Optional[AuditLogFilters] = None
    ) -> Tuple[List[AuditLog], int]:
        """Get audit entries of a board, most recent first, with the total count"""
        filters = filters or AuditLogFilters()

        conditions = [AuditLog.board_id == board_id]
        if filters.action is not None:
            conditions.append(AuditLog.action == filters.action)
        if filters.target_user_id:
            conditions.append(AuditLog.target_user_id == filters.target_user_id)
        if filters.start_date:
            conditions.append(AuditLog.created_at >= filters.start_date)
        if filters.end_date:
            conditions.append(AuditLog.created_at <= filters.end_date)

        count_query = select(func.count(AuditLog.id)).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total
