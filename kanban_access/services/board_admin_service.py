"""Admin operations on a board.

Each operation follows the same sequence: authorize the acting user as at
least admin, run the pre-write validation rules so the caller gets a precise
error, then call the mutator with the issued context.
"""
import math
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_access.core import get_settings
from kanban_access.core.exceptions import NotFound, RoleAssignmentForbidden, SelfRemovalForbidden
from kanban_access.core.roles import BoardRole, parse_role
from kanban_access.logs import log_function
from kanban_access.models.invitation import Invitation
from kanban_access.models.membership import BoardMembership
from kanban_access.schemas.audit_log import AuditLogFilters, AuditLogPage, AuditLogResponse
from kanban_access.schemas.authorization import RequestMeta
from kanban_access.schemas.invitation import (
    BulkInviteOutcome,
    InvitationList,
    InvitationResponse,
    InviteUserRequest,
)
from kanban_access.schemas.membership import MemberListItem, MemberListQuery, MemberPage
from kanban_access.services.audit_service import AuditService
from kanban_access.services.authorization_service import AuthorizationGuard
from kanban_access.services.invitation_service import InvitationService
from kanban_access.services.membership_service import MembershipService
from kanban_access.services.notification_service import NotificationSender
from kanban_access.services.validation import (
    validate_owner_requirement,
    validate_role_assignment,
    validate_self_role_change,
    validate_target_rank,
)

settings = get_settings()


def _total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


class BoardAdminService:

    @staticmethod
    @log_function()
    async def update_member_role(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        target_user_id: str,
        new_role: BoardRole,
        meta: Optional[RequestMeta] = None
    ) -> BoardMembership:
        context = await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        new_role = parse_role(new_role)

        current_role = await MembershipService.get_role(db, target_user_id, board_id)
        if current_role is None:
            raise NotFound("User not found in this board")

        validate_self_role_change(context.role, target_user_id, user_id, new_role)
        validate_role_assignment(context.role, new_role)
        validate_owner_requirement(current_role, target_user_id, user_id, new_role=new_role)
        validate_target_rank(context.role, current_role)

        return await MembershipService.set_role(db, context, target_user_id, new_role, meta)

    @staticmethod
    @log_function()
    async def remove_member(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        target_user_id: str,
        meta: Optional[RequestMeta] = None
    ) -> None:
        context = await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)

        if target_user_id == user_id:
            raise SelfRemovalForbidden()

        current_role = await MembershipService.get_role(db, target_user_id, board_id)
        if current_role is None:
            raise NotFound("User not found in this board")

        validate_owner_requirement(current_role, target_user_id, user_id, is_removal=True)
        validate_target_rank(context.role, current_role)

        await MembershipService.remove(db, context, target_user_id, meta)

    @staticmethod
    async def list_members(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        params: Optional[MemberListQuery] = None
    ) -> MemberPage:
        await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        params = params or MemberListQuery()

        memberships, total = await MembershipService.list_members(db, board_id, params)
        items = [
            MemberListItem(
                board_id=m.board_id,
                user_id=m.user_id,
                role=m.role,
                created_at=m.created_at,
                email=m.user.email if m.user else None,
                name=m.user.name if m.user else None,
            )
            for m in memberships
        ]
        return MemberPage(
            memberships=items,
            total=total,
            page=params.page,
            limit=params.limit,
            total_pages=_total_pages(total, params.limit),
            role_distribution=await MembershipService.role_distribution(db, board_id),
        )

    @staticmethod
    async def invite_user(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        request: InviteUserRequest,
        notifier: NotificationSender,
        meta: Optional[RequestMeta] = None
    ) -> Invitation:
        context = await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        validate_role_assignment(context.role, request.role)
        return await InvitationService.invite(db, context, request.email, request.role, notifier, meta)

    @staticmethod
    async def bulk_invite(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        entries: List[InviteUserRequest],
        notifier: NotificationSender,
        meta: Optional[RequestMeta] = None
    ) -> List[BulkInviteOutcome]:
        if not 1 <= len(entries) <= settings.MAX_BULK_INVITATIONS:
            raise ValueError(f"Between 1 and {settings.MAX_BULK_INVITATIONS} invitations are allowed")
        context = await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)

        outcomes = []
        for entry in entries:
            try:
                validate_role_assignment(context.role, entry.role)
            except RoleAssignmentForbidden as e:
                outcomes.append(BulkInviteOutcome(email=entry.email, success=False, error=e.detail))
                continue
            outcomes.extend(await InvitationService.bulk_invite(db, context, [entry], notifier, meta))
        return outcomes

    @staticmethod
    async def resend_invitation(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        invitation_id: int,
        notifier: Optional[NotificationSender] = None,
        meta: Optional[RequestMeta] = None
    ) -> Invitation:
        context = await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        return await InvitationService.resend(db, context, invitation_id, notifier, meta)

    @staticmethod
    async def cancel_invitation(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        invitation_id: int,
        meta: Optional[RequestMeta] = None
    ) -> bool:
        context = await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        return await InvitationService.cancel(db, context, invitation_id, meta)

    @staticmethod
    async def list_invitations(db: AsyncSession, user_id: str, board_id: int) -> InvitationList:
        await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        invitations, summary = await InvitationService.list_for_board(db, board_id)
        return InvitationList(
            invitations=[InvitationResponse.model_validate(i) for i in invitations],
            summary=summary,
        )

    @staticmethod
    async def list_audit_logs(
        db: AsyncSession,
        user_id: str,
        board_id: int,
        filters: Optional[AuditLogFilters] = None
    ) -> AuditLogPage:
        await AuthorizationGuard.require_role(db, user_id, board_id, BoardRole.ADMIN)
        filters = filters or AuditLogFilters()

        logs, total = await AuditService.list_for_board(db, board_id, filters)
        return AuditLogPage(
            logs=[AuditLogResponse.model_validate(log) for log in logs],
            total=total,
            page=filters.page,
            limit=filters.limit,
            total_pages=_total_pages(total, filters.limit),
        )
