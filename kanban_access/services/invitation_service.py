import secrets
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from kanban_access.core import get_settings
from kanban_access.core.exceptions import (
    AlreadyAccepted,
    AlreadyMember,
    BoardAccessError,
    DuplicatePendingInvitation,
    Forbidden,
    InvalidToken,
    InvitationExpired,
    MembershipConflict,
    NotFound,
    StoreError,
)
from kanban_access.core.roles import BoardRole, INVITABLE_ROLES, parse_role
from kanban_access.db.base import utcnow
from kanban_access.logs import debug_logger, api_logger, log_function
from kanban_access.models.audit_log import AuditAction
from kanban_access.models.board import Board
from kanban_access.models.invitation import Invitation, InvitationStatus
from kanban_access.models.membership import BoardMembership
from kanban_access.models.user import User
from kanban_access.schemas.authorization import AuthorizedContext, RequestMeta
from kanban_access.schemas.invitation import BulkInviteOutcome, InvitationSummary, InviteUserRequest
from kanban_access.services.audit_service import AuditService
from kanban_access.services.membership_service import MembershipService
from kanban_access.services.notification_service import (
    INVITATION_RESENT_TEMPLATE,
    INVITATION_TEMPLATE,
    NotificationSender,
    build_accept_link,
)

settings = get_settings()


class InvitationService:
    """Lifecycle of board invitations: invite, resend, cancel, accept.

    Status is never stored. It is derived from ``accepted_at`` and
    ``expires_at`` (see ``Invitation.status_at``).
    """

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def generate_token() -> str:
        return secrets.token_urlsafe(settings.INVITATION_TOKEN_BYTES)

    @staticmethod
    def expiry_from(now: datetime) -> datetime:
        return now + timedelta(days=settings.INVITATION_EXPIRE_DAYS)

    @staticmethod
    async def get_by_id(db: AsyncSession, invitation_id: int) -> Optional[Invitation]:
        result = await db.execute(select(Invitation).where(Invitation.id == invitation_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_token(db: AsyncSession, token: str) -> Optional[Invitation]:
        result = await db.execute(select(Invitation).where(Invitation.token == token))
        return result.scalars().first()

    @staticmethod
    async def _get_in_board(
        db: AsyncSession,
        context: AuthorizedContext,
        invitation_id: int
    ) -> Optional[Invitation]:
        result = await db.execute(
            select(Invitation).where(
                Invitation.id == invitation_id,
                Invitation.board_id == context.board_id
            )
        )
        return result.scalars().first()

    @staticmethod
    async def is_member_email(db: AsyncSession, board_id: int, email: str) -> bool:
        """Check whether an email resolves to a member of the board"""
        query = (
            select(BoardMembership.user_id)
            .join(User, User.id == BoardMembership.user_id)
            .where(
                BoardMembership.board_id == board_id,
                func.lower(User.email) == InvitationService.normalize_email(email)
            )
        )
        result = await db.execute(query)
        return result.first() is not None

    @staticmethod
    async def find_pending(
        db: AsyncSession,
        board_id: int,
        email: str,
        now: Optional[datetime] = None,
        exclude_id: Optional[int] = None
    ) -> Optional[Invitation]:
        """Get the unaccepted, unexpired invitation for (email, board) if any"""
        now = now or utcnow()
        query = select(Invitation).where(
            Invitation.board_id == board_id,
            Invitation.email == InvitationService.normalize_email(email),
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > now
        )
        if exclude_id is not None:
            query = query.where(Invitation.id != exclude_id)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    def _payload(invitation: Invitation, board: Optional[Board]) -> dict:
        return {
            "board_id": invitation.board_id,
            "board_name": board.name if board is not None else None,
            "role": parse_role(invitation.role).value,
            "invitation_id": invitation.id,
            "accept_link": build_accept_link(invitation.token),
            "expires_at": invitation.expires_at.isoformat(),
        }

    @staticmethod
    @log_function()
    async def invite(
        db: AsyncSession,
        context: AuthorizedContext,
        email: str,
        role: BoardRole,
        notifier: NotificationSender,
        meta: Optional[RequestMeta] = None,
        now: Optional[datetime] = None
    ) -> Invitation:
        """
        Invite an email address to the context's board

        Raises:
            Forbidden: role is owner
            AlreadyMember: the email already belongs to a board member
            DuplicatePendingInvitation: a pending invitation exists for the pair
            NotificationDeliveryError: the message could not be delivered; the
                invitation is rolled back
        """
        role = parse_role(role)
        if role not in INVITABLE_ROLES:
            raise Forbidden("Invitations can grant admin, member or viewer only")

        email = InvitationService.normalize_email(email)
        now = now or utcnow()
        board_id = context.board_id

        # Блокируем доску: параллельные приглашения на неё выполняются по очереди
        board = (await db.execute(
            select(Board).where(Board.id == board_id).with_for_update()
        )).scalars().first()
        if board is None:
            raise NotFound("Board not found")

        if await InvitationService.is_member_email(db, board_id, email):
            debug_logger.warning(f"{email} уже участник доски {board_id}")
            raise AlreadyMember()

        if await InvitationService.find_pending(db, board_id, email, now) is not None:
            debug_logger.warning(f"У {email} уже есть активное приглашение на доску {board_id}")
            raise DuplicatePendingInvitation()

        invitation = Invitation(
            board_id=board_id,
            email=email,
            role=role,
            invited_by=context.user_id,
            token=InvitationService.generate_token(),
            created_at=now,
            expires_at=InvitationService.expiry_from(now),
        )

        # Запись и отправка в одной точке сохранения: без письма нет приглашения
        async with db.begin_nested():
            db.add(invitation)
            await db.flush()
            await notifier.send(email, INVITATION_TEMPLATE, InvitationService._payload(invitation, board))

        debug_logger.info(f"Приглашение {invitation.id} для {email} на доску {board_id}, роль {role.value}")

        await AuditService.record(
            db,
            admin_user_id=context.user_id,
            action=AuditAction.INVITE_USER,
            board_id=board_id,
            details={"email": email, "role": role.value, "invitation_id": invitation.id},
            meta=meta,
        )
        return invitation

    @staticmethod
    @log_function()
    async def resend(
        db: AsyncSession,
        context: AuthorizedContext,
        invitation_id: int,
        notifier: Optional[NotificationSender] = None,
        meta: Optional[RequestMeta] = None,
        now: Optional[datetime] = None
    ) -> Invitation:
        """Keep the token, push expiry to now + 7 days and mark the invitation as sent now"""
        now = now or utcnow()

        invitation = await InvitationService._get_in_board(db, context, invitation_id)
        if invitation is None:
            raise NotFound("Invitation not found")
        if invitation.accepted_at is not None:
            raise AlreadyAccepted("Cannot resend accepted invitation")

        # Та же блокировка доски, что и в invite: продление не должно дать второе активное приглашение
        await db.execute(select(Board).where(Board.id == invitation.board_id).with_for_update())
        if await InvitationService.find_pending(
            db, invitation.board_id, invitation.email, now, exclude_id=invitation.id
        ) is not None:
            debug_logger.warning(f"У {invitation.email} уже есть другое активное приглашение на доску {invitation.board_id}")
            raise DuplicatePendingInvitation()

        async with db.begin_nested():
            invitation.expires_at = InvitationService.expiry_from(now)
            invitation.created_at = now
            await db.flush()
            if notifier is not None:
                board = await db.get(Board, invitation.board_id)
                await notifier.send(
                    invitation.email,
                    INVITATION_RESENT_TEMPLATE,
                    InvitationService._payload(invitation, board)
                )

        debug_logger.info(f"Приглашение {invitation_id} отправлено повторно, истекает {invitation.expires_at}")

        await AuditService.record(
            db,
            admin_user_id=context.user_id,
            action=AuditAction.INVITATION_RESENT,
            board_id=context.board_id,
            details={"invitation_id": invitation_id, "email": invitation.email},
            meta=meta,
        )
        return invitation

    @staticmethod
    @log_function()
    async def cancel(
        db: AsyncSession,
        context: AuthorizedContext,
        invitation_id: int,
        meta: Optional[RequestMeta] = None
    ) -> bool:
        """Hard delete an invitation. Cancelling a missing invitation is not an error.

        Returns:
            True if a row was deleted
        """
        invitation = await InvitationService._get_in_board(db, context, invitation_id)
        if invitation is None:
            debug_logger.info(f"Приглашение {invitation_id} уже удалено")
            return False

        email = invitation.email
        await db.delete(invitation)
        await db.flush()

        await AuditService.record(
            db,
            admin_user_id=context.user_id,
            action=AuditAction.INVITATION_CANCELLED,
            board_id=context.board_id,
            details={"invitation_id": invitation_id, "email": email},
            meta=meta,
        )
        return True

    @staticmethod
    @log_function()
    async def accept(
        db: AsyncSession,
        token: str,
        user_id: str,
        now: Optional[datetime] = None
    ) -> BoardMembership:
        """
        Accept an invitation on behalf of a verified user

        Raises:
            InvalidToken: no invitation has this token
            AlreadyAccepted: the invitation was accepted before
            InvitationExpired: the invitation expired before acceptance
            StoreError: the membership could not be written; the invitation stays pending
        """
        now = now or utcnow()

        result = await db.execute(
            select(Invitation).where(Invitation.token == token).with_for_update()
        )
        invitation = result.scalars().first()
        if invitation is None:
            raise InvalidToken()

        status = invitation.status_at(now)
        if status == InvitationStatus.ACCEPTED:
            debug_logger.warning(f"Повторное принятие приглашения {invitation.id}")
            raise AlreadyAccepted()
        if status == InvitationStatus.EXPIRED:
            raise InvitationExpired()

        # Сначала участник, потом отметка о принятии: при ошибке токен остаётся рабочим
        try:
            membership = await MembershipService.create(db, invitation.board_id, user_id, invitation.role)
        except MembershipConflict:
            # Пользователь уже стал участником другим путём: приглашение всё равно принято
            membership = await MembershipService.get(db, user_id, invitation.board_id)
            if membership is None:
                raise StoreError() from None
            debug_logger.info(f"Пользователь {user_id} уже участник доски {invitation.board_id}")

        invitation.accepted_at = now
        await db.flush()

        api_logger.info(f"Invitation {invitation.id} accepted by {user_id} on board {invitation.board_id}")
        return membership

    @staticmethod
    async def list_for_board(
        db: AsyncSession,
        board_id: int,
        now: Optional[datetime] = None
    ) -> Tuple[List[Invitation], InvitationSummary]:
        """Get all invitations of a board, newest first, with a status summary"""
        now = now or utcnow()
        result = await db.execute(
            select(Invitation)
            .where(Invitation.board_id == board_id)
            .order_by(Invitation.created_at.desc(), Invitation.id.desc())
        )
        invitations = list(result.scalars().all())

        summary = InvitationSummary(total=len(invitations))
        for invitation in invitations:
            status = invitation.status_at(now)
            if status == InvitationStatus.ACCEPTED:
                summary.accepted += 1
            elif status == InvitationStatus.EXPIRED:
                summary.expired += 1
            else:
                summary.pending += 1

        return invitations, summary

    @staticmethod
    @log_function()
    async def bulk_invite(
        db: AsyncSession,
        context: AuthorizedContext,
        entries: List[InviteUserRequest],
        notifier: NotificationSender,
        meta: Optional[RequestMeta] = None
    ) -> List[BulkInviteOutcome]:
        """Invite several emails; a failed entry does not stop the others"""
        if not 1 <= len(entries) <= settings.MAX_BULK_INVITATIONS:
            raise ValueError(f"Between 1 and {settings.MAX_BULK_INVITATIONS} invitations are allowed")

        outcomes = []
        for entry in entries:
            try:
                invitation = await InvitationService.invite(
                    db, context, entry.email, entry.role, notifier, meta
                )
            except BoardAccessError as e:
                outcomes.append(BulkInviteOutcome(email=entry.email, success=False, error=e.detail))
                continue
            outcomes.append(BulkInviteOutcome(email=entry.email, success=True, invitation_id=invitation.id))

        debug_logger.info(
            f"Массовое приглашение на доску {context.board_id}: "
            f"{sum(1 for o in outcomes if o.success)} из {len(outcomes)}"
        )
        return outcomes
