import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Dict, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from kanban_access.core import get_settings
from kanban_access.core.exceptions import NotificationDeliveryError
from kanban_access.logs import debug_logger, api_logger

settings = get_settings()

INVITATION_TEMPLATE = "invitation"
INVITATION_RESENT_TEMPLATE = "invitation_resent"


def build_accept_link(token: str) -> str:
    """Link the invitee follows to accept an invitation"""
    return f"{settings.SITE_URL}{settings.BASE_PATH}/auth/accept-invitation?token={token}"


def render_message(template_kind: str, payload: Dict[str, Any]) -> Tuple[str, str]:
    """Render (subject, plain text body) for a notification"""
    board_name = payload.get("board_name") or f"board #{payload.get('board_id')}"
    role = payload.get("role", "member")
    link = payload.get("accept_link", "")

    if template_kind == INVITATION_RESENT_TEMPLATE:
        subject = f"Reminder: you are invited to {board_name}"
    else:
        subject = f"You are invited to {board_name}"

    body = (
        f"You have been invited to join {board_name} as {role}.\n\n"
        f"Accept the invitation: {link}\n\n"
        f"The link expires on {payload.get('expires_at', 'in 7 days')}."
    )
    return subject, body


class NotificationSender:
    """Outbound notification port used by the invitation lifecycle"""

    async def send(self, to_email: str, template_kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class SmtpNotificationSender(NotificationSender):
    """Delivers notifications over SMTP.

    smtplib is blocking, so the actual delivery runs in Starlette's threadpool.
    Any failure is reported as NotificationDeliveryError.
    """

    def __init__(
        self,
        smtp_server: Optional[str] = None,
        smtp_port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None
    ):
        self.smtp_server = smtp_server or settings.SMTP_SERVER
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.from_email = from_email or settings.FROM_EMAIL

    def _deliver(self, to_email: str, subject: str, body: str) -> None:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.from_email
        message["To"] = to_email
        message.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
            if self.username and self.password:
                server.starttls(context=ssl.create_default_context())
                server.login(self.username, self.password)
            server.sendmail(self.from_email, [to_email], message.as_string())

    async def send(self, to_email: str, template_kind: str, payload: Dict[str, Any]) -> None:
        subject, body = render_message(template_kind, payload)
        try:
            await run_in_threadpool(self._deliver, to_email, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            debug_logger.error(f"Не удалось отправить письмо {template_kind} на {to_email}")
            api_logger.error(f"Email delivery failed: template={template_kind} to={to_email}: {str(e)}")
            raise NotificationDeliveryError() from e

        api_logger.info(f"Email sent: template={template_kind} to={to_email}")
