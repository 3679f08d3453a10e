"""Mail delivery backends."""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

import structlog

from keyward.config import Config
from keyward.core.modules.mail.models import MailMessage
from keyward.errors import NotificationError

logger = structlog.get_logger(__name__)


class Mailer(ABC):
    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """Deliver a message. Raises NotificationError on failure."""


class SmtpMailer(Mailer):
    """Delivers mail through an SMTP relay.

    smtplib is blocking, so each delivery runs in a worker thread with its
    own connection.
    """

    def __init__(
        self, host: str, port: int, user: str | None = None, password: str | None = None, starttls: bool = True
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._starttls = starttls

    async def send(self, message: MailMessage) -> None:
        await asyncio.to_thread(self._send_blocking, message)
        logger.debug("mail_sent", recipient=message.recipient, subject=message.subject)

    def _send_blocking(self, message: MailMessage) -> None:
        email = EmailMessage()
        email["From"] = message.sender
        email["To"] = message.recipient
        email["Subject"] = message.subject
        email.set_content(message.body, subtype=message.content_type.split("/", 1)[1])

        try:
            with smtplib.SMTP(self._host, self._port) as server:
                if self._starttls:
                    server.starttls()
                if self._user and self._password:
                    server.login(self._user, self._password)
                server.send_message(email)
        except (smtplib.SMTPException, OSError) as e:
            logger.exception("mail_send_failed", recipient=message.recipient, error=str(e))
            raise NotificationError(f"Failed to send email: {e}") from e


class NullMailer(Mailer):
    """Used when no SMTP relay is configured; messages are logged and dropped."""

    async def send(self, message: MailMessage) -> None:
        logger.info("mail_dropped", recipient=message.recipient, subject=message.subject)


def create_mailer(config: Config) -> Mailer:
    if config.smtp_host is None:
        return NullMailer()
    return SmtpMailer(
        host=config.smtp_host,
        port=config.smtp_port,
        user=config.smtp_user,
        password=config.smtp_password,
        starttls=config.smtp_starttls,
    )
