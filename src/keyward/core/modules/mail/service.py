import asyncio
from collections.abc import Mapping
from pathlib import Path

import structlog

from keyward.core.core import Service
from keyward.core.modules.mail.models import ContentType, MailMessage
from keyward.errors import NotificationError
from keyward.utils import is_email

logger = structlog.get_logger(__name__)

BUNDLED_TEMPLATES_PATH = Path(__file__).resolve().parents[3] / "templates"


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``${{KEY}}`` placeholders. Unknown placeholders are left as-is."""
    for key, value in values.items():
        template = template.replace("${{" + key + "}}", value)
    return template


class MailService(Service):
    """Template loading, message building and delivery through the configured mailer."""

    @property
    def templates_path(self) -> Path:
        if self.core.config.templates_path:
            return Path(self.core.config.templates_path)
        return BUNDLED_TEMPLATES_PATH

    async def load_template(self, name: str) -> str:
        if Path(name).name != name:
            raise NotificationError(f"Invalid template name '{name}'")
        path = self.templates_path / name
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise NotificationError(f"Failed to load email template '{name}'") from e

    def build_message(
        self,
        recipient: str,
        subject: str,
        body: str,
        content_type: ContentType = ContentType.TEXT_HTML,
        sender: str | None = None,
    ) -> MailMessage:
        sender = sender or self.core.config.mail_from
        for address in (sender, recipient):
            if not is_email(address):
                raise NotificationError(f"{address} is not a recipient")
        return MailMessage(sender=sender, recipient=recipient, subject=subject, content_type=content_type, body=body)

    async def send(self, message: MailMessage) -> None:
        await self.core.mailer.send(message)

    async def send_template(self, recipient: str, subject: str, template_name: str, values: Mapping[str, str]) -> None:
        """Render a bundled template and deliver it."""
        body = render_template(await self.load_template(template_name), values)
        await self.send(self.build_message(recipient, subject, body))
        logger.debug("template_mail_sent", template=template_name, recipient=recipient)
