from enum import StrEnum

from pydantic import BaseModel


class ContentType(StrEnum):
    TEXT_HTML = "text/html"
    TEXT_PLAIN = "text/plain"


class MailMessage(BaseModel):
    """A fully rendered message ready for delivery."""

    sender: str
    recipient: str
    subject: str
    content_type: ContentType = ContentType.TEXT_HTML
    body: str
