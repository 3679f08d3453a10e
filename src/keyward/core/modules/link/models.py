from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import Field

from keyward.core.db import Record
from keyward.utils import now


class LinkType(StrEnum):
    EMAIL_CHANGE = "email_change"
    PASSWORD_CHANGE = "password_change"
    EMAIL_RESET = "email_reset"  # Sent to the old address after an email change
    PASSWORD_RESET = "password_reset"  # Sent after a password change


LINK_PATHS: dict[LinkType, str] = {
    LinkType.EMAIL_CHANGE: "change-email",
    LinkType.PASSWORD_CHANGE: "change-password",
    LinkType.EMAIL_RESET: "reset-email",
    LinkType.PASSWORD_RESET: "reset-password",
}


class Link(Record):
    """Single-use, expiring link emailed to a user. The id is the bearer token."""

    collection = "links"
    unique_together = (("user_id", "link_type"),)
    indexes = ("user_id",)
    expires_field = "expires_at"

    user_id: UUID
    link_type: LinkType
    created_at: datetime = Field(default_factory=now)
    expires_at: datetime

    @property
    def token(self) -> str:
        return str(self.id)

    def is_expired(self, at: datetime) -> bool:
        return at >= self.expires_at
