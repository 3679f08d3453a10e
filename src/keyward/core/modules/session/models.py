"""Session management models."""

from datetime import datetime
from typing import NewType
from uuid import UUID

from pydantic import Field

from keyward.core.db import Record
from keyward.utils import now

SessionSecret = NewType("SessionSecret", str)


class Session(Record):
    """User authentication session.

    Only the SHA-256 digest of the secret is stored. ``secret`` is set on the
    object returned by session creation and is never serialized, so it can
    be shown to the client exactly once.
    """

    collection = "sessions"
    unique_together = (("secret_hash",),)
    indexes = ("user_id",)
    expires_field = "expires_at"

    secret_hash: str
    user_id: UUID
    expires_at: datetime
    ip_address: str | None = None
    is_admin: bool = False
    created_at: datetime = Field(default_factory=now)
    secret: SessionSecret | None = Field(default=None, exclude=True)

    def is_expired(self, at: datetime) -> bool:
        return at >= self.expires_at
