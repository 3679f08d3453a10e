from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from keyward.core.db import Record
from keyward.utils import now


class User(Record):
    """User account with credentials."""

    collection = "users"
    unique_together = (("email",),)

    email: str
    password_hash: str  # bcrypt hash
    is_admin: bool = False
    activated: bool = True
    created_at: datetime = Field(default_factory=now)


class ProfileSnapshot(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    is_admin: bool = Field(..., description="Whether the user has admin privileges")
    activated: bool = Field(..., description="False once the account has been disabled")

    @classmethod
    def from_domain(cls, user: User) -> "ProfileSnapshot":
        """Create view model from domain model."""
        return cls(id=user.id, email=user.email, is_admin=user.is_admin, activated=user.activated)
