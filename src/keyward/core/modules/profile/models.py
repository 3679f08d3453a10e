from enum import StrEnum

from pydantic import BaseModel, Field

from keyward.core.modules.user.models import ProfileSnapshot


class ProfileEventKind(StrEnum):
    SNAPSHOT = "snapshot"
    UPDATE = "update"
    ERROR = "error"


class ProfileError(StrEnum):
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"


class ProfileEvent(BaseModel):
    """One item of a live profile stream.

    The first event is always a snapshot. An error event is terminal.
    """

    kind: ProfileEventKind = Field(..., description="Event kind")
    profile: ProfileSnapshot | None = Field(default=None, description="Profile state after the change")
    error: ProfileError | None = Field(default=None, description="Failure reason for error events")
    message: str | None = Field(default=None, description="Human readable error message")

    @property
    def is_terminal(self) -> bool:
        return self.kind == ProfileEventKind.ERROR

    @classmethod
    def failure(cls, error: ProfileError, message: str) -> "ProfileEvent":
        return cls(kind=ProfileEventKind.ERROR, error=error, message=message)
