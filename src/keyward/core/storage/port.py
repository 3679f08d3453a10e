"""Storage capability consumed by every service."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager
from enum import StrEnum
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel

from keyward.core.db import Record

R = TypeVar("R", bound=Record)


class ChangeAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """A single change observed on a collection.

    ``document`` holds the record as stored after the change, and is None
    for deletions.
    """

    action: ChangeAction
    record_id: UUID
    document: dict[str, Any] | None = None


class Storage(ABC):
    """Persistence operations keyed by record class and record id.

    Every method may raise StorageError. Writes that violate a record's
    ``unique_together`` constraints raise DuplicateRecordError.
    """

    async def prepare(self, model: type[Record]) -> None:  # noqa: B027
        """Create whatever the backend needs (indexes) before a model is used."""

    @abstractmethod
    async def create(self, record: R) -> R:
        """Insert a new record and return it as stored."""

    @abstractmethod
    async def select(self, model: type[R], record_id: UUID) -> R | None:
        """Fetch one record by id, None if absent."""

    @abstractmethod
    async def find(self, model: type[R], filters: Mapping[str, Any]) -> list[R]:
        """Fetch all records whose fields equal the given values."""

    @abstractmethod
    async def update_field(self, model: type[Record], record_id: UUID, field_path: str, value: Any) -> bool:
        """Set one (dotted) field of a record. Returns False if the record is absent."""

    @abstractmethod
    async def delete(self, model: type[Record], record_id: UUID) -> bool:
        """Delete one record. Returns False if it was already absent."""

    @abstractmethod
    async def delete_where(self, model: type[Record], filters: Mapping[str, Any]) -> int:
        """Delete every record matching the filters and return how many were removed."""

    async def delete_soft(self, model: type[Record], record_id: UUID) -> None:
        """Mark a record as deactivated without removing it."""
        await self.update_field(model, record_id, "activated", False)

    @abstractmethod
    def subscribe(self, model: type[Record]) -> AbstractAsyncContextManager[AsyncIterator[ChangeEvent]]:
        """Open a change subscription on the model's collection.

        The subscription is live once the context is entered and released
        when it exits. Iteration raises StorageError if the feed breaks.
        """

    async def close(self) -> None:  # noqa: B027
        """Release connections held by the backend."""
