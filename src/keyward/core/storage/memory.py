"""In-process storage used by tests and local development."""

import asyncio
import copy
from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from keyward.core.db import Record
from keyward.core.storage.port import R, ChangeAction, ChangeEvent, Storage
from keyward.errors import DuplicateRecordError, StorageError


def _get_path(document: dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    *parents, last = path.split(".")
    target = document
    for part in parents:
        target = target.setdefault(part, {})
    target[last] = value


def _matches(document: dict[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(_get_path(document, field) == value for field, value in filters.items())


class MemoryStorage(Storage):
    """Dictionary-backed storage with the same contract as MongoStorage.

    Documents are deep-copied on the way in and out so callers never share
    state with the store. Unique constraints declared on records are enforced.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[UUID, dict[str, Any]]] = {}
        self._subscribers: dict[str, list[asyncio.Queue[ChangeEvent | StorageError]]] = {}

    def _documents(self, model: type[Record]) -> dict[UUID, dict[str, Any]]:
        return self._collections.setdefault(model.collection, {})

    def _check_unique(self, model: type[Record], candidate: dict[str, Any]) -> None:
        for fields in model.unique_together:
            key = tuple(_get_path(candidate, field) for field in fields)
            for record_id, existing in self._documents(model).items():
                if record_id == candidate["_id"]:
                    continue
                if tuple(_get_path(existing, field) for field in fields) == key:
                    raise DuplicateRecordError(f"Duplicate record in '{model.collection}' for {fields}")

    def _publish(self, model: type[Record], action: ChangeAction, record_id: UUID) -> None:
        document = self._documents(model).get(record_id)
        event = ChangeEvent(
            action=action,
            record_id=record_id,
            document=copy.deepcopy(document) if document is not None else None,
        )
        for queue in self._subscribers.get(model.collection, []):
            queue.put_nowait(event)

    async def create(self, record: R) -> R:
        model = type(record)
        document = record.to_mongo()
        if document["_id"] in self._documents(model):
            raise DuplicateRecordError(f"Duplicate id in '{model.collection}'")
        self._check_unique(model, document)
        self._documents(model)[document["_id"]] = copy.deepcopy(document)
        self._publish(model, ChangeAction.CREATE, document["_id"])
        return record

    async def select(self, model: type[R], record_id: UUID) -> R | None:
        document = self._documents(model).get(record_id)
        if document is None:
            return None
        return model.from_mongo(copy.deepcopy(document))

    async def find(self, model: type[R], filters: Mapping[str, Any]) -> list[R]:
        return [
            model.from_mongo(copy.deepcopy(document))
            for document in self._documents(model).values()
            if _matches(document, filters)
        ]

    async def update_field(self, model: type[Record], record_id: UUID, field_path: str, value: Any) -> bool:
        document = self._documents(model).get(record_id)
        if document is None:
            return False
        updated = copy.deepcopy(document)
        _set_path(updated, field_path, copy.deepcopy(value))
        self._check_unique(model, updated)
        self._documents(model)[record_id] = updated
        self._publish(model, ChangeAction.UPDATE, record_id)
        return True

    async def delete(self, model: type[Record], record_id: UUID) -> bool:
        if self._documents(model).pop(record_id, None) is None:
            return False
        self._publish(model, ChangeAction.DELETE, record_id)
        return True

    async def delete_where(self, model: type[Record], filters: Mapping[str, Any]) -> int:
        doomed = [record_id for record_id, document in self._documents(model).items() if _matches(document, filters)]
        for record_id in doomed:
            del self._documents(model)[record_id]
            self._publish(model, ChangeAction.DELETE, record_id)
        return len(doomed)

    @asynccontextmanager
    async def subscribe(self, model: type[Record]) -> AsyncGenerator[AsyncIterator[ChangeEvent]]:
        queue: asyncio.Queue[ChangeEvent | StorageError] = asyncio.Queue()
        subscribers = self._subscribers.setdefault(model.collection, [])
        subscribers.append(queue)
        try:
            yield self._drain(queue)
        finally:
            subscribers.remove(queue)

    @staticmethod
    async def _drain(queue: "asyncio.Queue[ChangeEvent | StorageError]") -> AsyncGenerator[ChangeEvent]:
        while True:
            item = await queue.get()
            if isinstance(item, StorageError):
                raise item
            yield item

    def subscriber_count(self, model: type[Record]) -> int:
        return len(self._subscribers.get(model.collection, []))

    def break_subscriptions(self, model: type[Record], error: StorageError) -> None:
        """Make every open subscription on the collection fail with ``error``."""
        for queue in self._subscribers.get(model.collection, []):
            queue.put_nowait(error)
