from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.change_stream import AsyncChangeStream
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from keyward.core.db import Record
from keyward.core.storage.port import R, ChangeAction, ChangeEvent, Storage
from keyward.errors import DuplicateRecordError, StorageError

logger = structlog.get_logger(__name__)

_ACTIONS = {
    "insert": ChangeAction.CREATE,
    "update": ChangeAction.UPDATE,
    "replace": ChangeAction.UPDATE,
    "delete": ChangeAction.DELETE,
}


class MongoStorage(Storage):
    """Storage backed by MongoDB through the pymongo async driver.

    Subscriptions use change streams, so the server must run as a replica set.
    """

    def __init__(self, client: AsyncMongoClient[dict[str, Any]], database: AsyncDatabase[dict[str, Any]]) -> None:
        self._client = client
        self._database = database

    @classmethod
    def from_url(cls, database_url: str) -> "MongoStorage":
        client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(
            database_url, uuidRepresentation="standard", tz_aware=True
        )
        return cls(client, client.get_database(urlparse(database_url).path[1:]))

    def _collection(self, model: type[Record]) -> AsyncCollection[dict[str, Any]]:
        return self._database.get_collection(model.collection)

    async def prepare(self, model: type[Record]) -> None:
        collection = self._collection(model)
        try:
            for fields in model.unique_together:
                await collection.create_index([(field, 1) for field in fields], unique=True)
            for field in model.indexes:
                await collection.create_index([(field, 1)])
            if model.expires_field is not None:
                # Background reaper; reads never rely on it
                await collection.create_index([(model.expires_field, 1)], expireAfterSeconds=0)
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        logger.debug("mongo_collection_prepared", collection=model.collection)

    async def create(self, record: R) -> R:
        try:
            await self._collection(type(record)).insert_one(record.to_mongo())
        except DuplicateKeyError as e:
            raise DuplicateRecordError(f"Duplicate record in '{record.collection}'") from e
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        return record

    async def select(self, model: type[R], record_id: UUID) -> R | None:
        try:
            document = await self._collection(model).find_one({"_id": record_id})
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        if document is None:
            return None
        return model.from_mongo(document)

    async def find(self, model: type[R], filters: Mapping[str, Any]) -> list[R]:
        try:
            return [model.from_mongo(document) async for document in self._collection(model).find(dict(filters))]
        except PyMongoError as e:
            raise StorageError(str(e)) from e

    async def update_field(self, model: type[Record], record_id: UUID, field_path: str, value: Any) -> bool:
        try:
            result = await self._collection(model).update_one({"_id": record_id}, {"$set": {field_path: value}})
        except DuplicateKeyError as e:
            raise DuplicateRecordError(f"Duplicate value for '{field_path}' in '{model.collection}'") from e
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        return result.matched_count > 0

    async def delete(self, model: type[Record], record_id: UUID) -> bool:
        try:
            result = await self._collection(model).delete_one({"_id": record_id})
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        return result.deleted_count > 0

    async def delete_where(self, model: type[Record], filters: Mapping[str, Any]) -> int:
        try:
            result = await self._collection(model).delete_many(dict(filters))
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        return result.deleted_count

    @asynccontextmanager
    async def subscribe(self, model: type[Record]) -> AsyncGenerator[AsyncIterator[ChangeEvent]]:
        try:
            stream = await self._collection(model).watch(full_document="updateLookup")
        except PyMongoError as e:
            raise StorageError(str(e)) from e
        try:
            yield self._changes(stream)
        finally:
            await stream.close()

    async def _changes(self, stream: AsyncChangeStream[dict[str, Any]]) -> AsyncGenerator[ChangeEvent]:
        try:
            async for change in stream:
                action = _ACTIONS.get(change["operationType"])
                if action is None:
                    continue
                yield ChangeEvent(
                    action=action,
                    record_id=change["documentKey"]["_id"],
                    document=change.get("fullDocument") if action is not ChangeAction.DELETE else None,
                )
        except PyMongoError as e:
            raise StorageError(str(e)) from e

    async def close(self) -> None:
        await self._client.aclose()
