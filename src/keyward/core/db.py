from typing import Any, ClassVar, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Base class for everything persisted through a storage backend.

    Subclasses name their collection and may declare field groups that must
    be unique across the collection, plain lookup indexes, and a datetime
    field after which the backend may reap the record.
    """

    collection: ClassVar[str]
    unique_together: ClassVar[tuple[tuple[str, ...], ...]] = ()
    indexes: ClassVar[tuple[str, ...]] = ()
    expires_field: ClassVar[str | None] = None

    id: UUID = Field(alias="_id", serialization_alias="id", default_factory=uuid4)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_schema_serialization_defaults_required=True,
    )

    def to_mongo(self) -> dict[str, Any]:
        """Convert the model to a dictionary for storage with _id field."""
        data = self.model_dump()
        if "id" in data:
            data["_id"] = data.pop("id")  # Rename id → _id for MongoDB
        return data

    @classmethod
    def from_mongo(cls, document: dict[str, Any]) -> Self:
        return cls.model_validate(document)
