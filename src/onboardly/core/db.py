from datetime import UTC, datetime
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pymongo.asynchronous.cursor import AsyncCursor


class MongoModel(BaseModel):
    """Document keyed by a UUID stored as `_id`.

    Datetimes read back without tzinfo are taken as UTC, so expiry
    comparisons never mix naive and aware values.
    """

    id: UUID = Field(alias="_id", serialization_alias="id", default_factory=uuid4)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def to_mongo(self) -> dict[str, Any]:
        """Document for insertion, with the key under `_id`."""
        return {"_id": self.id, **self.model_dump(exclude={"id"})}

    @classmethod
    async def list_cursor(cls, cursor: AsyncCursor[dict[str, Any]]) -> list[Self]:
        return [cls.model_validate(doc) async for doc in cursor]
