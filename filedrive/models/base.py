from datetime import datetime
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from filedrive.utils.clock import as_utc


class CamelModel(BaseModel):
    """Reads snake_case Mongo documents, serializes camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def stringify_object_ids(cls, value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        return value

    @field_validator("*")
    @classmethod
    def datetimes_as_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value
