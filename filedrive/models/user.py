from datetime import datetime

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

from .base import CamelModel
from filedrive.utils.clock import utcnow


class PyObjectId(ObjectId):
    @classmethod
    def __get_pydantic_core_schema__(cls, _source, _handler: GetCoreSchemaHandler):
        return core_schema.no_info_after_validator_function(
            cls.validate,
            core_schema.union_schema(
                [core_schema.str_schema(), core_schema.is_instance_schema(ObjectId)]
            ),
        )

    @classmethod
    def validate(cls, v):
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError("Invalid ObjectId")

    @classmethod
    def __get_pydantic_json_schema__(cls, schema, handler):
        json_schema = handler(schema)
        json_schema.update(type="string", example="64f0c5e97b2c3e001f9a1234")
        return json_schema


class UserInDB(BaseModel):
    id: PyObjectId = Field(default_factory=PyObjectId, alias="_id")
    username: str
    hashed_password: str
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )


class UserPublic(CamelModel):
    """User as returned by the API (never includes the password hash)."""

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    username: str
    created_at: datetime
