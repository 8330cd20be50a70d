from datetime import datetime, timezone
from typing import Annotated, Any, Dict

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def new_id() -> str:
    return str(ObjectId())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def coerce_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


IdStr = Annotated[str, BeforeValidator(coerce_id)]


class MongoModel(BaseModel):
    """Document stored in a MongoDB collection under a string ``_id``."""

    model_config = ConfigDict(populate_by_name=True)

    id: IdStr = Field(default_factory=new_id, alias="_id")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="python")
