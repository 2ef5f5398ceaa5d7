"""Common Pydantic schemas."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _to_naive_utc(value: datetime) -> datetime:
    """Store every timestamp as naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]


class CamelModel(BaseModel):
    """Base schema that speaks camelCase JSON and accepts snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ServiceSelection(CamelModel):
    """Food and accommodation flags."""

    food: bool = Field(False, description="Food service")
    accommodation: bool = Field(False, description="Accommodation service")


class UserSummary(CamelModel):
    """Minimal user reference embedded in other resources."""

    id: str = Field(..., alias="_id", description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    success: bool = Field(True, description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
