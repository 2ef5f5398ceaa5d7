"""Helpers for validating multipart form fields into schemas."""

import json
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_model(model_cls: Type[ModelT], data: dict[str, Any]) -> ModelT:
    """
    Validate form fields into a schema; absent and empty fields are dropped.

    Raises:
        ValidationError: With one entry per invalid field
    """
    aliases = {name: field.alias or name for name, field in model_cls.model_fields.items()}
    present = {
        aliases.get(key, key): value
        for key, value in data.items()
        if value is not None and value != ""
    }
    try:
        return model_cls.model_validate(present)
    except PydanticValidationError as e:
        # Error keys use the JSON (camelCase) field names
        errors = {
            ".".join(str(aliases.get(part, part)) for part in error["loc"]) or "body": error["msg"]
            for error in e.errors()
        }
        raise ValidationError(errors=errors)


def parse_json_object(raw: Optional[str], field: str) -> Optional[dict[str, Any]]:
    """Decode a form field carrying a JSON object."""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(detail=f"{field} must be valid JSON", errors={field: raw})
    if not isinstance(value, dict):
        raise ValidationError(detail=f"{field} must be a JSON object", errors={field: raw})
    return value
