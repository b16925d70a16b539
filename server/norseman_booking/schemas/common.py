"""Common Pydantic schemas."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.exceptions import ValidationError


class CamelModel(BaseModel):
    """Base for API bodies: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="JSON path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    code: Optional[str] = Field(None, description="Application-specific error code")
    retryable: Optional[bool] = Field(None, description="Whether the operation can be retried")
    errors: Optional[List[Violation]] = Field(None, description="Validation errors")


def parse_uuid(value: str, field: str = "id") -> UUID:
    """Parse a path or body identifier, raising a 400 problem when malformed."""
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as e:
        raise ValidationError(
            detail=f"Ugyldig {field}.",
            errors=[{"path": field, "message": "Must be a valid UUID"}],
        ) from e
