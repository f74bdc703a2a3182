"""Shared schema building blocks: camelCase base model and the response envelope."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint: {success, message, data?}."""

    success: bool = Field(default=True, description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: T | None = Field(default=None, description="Payload, when the endpoint returns one")


class ErrorResponse(BaseModel):
    """Failure envelope: {success: false, message}."""

    success: bool = False
    message: str


class Pagination(CamelModel):
    offset: int
    limit: int
    total: int
    total_pages: int
