"""Base Pydantic schemas with common patterns.

This module defines base schemas and common patterns used across the API.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration for all API schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )


class BaseResponse(BaseSchema):
    """Base response schema with id and timestamps."""

    id: int = Field(..., description="Unique identifier", examples=[1])
    created_at: datetime = Field(
        ...,
        description="Timestamp when the resource was created",
        examples=["2024-01-15T10:30:00Z"],
    )
    updated_at: datetime = Field(
        ...,
        description="Timestamp when the resource was last updated",
        examples=["2024-01-15T12:45:00Z"],
    )


class PaginatedResponse(BaseSchema, Generic[T]):
    """Generic paginated response wrapper."""

    items: list[T] = Field(..., description="List of items in the current page")
    total: int = Field(..., ge=0, description="Total number of items")
    page: int = Field(..., ge=1, description="Current page number (1-indexed)")
    size: int = Field(..., ge=1, description="Number of items per page")
    pages: int = Field(..., ge=0, description="Total number of pages")

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        page: int,
        size: int,
    ) -> PaginatedResponse[T]:
        """Create a paginated response from items and pagination info."""
        pages = (total + size - 1) // size if size > 0 else 0
        return cls(items=items, total=total, page=page, size=size, pages=pages)


class MessageResponse(BaseSchema):
    """Simple message response schema."""

    message: str = Field(
        ...,
        description="Response message",
        examples=["Operation completed successfully"],
    )


__all__ = [
    "BaseResponse",
    "BaseSchema",
    "MessageResponse",
    "PaginatedResponse",
]
