"""API response envelope shared by every route.

{ success: bool, data: T | None, error: str | None, meta: dict | None }
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope for all API responses."""

    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None

    @classmethod
    def ok(cls, data: Any = None, meta: dict | None = None) -> dict:
        """Serialized success envelope."""
        return cls(success=True, data=data, meta=meta).model_dump()

    @classmethod
    def failure(cls, error: str, data: Any = None, meta: dict | None = None) -> dict:
        """Serialized error envelope; *data* may still carry a partial result."""
        return cls(success=False, data=data, error=error, meta=meta).model_dump()
