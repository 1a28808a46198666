"""Reusable response envelope helpers."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Generic success envelope."""

    success: bool = True
    data: T | None = None


def build_response(data: T) -> ApiResponse[T]:
    """Wrap payload into success envelope."""
    return ApiResponse(success=True, data=data)
