"""Pydantic request/response models for the key-value storage endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class StorageWriteRequest(BaseModel):
    key: str | None = None
    value: Any = None


class StorageResponse(BaseModel):
    success: bool = True
    value: Any = None


class StorageErrorResponse(BaseModel):
    success: bool = False
    error: str
    value: Any = None
