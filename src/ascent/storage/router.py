"""Key-value storage endpoints: GET and POST /storage."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ascent.database import get_session
from ascent.storage.schemas import StorageErrorResponse, StorageResponse, StorageWriteRequest
from ascent.storage.service import get_value, upsert_value

router = APIRouter(tags=["Storage"])


def _key_required() -> JSONResponse:
    body = StorageErrorResponse(error="Key is required")
    return JSONResponse(status_code=400, content=body.model_dump())


@router.get("/storage", response_model=None)
async def read_value(
    key: str | None = Query(default=None),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> StorageResponse | JSONResponse:
    """Read the value stored under ``key``. Missing keys yield ``value: null``."""
    if not key:
        return _key_required()
    return StorageResponse(value=await get_value(db, key))


@router.post("/storage", response_model=None)
async def write_value(
    body: StorageWriteRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> StorageResponse | JSONResponse:
    """Upsert ``value`` under ``key`` and echo it back."""
    if not body.key:
        return _key_required()
    stored = await upsert_value(db, body.key, body.value)
    return StorageResponse(value=stored)
