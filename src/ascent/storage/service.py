"""Key-value persistence over the app_storage table."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ascent.db.models import AppStorage

logger = structlog.get_logger()


def decode_value(raw: str | None) -> Any:  # noqa: ANN401
    """Parse a stored value. Non-JSON strings are returned unchanged."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


async def get_value(db: AsyncSession, key: str) -> Any:  # noqa: ANN401
    """Return the decoded value stored under ``key`` or None."""
    result = await db.execute(select(AppStorage.value).where(AppStorage.key == key))
    return decode_value(result.scalar_one_or_none())


async def upsert_value(db: AsyncSession, key: str, value: Any) -> Any:  # noqa: ANN401
    """Insert or replace the value under ``key``. Returns the stored value."""
    serialized = json.dumps(value)
    now = datetime.now(timezone.utc)

    dialect = db.get_bind().dialect.name
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    stmt = insert(AppStorage).values(key=key, value=serialized, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[AppStorage.key],
        set_={"value": serialized, "updated_at": now},
    )
    await db.execute(stmt)
    await db.commit()

    logger.info("storage_upsert", key=key, size=len(serialized))
    return value