"""HTTP client for the key-value storage endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ascent.tracker.errors import StorageError

logger = logging.getLogger(__name__)


class StorageClient:
    """Typed wrapper around ``GET /storage?key=`` and ``POST /storage``.

    Every failure (transport error, non-2xx status, ``success: false`` body)
    surfaces as ``StorageError``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> StorageClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, key: str) -> Any:  # noqa: ANN401
        """Return the value stored under ``key`` (None when absent)."""
        body = await self._request("GET", key, params={"key": key})
        return body.get("value")

    async def set(self, key: str, value: Any) -> Any:  # noqa: ANN401
        """Upsert ``value`` under ``key``. Returns the value echoed by the server."""
        body = await self._request("POST", key, json={"key": key, "value": value})
        return body.get("value")

    async def _request(self, method: str, key: str, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        try:
            response = await self._client.request(method, "/storage", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Storage %s for %r failed: %s", method, key, exc)
            raise StorageError(f"Storage unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            logger.warning("Storage %s for %r returned a non-object body", method, key)
            raise StorageError(f"Malformed storage response (HTTP {response.status_code})")

        if response.status_code >= 400 or not body.get("success", False):
            message = body.get("error") or f"HTTP {response.status_code}"
            logger.warning("Storage %s for %r rejected: %s", method, key, message)
            raise StorageError(message)
        return body
