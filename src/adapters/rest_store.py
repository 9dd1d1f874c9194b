"""`DataStore` sobre una API REST estilo PostgREST (Supabase).

Convenciones PostgREST:
- `GET /rest/v1/<tabla>?columna=eq.<valor>` para filtrar.
- `Prefer: return=representation` para recibir las filas escritas.

Los errores HTTP se propagan (`httpx.HTTPStatusError`/`TransportError`); la
traducción a `ServiceError` ocurre en la capa que los muestra.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.interfaces.store import Row

logger = logging.getLogger(__name__)


def _eq_filters(filters: Mapping[str, Any] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for key, value in (filters or {}).items():
        if value is None:
            params[key] = "is.null"
        elif isinstance(value, bool):
            params[key] = f"eq.{str(value).lower()}"
        else:
            params[key] = f"eq.{value}"
    return params


class RestDataStore:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        if not self._settings.store_url:
            raise RuntimeError("Missing store URL. Configure WORKFORCE_AI_STORE_URL.")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Prefer": "return=representation"}
        key = self._settings.store_api_key
        if key:
            headers["apikey"] = key
            headers["Authorization"] = f"Bearer {key}"
        return build_async_client(
            self._settings,
            base_url=f"{self._settings.store_url.rstrip('/')}/rest/v1",
            extra_headers=headers,
            transport=self._transport,
        )

    async def select(self, table: str, *, filters: Mapping[str, Any] | None = None) -> list[Row]:
        async with self._client() as client:
            response = await client.get(f"/{table}", params={"select": "*", **_eq_filters(filters)})
        response.raise_for_status()
        return list(response.json())

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        async with self._client() as client:
            response = await client.post(f"/{table}", json=dict(row))
        response.raise_for_status()
        rows = response.json()
        return rows[0] if isinstance(rows, list) and rows else dict(row)

    async def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Row | None:
        async with self._client() as client:
            response = await client.patch(f"/{table}", params=_eq_filters({"id": row_id}), json=dict(changes))
        response.raise_for_status()
        rows = response.json()
        if not rows:
            logger.info("Update on %s matched no row with id %s", table, row_id)
            return None
        return rows[0]

    async def delete(self, table: str, row_id: str) -> bool:
        async with self._client() as client:
            response = await client.delete(f"/{table}", params=_eq_filters({"id": row_id}))
        response.raise_for_status()
        return bool(response.json())
