"""Festivos públicos (API Nager.Date).

Reglas:
- Sin país configurado no se consulta nada.
- 204 significa "sin festivos" para ese país.
- Cualquier fallo se registra y devuelve lista vacía: el calendario nunca
  debe romperse por un servicio externo opcional.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import TypeAdapter

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import PublicHoliday

logger = logging.getLogger(__name__)

_HOLIDAYS = TypeAdapter(list[PublicHoliday])


class HolidayClient:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    async def get_public_holidays(self, year: int, country_code: str | None) -> list[PublicHoliday]:
        if not country_code:
            return []

        url = f"{self._settings.holidays_base_url.rstrip('/')}/PublicHolidays/{year}/{country_code.upper()}"
        try:
            async with build_async_client(self._settings, transport=self._transport) as client:
                response = await client.get(url)
            if response.status_code == 204:
                return []
            response.raise_for_status()
            return _HOLIDAYS.validate_python(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error fetching public holidays for %s/%s: %s", country_code, year, exc)
            return []


async def get_public_holidays(
    year: int,
    country_code: str | None,
    *,
    settings: AppSettings | None = None,
) -> list[PublicHoliday]:
    return await HolidayClient(settings).get_public_holidays(year, country_code)
