"""Presupuesto blando de peticiones diarias a la IA.

El contador se actualiza de forma optimista en el cliente tras cada llamada.
No es un límite de concurrencia ni se impone en servidor: solo sirve para
avisar y deshabilitar acciones en la UI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from core.domain.models import Company, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LimitAllocation:
    limit: int
    reduced: bool


@dataclass
class UsageTracker:
    default_daily_limit: int = 50
    global_limit: int = 100

    @staticmethod
    def _is_new_day(company: Company, now: datetime) -> bool:
        last = company.last_api_request_at
        return last is None or last.date() != now.date()

    def limit_for(self, company: Company) -> int:
        if company.daily_api_request_limit is None:
            return self.default_daily_limit
        return company.daily_api_request_limit

    def is_available(self, company: Company, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self._is_new_day(company, now) or company.api_request_count < self.limit_for(company)

    def remaining(self, company: Company, now: datetime | None = None) -> int:
        now = now or utcnow()
        used = 0 if self._is_new_day(company, now) else company.api_request_count
        return max(self.limit_for(company) - used, 0)

    def record(self, company: Company, now: datetime | None = None) -> Company:
        """Devuelve una copia con el contador reiniciado o incrementado."""

        now = now or utcnow()
        count = 1 if self._is_new_day(company, now) else company.api_request_count + 1
        if count > self.limit_for(company):
            logger.warning("Company %s is over its daily AI budget (%d/%d)", company.id, count, self.limit_for(company))
        return company.model_copy(update={"api_request_count": count, "last_api_request_at": now})

    def allocate_daily_limit(self, companies: Sequence[Company]) -> LimitAllocation:
        """Límite para una empresa nueva según lo que queda del pool global."""

        assigned = sum(c.daily_api_request_limit or 0 for c in companies)
        left = max(self.global_limit - assigned, 0)
        if left < self.default_daily_limit:
            return LimitAllocation(limit=left, reduced=True)
        return LimitAllocation(limit=self.default_daily_limit, reduced=False)
