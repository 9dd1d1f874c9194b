"""`DataStore` en memoria.

Útil para tests y para ejecutar la CLI sin backend: las filas se copian al
entrar y al salir, de modo que nadie comparte referencias mutables con el store.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Mapping

from core.interfaces.store import Row


class InMemoryDataStore:
    def __init__(self, tables: Mapping[str, list[Row]] | None = None) -> None:
        self._tables: dict[str, list[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def _table(self, table: str) -> list[Row]:
        return self._tables.setdefault(table, [])

    async def select(self, table: str, *, filters: Mapping[str, Any] | None = None) -> list[Row]:
        rows = self._table(table)
        if filters:
            rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]
        return copy.deepcopy(rows)

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        stored = copy.deepcopy(dict(row))
        stored.setdefault("id", uuid.uuid4().hex)
        self._table(table).append(stored)
        return copy.deepcopy(stored)

    async def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Row | None:
        for row in self._table(table):
            if row.get("id") == row_id:
                row.update(copy.deepcopy(dict(changes)))
                return copy.deepcopy(row)
        return None

    async def delete(self, table: str, row_id: str) -> bool:
        rows = self._table(table)
        before = len(rows)
        rows[:] = [r for r in rows if r.get("id") != row_id]
        return len(rows) != before
