"""Contrato del almacén relacional.

El backend es un colaborador CRUD delgado: una tabla por entidad y cuatro
verbos. No hay transacciones entre tablas en esta capa.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

Row = dict[str, Any]


@runtime_checkable
class DataStore(Protocol):
    async def select(self, table: str, *, filters: Mapping[str, Any] | None = None) -> list[Row]:
        ...

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        ...

    async def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Row | None:
        """Devuelve la fila actualizada o `None` si no existe."""

        ...

    async def delete(self, table: str, row_id: str) -> bool:
        ...
