"""Carga de snapshots JSON del workspace.

Formatos aceptados:
- Snapshot de una empresa: `{"company": {...}, "teams": [...], ...}` (el que
  escribe `save_workspace`).
- Exportación completa de la app: `{"companies": [...], "teams": [...], ...}`
  con `companyId` en cada fila; se elige una empresa y se filtra todo lo demás.

Migraciones heredadas:
- `departments` → `teams` y `departmentId` → `teamId` en empleados.

Con un `DataStore` configurado, cada colección del export es una tabla con el
mismo nombre; `load_workspace_from_store` lee una empresa y
`save_workspace_to_store` escribe solo las filas que cambiaron.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from core.domain.models import UserSettings, Workspace
from core.interfaces.store import DataStore, Row

logger = logging.getLogger(__name__)

# Colección del export → campo del Workspace.
_COMPANY_SCOPED = {
    "teams": "teams",
    "employees": "employees",
    "clients": "clients",
    "projects": "projects",
    "tasks": "tasks",
    "meetingMinutes": "meeting_minutes",
    "events": "events",
    "files": "files",
    "softwareAssets": "assets",
}
_PROJECT_SCOPED = {
    "projectPhases": "phases",
    "projectBudgets": "budgets",
    "projectExpenses": "expenses",
}


class WorkspaceFormatError(ValueError):
    """El JSON no tiene la forma de un snapshot ni de una exportación."""


def _migrate_employees(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    migrated = []
    for row in rows:
        row = dict(row)
        if row.get("departmentId") and not row.get("teamId"):
            row["teamId"] = row.pop("departmentId")
        migrated.append(row)
    return migrated


def _pick_company(companies: list[dict[str, Any]], company: str | None) -> dict[str, Any]:
    if not companies:
        raise WorkspaceFormatError("The export contains no companies.")
    if company is None:
        return companies[0]
    needle = company.strip().lower()
    for row in companies:
        if row.get("id") == company or str(row.get("name", "")).lower() == needle:
            return row
    raise WorkspaceFormatError(f"Company {company!r} not found in the export.")


def workspace_from_export(data: dict[str, Any], company: str | None = None) -> Workspace:
    if "teams" not in data and "departments" in data:
        data = {**data, "teams": data["departments"]}
    selected = _pick_company(list(data.get("companies") or []), company)
    company_id = selected.get("id")

    fields: dict[str, Any] = {"company": selected}
    for key, field_name in _COMPANY_SCOPED.items():
        fields[field_name] = [r for r in data.get(key) or [] if r.get("companyId") == company_id]
    fields["employees"] = _migrate_employees(fields["employees"])

    project_ids = {p.get("id") for p in fields["projects"]}
    for key, field_name in _PROJECT_SCOPED.items():
        fields[field_name] = [r for r in data.get(key) or [] if r.get("projectId") in project_ids]

    return Workspace.model_validate(fields)


def workspace_from_snapshot(data: dict[str, Any]) -> Workspace:
    data = dict(data)
    if "teams" not in data and "departments" in data:
        data["teams"] = data.pop("departments")
    if "employees" in data:
        data["employees"] = _migrate_employees(list(data["employees"]))
    return Workspace.model_validate(data)


def load_workspace(path: Path, company: str | None = None) -> Workspace:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise WorkspaceFormatError("Workspace file must contain a JSON object.")
    if "company" in data:
        return workspace_from_snapshot(data)
    if "companies" in data:
        return workspace_from_export(data, company)
    raise WorkspaceFormatError("Expected a 'company' snapshot or a 'companies' export.")


def read_user_settings(path: Path) -> UserSettings | None:
    """Ajustes del usuario incluidos en una exportación, si los hay."""

    data = json.loads(path.read_text(encoding="utf-8"))
    profile = data.get("userProfile") if isinstance(data, dict) else None
    if not isinstance(profile, dict) or not isinstance(profile.get("settings"), dict):
        return None
    return UserSettings.model_validate(profile["settings"])


def save_workspace(workspace: Workspace, output_path: Path) -> Path:
    """Escribe el snapshot de una empresa en JSON UTF-8 estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = workspace.model_dump(mode="json", by_alias=True)
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    logger.info("Workspace snapshot written to %s", output_path)
    return output_path


def is_app_export(path: Path) -> bool:
    """`True` si el fichero es la exportación multiempresa de la app."""

    data = json.loads(path.read_text(encoding="utf-8"))
    return isinstance(data, dict) and "companies" in data and "company" not in data


async def load_workspace_from_store(store: DataStore, company: str | None = None) -> Workspace:
    selected = _pick_company(await store.select("companies"), company)
    company_id = selected.get("id")

    data: dict[str, Any] = {"companies": [selected]}
    for table in _COMPANY_SCOPED:
        data[table] = await store.select(table, filters={"companyId": company_id})

    project_ids = [p.get("id") for p in data["projects"]]
    for table in _PROJECT_SCOPED:
        rows: list[Row] = []
        for project_id in project_ids:
            rows.extend(await store.select(table, filters={"projectId": project_id}))
        data[table] = rows

    return workspace_from_export(data, company_id)


def _store_rows(workspace: Workspace) -> dict[str, dict[str, Row]]:
    """Filas por tabla, indexadas por id, tal como se guardan en el store."""

    company_id = workspace.company.id
    tables: dict[str, dict[str, Row]] = {}
    for table, field_name in {**_COMPANY_SCOPED, **_PROJECT_SCOPED}.items():
        keyed: dict[str, Row] = {}
        for model in getattr(workspace, field_name):
            row = model.model_dump(mode="json", by_alias=True)
            if table in _COMPANY_SCOPED:
                row["companyId"] = company_id
            # Los presupuestos no tienen id propio: uno por proyecto.
            row.setdefault("id", row.get("projectId"))
            keyed[row["id"]] = row
        tables[table] = keyed
    return tables


async def save_workspace_to_store(
    store: DataStore,
    workspace: Workspace,
    previous: Workspace | None = None,
) -> int:
    """Sincroniza `workspace` con el store y devuelve el número de escrituras.

    `previous` es el estado leído al empezar; sin él todas las filas se
    insertan. Las filas que ya no están en `workspace` se borran.
    """

    writes = 0
    company_row = workspace.company.model_dump(mode="json", by_alias=True)
    if previous is None or previous.company.model_dump(mode="json", by_alias=True) != company_row:
        if await store.update("companies", workspace.company.id, company_row) is None:
            await store.insert("companies", company_row)
        writes += 1

    before = _store_rows(previous) if previous is not None else {}
    for table, rows in _store_rows(workspace).items():
        old = before.get(table, {})
        for key, row in rows.items():
            if key not in old:
                await store.insert(table, row)
                writes += 1
            elif old[key] != row:
                await store.update(table, key, row)
                writes += 1
        for key in sorted(old.keys() - rows.keys()):
            await store.delete(table, key)
            writes += 1

    logger.info("Synced workspace %s to the store (%d writes)", workspace.company.id, writes)
    return writes
