"""Aplicación de un `AssetAction` sobre la lista de activos de software."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Sequence

from pydantic import ValidationError

from core.domain.models import SoftwareAsset
from core.domain.tools import AssetAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetActionResult:
    assets: list[SoftwareAsset]
    response_text: str
    changed: bool


def _find_by_name(assets: Sequence[SoftwareAsset], name: str | None) -> SoftwareAsset | None:
    if not name:
        return None
    needle = name.strip().lower()
    return next((a for a in assets if a.name.strip().lower() == needle), None)


def apply_asset_action(
    action: AssetAction,
    assets: Sequence[SoftwareAsset],
    company_id: str | None = None,
) -> AssetActionResult:
    """Devuelve una lista nueva; `assets` nunca se modifica.

    - `add`: requiere un payload completo (valida como `SoftwareAsset`).
    - `update` / `remove`: buscan por nombre sin distinguir mayúsculas; si no
      hay coincidencia no cambia nada y solo se muestra `response_text`.
    - `query` / `error`: solo conversación.
    """

    current = list(assets)
    unchanged = AssetActionResult(current, action.response_text, False)
    payload = action.payload.model_dump(exclude_none=True) if action.payload else {}

    if action.action == "add":
        if not payload:
            return unchanged
        try:
            new_asset = SoftwareAsset.model_validate(
                {"id": f"asset_{uuid.uuid4().hex[:12]}", "company_id": company_id, **payload}
            )
        except ValidationError as exc:
            logger.info("Asset add skipped, incomplete payload: %s", exc)
            return unchanged
        return AssetActionResult([*current, new_asset], action.response_text, True)

    if action.action in ("update", "remove"):
        target = _find_by_name(current, action.asset_name)
        if target is None:
            logger.info("No asset named %r; %s skipped", action.asset_name, action.action)
            return unchanged
        if action.action == "remove":
            return AssetActionResult([a for a in current if a is not target], action.response_text, True)
        if not payload:
            return unchanged
        try:
            updated = SoftwareAsset.model_validate({**target.model_dump(), **payload})
        except ValidationError as exc:
            logger.info("Asset update skipped for %r: %s", target.name, exc)
            return unchanged
        return AssetActionResult(
            [updated if a is target else a for a in current],
            action.response_text,
            True,
        )

    return unchanged
