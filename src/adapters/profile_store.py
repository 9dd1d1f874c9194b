"""Perfil de usuario persistido localmente.

Un JSON por usuario en `<config dir>/profiles/<namespace>_<user id>.json`.
El perfil invitado (`guest`) se crea la primera vez que se pide.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from core.config import get_user_config_dir
from core.domain.models import UserProfile, UserSettings

logger = logging.getLogger(__name__)

GUEST_ID = "guest"


class ProfileStore:
    def __init__(self, base_dir: Path | None = None, *, namespace: str = "user") -> None:
        self._base_dir = base_dir or (get_user_config_dir() / "profiles")
        self._namespace = namespace

    def path_for(self, user_id: str) -> Path:
        return self._base_dir / f"{self._namespace}_{user_id}.json"

    def load(self, user_id: str) -> UserProfile | None:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            return UserProfile.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("Failed to read profile %s: %s", path, exc)
            return None

    def save(self, profile: UserProfile) -> Path:
        path = self.path_for(profile.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = profile.model_dump(mode="json", by_alias=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        return path

    def load_or_create_guest(self) -> UserProfile:
        existing = self.load(GUEST_ID)
        if existing is not None:
            return existing
        guest = UserProfile(id=GUEST_ID, name="Guest User", settings=UserSettings())
        self.save(guest)
        return guest

    def update_settings(self, user_id: str, changes: dict[str, Any]) -> UserProfile:
        """Fusiona `changes` sobre los ajustes actuales y persiste el resultado."""

        profile = self.load(user_id)
        if profile is None:
            raise KeyError(f"No stored profile for user {user_id!r}")
        settings = UserSettings.model_validate(
            {**profile.settings.model_dump(), **{to_snake(k): v for k, v in changes.items()}}
        )
        updated = profile.model_copy(update={"settings": settings})
        self.save(updated)
        return updated
