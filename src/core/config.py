"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (IA/HTTP/store) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_DIR_NAME = "workforce-ai"
ENV_PREFIX = "WORKFORCE_AI_"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario.

    Las claves con valor `None` se ignoran (no borran lo existente).
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# workforce-ai user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    ai_api_key: str | None = Field(
        default=None,
        description="API key del proveedor de IA generativa.",
    )
    ai_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        min_length=8,
        description="Base URL compatible OpenAI (por defecto el endpoint de Gemini).",
    )
    ai_model: str = Field(
        default="gemini-2.5-flash",
        min_length=1,
        description="Modelo de texto/JSON usado por todas las personas.",
    )
    ai_image_model: str = Field(
        default="imagen-4.0-generate-001",
        min_length=1,
        description="Modelo de generación de imágenes.",
    )
    ai_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout para llamadas al proveedor IA (segundos).",
    )
    ai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Temperatura de muestreo para conversaciones.",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request HTTP (holidays, store).",
    )
    user_agent: str = Field(
        default="workforce-ai/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones HTTP salientes.",
    )

    holidays_base_url: str = Field(
        default="https://date.nager.at/api/v3",
        min_length=8,
        description="Base URL de la API pública de festivos (Nager.Date).",
    )

    store_url: str | None = Field(
        default=None,
        description="URL del backend relacional (PostgREST/Supabase), p.ej. https://x.supabase.co.",
    )
    store_api_key: str | None = Field(
        default=None,
        description="API key (anon/service) del backend relacional.",
    )

    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Moneda ISO-4217 por defecto para presupuestos.",
    )
    default_daily_request_limit: int = Field(
        default=50,
        ge=0,
        description="Presupuesto diario de llamadas IA por empresa (blando).",
    )
    global_request_limit: int = Field(
        default=100,
        ge=0,
        description="Presupuesto global diario repartible entre empresas.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
