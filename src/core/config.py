"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (GraphQL/HTTP, fichero de estado) lean config de
  forma consistente.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from core.services.selection import normalize_selection

APP_DIR_NAME = "unraid-sync"

DEFAULT_POLL_INTERVAL_SECONDS = 60
MIN_POLL_INTERVAL_SECONDS = 5


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


def split_domain_list(value: Any) -> list[str] | None:
    """Convierte `"a, b"` o `'["a", "b"]'` en una lista de ids.

    Devuelve None cuando no queda ningún id (equivale a "usar los defaults").
    """

    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            text = text.strip("[]")
        parts = [part.strip().strip('"').strip("'") for part in text.split(",")]
    else:
        parts = [str(item).strip() for item in value]
    parts = [part for part in parts if part]
    return parts or None


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except OSError as exc:
            logger.warning(f"Could not read {env_path}, rewriting it: {exc}")
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# unraid-sync user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Settings de la aplicación.

    Cada campo se puede definir con una variable de entorno `UNRAID_SYNC_*`,
    el `.env` del proyecto o el `.env` del usuario.
    """

    model_config = SettingsConfigDict(
        env_prefix="UNRAID_SYNC_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global del usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    base_url: str | None = Field(
        default=None,
        description="URL base del servidor (el endpoint GraphQL es <base_url>/graphql).",
    )
    api_token: str | None = Field(
        default=None,
        description="API key enviada en la cabecera `x-api-key`.",
    )
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        description=f"Segundos entre el fin de un ciclo y el siguiente (mín. {MIN_POLL_INTERVAL_SECONDS}).",
    )
    allow_self_signed: bool = Field(
        default=False,
        description="Acepta certificados TLS autofirmados.",
    )
    enabled_domains: Annotated[list[str] | None, NoDecode] = Field(
        default=None,
        description="Ids de dominio a seguir (separados por comas); vacío = defaults del catálogo.",
    )
    http_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="unraid-sync/0.1",
        min_length=1,
        description="User-Agent enviado en cada request.",
    )
    state_file: Path = Field(
        default_factory=lambda: get_user_config_dir() / "state.json",
        description="Fichero JSON con el árbol de estados replicado.",
    )
    namespace: str = Field(
        default="unraid.0",
        min_length=1,
        description="Namespace de los objetos replicados.",
    )

    @field_validator("poll_interval_seconds", mode="before")
    @classmethod
    def _clamp_poll_interval(cls, value: Any) -> float:
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            return float(DEFAULT_POLL_INTERVAL_SECONDS)
        if seconds != seconds or seconds <= 0:
            return float(DEFAULT_POLL_INTERVAL_SECONDS)
        return max(seconds, float(MIN_POLL_INTERVAL_SECONDS))

    @field_validator("enabled_domains", mode="before")
    @classmethod
    def _split_domains(cls, value: Any) -> list[str] | None:
        return split_domain_list(value)


@dataclass(frozen=True)
class RuntimeConfig:
    """Vista validada de los settings que usa una sesión en marcha."""

    base_url: str
    api_token: str
    poll_interval_seconds: float
    allow_self_signed: bool
    enabled_domains: tuple[str, ...]
    http_timeout_seconds: float = 15.0
    user_agent: str = "unraid-sync/0.1"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/graphql"


def load_runtime_config(settings: AppSettings | None = None) -> RuntimeConfig | None:
    """Valida los settings; None (tras loguear el motivo) si la sesión no puede arrancar."""

    settings = settings or AppSettings()
    base_url = (settings.base_url or "").strip()
    api_token = (settings.api_token or "").strip()

    if not base_url:
        logger.error("Base URL is not configured (UNRAID_SYNC_BASE_URL).")
        return None
    if not api_token:
        logger.error("API token is not configured (UNRAID_SYNC_API_TOKEN).")
        return None

    return RuntimeConfig(
        base_url=base_url,
        api_token=api_token,
        poll_interval_seconds=settings.poll_interval_seconds,
        allow_self_signed=settings.allow_self_signed,
        enabled_domains=normalize_selection(settings.enabled_domains),
        http_timeout_seconds=settings.http_timeout_seconds,
        user_agent=settings.user_agent,
    )
