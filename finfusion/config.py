"""Runtime settings for FinFusion.

Values are read from an optional YAML file (``FINFUSION_CONFIG``) and then
overridden by ``FINFUSION_*`` environment variables, so deployments can keep
a checked-in file and inject secrets through the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from functools import cache
from pathlib import Path
from typing import Any, Final

import yaml

from finfusion.engine.infra.paths import sqlite_url

CONFIG_ENV_FLAG: Final[str] = "FINFUSION_CONFIG"
ENV_PREFIX: Final[str] = "FINFUSION_"
DEV_JWT_SECRET: Final[str] = "finfusion-dev-secret-change-me"


def _default_cors_origins() -> list[str]:
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3001",
    ]


@dataclass(slots=True)
class Settings:
    """Resolved application settings.

    Attributes:
      database_url: SQLAlchemy URL; defaults to a SQLite file under ``data/``.
      jwt_secret: HMAC secret used to sign access and refresh tokens.
      bcrypt_rounds: Work factor of password hashes.
      access_token_minutes: Lifetime of access tokens.
      refresh_token_days: Lifetime of refresh tokens.
      cors_origins: Origins allowed by the CORS middleware.
      log_level: Level applied to ``finfusion.*`` loggers.
      json_logs: Also write JSON-lines audit logs to ``artifacts/logs``.
      scheduler_enabled: Start the background jobs with the API.
      recurring_job_hour: UTC hour of the recurring-transaction job.
      loan_job_hour: UTC hour of the scheduled loan payment job.
    """

    database_url: str = ""
    jwt_secret: str = DEV_JWT_SECRET
    bcrypt_rounds: int = 12
    access_token_minutes: int = 7 * 24 * 60
    refresh_token_days: int = 30
    cors_origins: list[str] = field(default_factory=_default_cors_origins)
    log_level: str = "INFO"
    json_logs: bool = False
    scheduler_enabled: bool = False
    recurring_job_hour: int = 2
    loan_job_hour: int = 9

    def __post_init__(self) -> None:
        if not self.database_url:
            self.database_url = sqlite_url()


def _coerce(raw: Any, template: Any) -> Any:
    """Convert ``raw`` to the type of the default value ``template``."""

    if isinstance(template, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(template, int):
        return int(raw)
    if isinstance(template, list):
        if isinstance(raw, str):
            return [item.strip() for item in raw.split(",") if item.strip()]
        return [str(item) for item in raw]
    return str(raw)


def _read_config_file(path: str | Path) -> dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return dict(payload)


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> Settings:
    """Build :class:`Settings` from a YAML file and environment variables."""

    env = os.environ if environ is None else environ
    defaults = Settings(database_url="sqlite://")
    values: dict[str, Any] = {}

    path = config_path or env.get(CONFIG_ENV_FLAG)
    if path:
        for key, raw in _read_config_file(path).items():
            if key not in Settings.__dataclass_fields__:
                raise ValueError(f"Unknown configuration key: {key}")
            values[key] = raw

    for spec in fields(Settings):
        env_key = ENV_PREFIX + spec.name.upper()
        if env_key in env:
            values[spec.name] = env[env_key]

    coerced = {key: _coerce(raw, getattr(defaults, key)) for key, raw in values.items()}
    return Settings(**coerced)


@cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""

    return load_settings()


def reset_settings() -> None:
    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "load_settings", "reset_settings"]
