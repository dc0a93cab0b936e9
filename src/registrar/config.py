"""Runtime configuration for Registrar, read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

DEFAULT_DB_PATH = "registrar.db"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_CORS_ORIGINS = ("http://localhost:4200", "http://localhost:3000")
DEFAULT_WRITE_RETRIES = 3
DEFAULT_BULK_LIMIT = 100


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def _int_setting(env: Mapping[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


@dataclass
class Settings:
    """Service settings.

    Attributes:
        db_path: SQLite database file (":memory:" for a throwaway store).
        host: Interface the HTTP server binds to.
        port: Port the HTTP server listens on.
        cors_origins: Origins allowed to call the API from a browser.
        write_retries: Extra attempts for a write that hits a transient
            storage error (e.g. a locked database).
        bulk_limit: Maximum drafts accepted by one bulk student request.
    """

    db_path: str = DEFAULT_DB_PATH
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    write_retries: int = DEFAULT_WRITE_RETRIES
    bulk_limit: int = DEFAULT_BULK_LIMIT

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from REGISTRAR_* environment variables.

        Args:
            env: Mapping to read instead of os.environ (used by tests).

        Returns:
            Parsed settings with defaults for anything unset.

        Raises:
            ConfigError: If a numeric setting is malformed or out of range.
        """
        if env is None:
            env = os.environ

        origins_raw = env.get("REGISTRAR_CORS_ORIGINS")
        if origins_raw:
            cors_origins = [o.strip() for o in origins_raw.split(",") if o.strip()]
        else:
            cors_origins = list(DEFAULT_CORS_ORIGINS)

        return cls(
            db_path=env.get("REGISTRAR_DB_PATH", DEFAULT_DB_PATH),
            host=env.get("REGISTRAR_HOST", DEFAULT_HOST),
            port=_int_setting(env, "REGISTRAR_PORT", DEFAULT_PORT, 1),
            cors_origins=cors_origins,
            write_retries=_int_setting(env, "REGISTRAR_WRITE_RETRIES", DEFAULT_WRITE_RETRIES, 0),
            bulk_limit=_int_setting(env, "REGISTRAR_BULK_LIMIT", DEFAULT_BULK_LIMIT, 1),
        )
