"""Database configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

DEFAULT_DATABASE_URI: Final[str] = "sqlite+pysqlite:///:memory:"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def _env_flag(name: str) -> bool:
    value = os.getenv(name)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_database_config() -> DatabaseConfig:
    """Return the database settings, honouring ``DATABASE_URI`` and ``DATABASE_ECHO``."""

    env_uri = os.getenv("DATABASE_URI")
    uri = env_uri.strip() if env_uri and env_uri.strip() else DEFAULT_DATABASE_URI
    return DatabaseConfig(uri=uri, echo=_env_flag("DATABASE_ECHO"))
