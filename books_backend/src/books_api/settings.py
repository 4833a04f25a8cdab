from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PORT = 5555


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables (and a .env file, if present).

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/books.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - HOST: interface to bind. Default '0.0.0.0'
    - PORT: port to listen on. Default 5555
    - LOG_LEVEL: logging level name. Default 'INFO'
    - LOG_FILE: optional path of a rotating log file
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    host: str
    port: int
    log_level: str
    log_file: Optional[str]


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_port(value: str, default: int = DEFAULT_PORT) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        return default
    if not (0 < port < 65536):
        return default
    return port


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/books.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    log_file = os.getenv("LOG_FILE", "").strip() or None

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_port(_get_env("PORT", str(DEFAULT_PORT))),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        log_file=log_file,
    )
