"""
db/config.py

Connection settings for the tracking store.

Deployments use PostgreSQL through psycopg 3. Local runs and the test suite
may point the same variables at a SQLite file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES = (".env", ".env.local")
_CLOUD_LIKE_ENVIRONMENTS = {"prod", "production", "staging", "cloud"}
_URL_VARIABLES = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")


def read_env_file(path: Path) -> dict[str, str]:
    """
    Parse ``KEY=VALUE`` lines; comments, blanks and ``export`` prefixes allowed.
    """

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.removeprefix("export ").strip()
        if key:
            values[key] = value.strip().strip('"').strip("'")
    return values


def load_env_files(root: Path | None = None) -> None:
    """
    Copy values from ``.env`` then ``.env.local`` into the process environment.

    Variables already set in the environment win.
    """

    base = root or PROJECT_ROOT
    for filename in ENV_FILENAMES:
        env_path = base / filename
        if not env_path.is_file():
            continue
        for key, value in read_env_file(env_path).items():
            os.environ.setdefault(key, value)


def normalize_database_url(url: str) -> str:
    """
    Pin PostgreSQL URLs to the psycopg 3 driver; pass SQLite URLs through.

    Raises RuntimeError for any other scheme.
    """

    url = url.strip()
    scheme = url.split("://", 1)[0].lower() if "://" in url else ""
    if scheme in {"postgres", "postgresql"}:
        return "postgresql+psycopg://" + url.split("://", 1)[1]
    if scheme.startswith("postgresql+") or scheme.startswith("sqlite"):
        return url
    raise RuntimeError(f"Unsupported database URL scheme: {scheme or url!r}")


def resolve_database_url() -> str:
    """
    Resolve the tracking database URL from the environment.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL
    """

    load_env_files()

    direct_url = os.getenv("DATABASE_URL", "").strip()
    if direct_url:
        return normalize_database_url(direct_url)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in _CLOUD_LIKE_ENVIRONMENTS and cloud_url:
        return normalize_database_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if local_url:
        return normalize_database_url(local_url)

    raise RuntimeError(
        "No database URL configured. Set "
        + ", ".join(_URL_VARIABLES[:-1])
        + f" or {_URL_VARIABLES[-1]}."
    )


def _get_bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Engine construction options for one database URL.
    """

    url: str
    echo: bool = False
    pool_recycle: int = 1800
    pool_size: int = 5
    max_overflow: int = 10

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def engine_options(self) -> dict[str, Any]:
        if self.is_sqlite:
            # Batch jobs open sessions from scheduler worker threads.
            return {"echo": self.echo, "connect_args": {"check_same_thread": False}}
        return {
            "echo": self.echo,
            "pool_pre_ping": True,
            "pool_recycle": self.pool_recycle,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
        }


def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings(
        url=resolve_database_url(),
        echo=_get_bool_env("SQL_ECHO", default=False),
        pool_recycle=_get_int_env("DB_POOL_RECYCLE", 1800),
        pool_size=_get_int_env("DB_POOL_SIZE", 5),
        max_overflow=_get_int_env("DB_MAX_OVERFLOW", 10),
    )
