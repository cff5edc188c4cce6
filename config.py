"""Application-wide configuration helpers and constants."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final
from urllib.parse import quote_plus

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")


logger = logging.getLogger(__name__)


def _clean_text(value: str | None) -> str:
    """Return ``value`` stripped of surrounding whitespace."""

    if value is None:
        return ""
    return value.strip()


def _path_from(env_value: str | None, default: str | Path) -> Path:
    """Resolve a filesystem path using an environment override when provided."""

    text = _clean_text(env_value)
    candidate = Path(text) if text else Path(default)
    candidate = candidate.expanduser()
    if not candidate.is_absolute():
        candidate = BASE_DIR / candidate
    try:
        return candidate.resolve()
    except (OSError, RuntimeError):  # pragma: no cover - fallback for exotic paths
        return candidate


def _coerce_positive_float(value: str | None, default: float) -> float:
    """Return ``value`` coerced to a positive float or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = float(text)
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_positive_int(value: str | None, default: int) -> int:
    """Return ``value`` coerced to a positive integer or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = int(float(text))
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_flag(value: str | None, default: bool) -> bool:
    """Return ``True`` when ``value`` represents an affirmative flag."""

    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


DB_TYPE: Final[str] = (_clean_text(os.environ.get("DB_TYPE")) or "sqlite").lower()
if DB_TYPE not in {"sqlite", "mysql", "mariadb"}:
    raise RuntimeError(f"Unsupported DB_TYPE: {DB_TYPE!r}; use 'sqlite' or 'mysql'.")

SQLITE_DB_PATH: Final[Path] = _path_from(
    os.environ.get("SQLITE_DB_PATH"), "storage/game_api.db"
)

DB_HOST: Final[str] = _clean_text(os.environ.get("DB_HOST")) or "localhost"
DB_PORT: Final[int] = _coerce_positive_int(os.environ.get("DB_PORT"), 3306)
DB_NAME: Final[str] = _clean_text(os.environ.get("DB_NAME")) or "game_api"
DB_USER: Final[str] = _clean_text(os.environ.get("DB_USER"))
DB_PASSWORD: Final[str] = _clean_text(os.environ.get("DB_PASSWORD"))
DB_SSL: Final[bool] = _coerce_flag(
    os.environ.get("DB_SSL"), DB_HOST not in {"localhost", "127.0.0.1"}
)
DB_POOL_SIZE: Final[int] = _coerce_positive_int(os.environ.get("DB_POOL_SIZE"), 10)
DB_CONNECT_TIMEOUT_SECONDS: Final[float] = _coerce_positive_float(
    os.environ.get("DB_CONNECT_TIMEOUT"), 10.0
)

IMAGE_DIR_PATH: Final[Path] = _path_from(os.environ.get("IMAGE_DIR"), "storage/images")
IMAGE_DIR: Final[str] = os.fspath(IMAGE_DIR_PATH)
MAX_IMAGE_BYTES: Final[int] = _coerce_positive_int(
    os.environ.get("MAX_IMAGE_BYTES"), 20 * 1024 * 1024
)

LOG_DIR_PATH: Final[Path] = _path_from(os.environ.get("LOG_DIR"), "logs")
LOG_FILE_PATH: Final[Path] = _path_from(
    os.environ.get("LOG_FILE"), LOG_DIR_PATH / "app.log"
)
LOG_FILE: Final[str] = os.fspath(LOG_FILE_PATH)

PORT: Final[int] = _coerce_positive_int(os.environ.get("PORT"), 4941)
_API_PREFIX_TEXT = (_clean_text(os.environ.get("API_PREFIX")) or "/api/v1").strip("/")
API_PREFIX: Final[str] = f"/{_API_PREFIX_TEXT}" if _API_PREFIX_TEXT else ""

SEED_DEMO_DATA: Final[bool] = _coerce_flag(os.environ.get("SEED_DEMO_DATA"), True)
DEMO_USER_PASSWORD: Final[str] = (
    _clean_text(os.environ.get("DEMO_USER_PASSWORD")) or "password"
)


def build_db_dsn(
    db_type: str = DB_TYPE,
    *,
    sqlite_path: Path | str | None = None,
) -> str:
    """Return a database DSN constructed from environment configuration."""

    if db_type == "sqlite":
        path = Path(sqlite_path) if sqlite_path is not None else SQLITE_DB_PATH
        return f"sqlite:///{path.as_posix()}"

    auth = ""
    if DB_USER:
        auth = DB_USER
        if DB_PASSWORD:
            auth = f"{auth}:{quote_plus(DB_PASSWORD)}"
        auth = f"{auth}@"
    return f"mysql+pymysql://{auth}{DB_HOST}:{DB_PORT}/{DB_NAME}?charset=utf8mb4"


DB_DSN: Final[str] = build_db_dsn()


def _validate_settings() -> None:
    """Sanity-check critical configuration values."""

    if DB_TYPE != "sqlite" and not DB_USER:
        logger.warning("DB_TYPE=%s but DB_USER is empty; connecting anonymously.", DB_TYPE)
    if len(DEMO_USER_PASSWORD) < 6:
        raise RuntimeError("DEMO_USER_PASSWORD must be at least 6 characters")


_validate_settings()


__all__ = [
    "API_PREFIX",
    "BASE_DIR",
    "DB_CONNECT_TIMEOUT_SECONDS",
    "DB_DSN",
    "DB_HOST",
    "DB_NAME",
    "DB_PASSWORD",
    "DB_POOL_SIZE",
    "DB_PORT",
    "DB_SSL",
    "DB_TYPE",
    "DB_USER",
    "DEMO_USER_PASSWORD",
    "IMAGE_DIR",
    "IMAGE_DIR_PATH",
    "LOG_DIR_PATH",
    "LOG_FILE",
    "LOG_FILE_PATH",
    "MAX_IMAGE_BYTES",
    "PORT",
    "SEED_DEMO_DATA",
    "SQLITE_DB_PATH",
    "build_db_dsn",
]
