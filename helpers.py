"""General-purpose helper utilities shared across the application."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from errors import InvalidReferenceError

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
# Largest value the INT columns hold on MySQL.
MAX_DB_INT = 2**31 - 1


__all__ = [
    "DB_TIMESTAMP_FORMAT",
    "MAX_DB_INT",
    "coerce_float",
    "now_utc_db",
    "parse_flag",
    "parse_id_list",
    "parse_non_negative_int",
    "split_id_list",
    "to_iso_timestamp",
]


def parse_non_negative_int(value: Any, name: str, default: int | None = None) -> int | None:
    """Return ``value`` as a non-negative integer, ``default`` when absent.

    Raises :class:`InvalidReferenceError` when the value is present but is not
    a base-10 integer between zero and :data:`MAX_DB_INT`.
    """

    if value is None:
        return default
    text = str(value).strip()
    if not text:
        return default
    if not (text.isascii() and text.isdigit()):
        raise InvalidReferenceError(f"Invalid {name}: must be a non-negative integer")
    number = int(text)
    if number > MAX_DB_INT:
        raise InvalidReferenceError(f"Invalid {name}: must not exceed {MAX_DB_INT}")
    return number


def parse_id_list(values: Iterable[Any], name: str) -> list[int] | None:
    """Parse repeated and/or comma separated id query values."""

    ids: list[int] = []
    for raw in values:
        if raw is None or not str(raw).strip():
            continue
        for part in str(raw).split(","):
            parsed = parse_non_negative_int(part, name)
            if parsed is None:
                raise InvalidReferenceError(f"Invalid {name}: must be a non-negative integer")
            ids.append(parsed)
    return ids or None


def parse_flag(value: Any) -> bool:
    """Return ``True`` only for the literal query value ``"true"``."""

    return isinstance(value, str) and value.strip().lower() == "true"


def split_id_list(value: Any) -> list[int]:
    """Return the sorted ids in a ``GROUP_CONCAT`` result."""

    if value is None:
        return []
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    ids = [int(part) for part in str(value).split(",") if part.strip()]
    return sorted(ids)


def coerce_float(value: Any) -> float:
    if value is None:
        return 0.0
    return float(value)


def now_utc_db() -> str:
    """Return the current UTC time in the database timestamp format."""

    return datetime.now(timezone.utc).strftime(DB_TIMESTAMP_FORMAT)


def to_iso_timestamp(value: Any) -> str | None:
    """Return ``value`` (stored as UTC) formatted as ``YYYY-MM-DDTHH:MM:SS.000Z``."""

    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        try:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return text
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
