"""Database bootstrap: table creation plus reference and demo rows."""

from __future__ import annotations

import logging
from pathlib import Path

from db import schema
from db.utils import DatabaseEngine, DatabaseHandle, db_lock
from services.passwords import hash_password

logger = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"
REFERENCE_DATA_SQL = RESOURCES_DIR / "reference_data.sql"
DEMO_DATA_SQL = RESOURCES_DIR / "demo_data.sql"

# Inserted in this order so they receive ids 1-8, which demo_data.sql relies on.
DEMO_USERS: tuple[tuple[str, str, str], ...] = (
    ("Alice", "Anderson", "alice@example.com"),
    ("Bob", "Brown", "bob@example.com"),
    ("Charlie", "Clark", "charlie@example.com"),
    ("Diana", "Davis", "diana@example.com"),
    ("Ethan", "Evans", "ethan@example.com"),
    ("Fiona", "Foster", "fiona@example.com"),
    ("George", "Green", "george@example.com"),
    ("Hannah", "Hughes", "hannah@example.com"),
)


def _read_script(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def load_reference_data(handle: DatabaseHandle) -> None:
    """Insert the fixed genre and platform rows."""

    handle.run_script(_read_script(REFERENCE_DATA_SQL))
    logger.info("Loaded reference genres and platforms")


def load_demo_data(handle: DatabaseHandle, password: str) -> None:
    """Insert demo users (all sharing ``password``) and their sample listings."""

    hashed = hash_password(password)
    with handle.transaction():
        handle.insert_rows(
            "user",
            ("first_name", "last_name", "email", "password"),
            [(first, last, email, hashed) for first, last, email in DEMO_USERS],
        )
    handle.run_script(_read_script(DEMO_DATA_SQL))
    logger.info("Loaded demo data for %d users", len(DEMO_USERS))


def initialize_database(
    engine_wrapper: DatabaseEngine,
    *,
    seed_demo_data: bool = False,
    demo_password: str = "password",
) -> bool:
    """Create and seed the schema when it is missing.

    Returns ``True`` when the database was initialized by this call.
    """

    with db_lock:
        if schema.schema_exists(engine_wrapper.engine):
            logger.info("Database already exists, skipping initialization")
            return False

        schema.create_schema(engine_wrapper.engine)
        handle = DatabaseHandle(engine_wrapper)
        try:
            load_reference_data(handle)
            if seed_demo_data:
                load_demo_data(handle, demo_password)
        finally:
            handle.close()
    return True


def reset_database(engine_wrapper: DatabaseEngine) -> None:
    """Drop every catalog table and recreate it with only reference data."""

    with db_lock:
        schema.drop_schema(engine_wrapper.engine)
        schema.create_schema(engine_wrapper.engine)
        handle = DatabaseHandle(engine_wrapper)
        try:
            load_reference_data(handle)
        finally:
            handle.close()
    logger.info("Database reset")


def resample_database(engine_wrapper: DatabaseEngine, *, demo_password: str = "password") -> None:
    """Reset the database and load the demo data set."""

    reset_database(engine_wrapper)
    with db_lock:
        handle = DatabaseHandle(engine_wrapper)
        try:
            load_demo_data(handle, demo_password)
        finally:
            handle.close()
    logger.info("Database resampled with demo data")


__all__ = [
    "DEMO_USERS",
    "initialize_database",
    "load_demo_data",
    "load_reference_data",
    "reset_database",
    "resample_database",
]
