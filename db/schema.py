"""Table definitions for the catalog database."""

from __future__ import annotations

import logging

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
    func,
    inspect,
)
from sqlalchemy import Table
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

user_table = Table(
    "user",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(256), nullable=False, unique=True),
    Column("first_name", String(64), nullable=False),
    Column("last_name", String(64), nullable=False),
    Column("image_filename", String(64), nullable=True),
    # Only the hash is stored here.
    Column("password", String(256), nullable=False),
    Column("auth_token", String(256), nullable=True),
)

genre_table = Table(
    "genre",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(64), nullable=False, unique=True),
)

platform_table = Table(
    "platform",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(64), nullable=False, unique=True),
)

game_table = Table(
    "game",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(128), nullable=False, unique=True),
    Column("description", Text, nullable=False),
    Column("creation_date", DateTime, nullable=False),
    Column("image_filename", String(64), nullable=True),
    Column("creator_id", Integer, ForeignKey("user.id"), nullable=False),
    Column("genre_id", Integer, ForeignKey("genre.id"), nullable=False),
    Column("price", Integer, nullable=False),
)

game_platforms_table = Table(
    "game_platforms",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("game_id", Integer, ForeignKey("game.id"), nullable=False),
    Column("platform_id", Integer, ForeignKey("platform.id"), nullable=False),
    UniqueConstraint("game_id", "platform_id"),
)

wishlist_table = Table(
    "wishlist",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("game_id", Integer, ForeignKey("game.id"), nullable=False),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False),
    UniqueConstraint("game_id", "user_id"),
)

owned_table = Table(
    "owned",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("game_id", Integer, ForeignKey("game.id"), nullable=False),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False),
    UniqueConstraint("game_id", "user_id"),
)

game_review_table = Table(
    "game_review",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("game_id", Integer, ForeignKey("game.id"), nullable=False),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False),
    Column("rating", Integer, nullable=False),
    Column("review", String(512), nullable=True),
    Column("timestamp", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("game_id", "user_id"),
)

TABLE_NAMES: tuple[str, ...] = tuple(table.name for table in metadata.sorted_tables)


def schema_exists(engine: Engine) -> bool:
    """Return ``True`` when every catalog table is present."""

    existing = set(inspect(engine).get_table_names())
    return all(name in existing for name in TABLE_NAMES)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
    logger.info("Created catalog tables: %s", ", ".join(TABLE_NAMES))


def drop_schema(engine: Engine) -> None:
    # sorted_tables is dependency ordered; drop_all reverses it.
    metadata.drop_all(engine)
    logger.info("Dropped catalog tables")


__all__ = [
    "TABLE_NAMES",
    "create_schema",
    "drop_schema",
    "game_platforms_table",
    "game_review_table",
    "game_table",
    "genre_table",
    "metadata",
    "owned_table",
    "platform_table",
    "schema_exists",
    "user_table",
    "wishlist_table",
]
