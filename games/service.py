"""Game listing persistence: lookup, create, edit and delete."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from db.utils import DatabaseHandle, db_lock
from errors import (
    ForbiddenActionError,
    InvalidReferenceError,
    ResourceNotFoundError,
)
from games.search import LISTING_COLUMNS, listing_from_row
from helpers import now_utc_db
from media.images import ImageStore
from services.validation import GameCreate, GameEdit

logger = logging.getLogger(__name__)

_EDITABLE_COLUMNS = {
    "title": "title",
    "description": "description",
    "genreId": "genre_id",
    "price": "price",
}


def list_genres(db: DatabaseHandle) -> list[dict[str, Any]]:
    rows = db.execute("SELECT id, name FROM genre ORDER BY id").fetchall()
    return [{"genreId": int(row["id"]), "name": row["name"]} for row in rows]


def list_platforms(db: DatabaseHandle) -> list[dict[str, Any]]:
    rows = db.execute("SELECT id, name FROM platform ORDER BY id").fetchall()
    return [{"platformId": int(row["id"]), "name": row["name"]} for row in rows]


def game_exists(db: DatabaseHandle, game_id: int) -> bool:
    return db.execute("SELECT 1 FROM game WHERE id = ?", (game_id,)).fetchone() is not None


def game_creator_id(db: DatabaseHandle, game_id: int) -> int | None:
    row = db.execute("SELECT creator_id FROM game WHERE id = ?", (game_id,)).fetchone()
    if row is None:
        return None
    return int(row["creator_id"])


def _genre_exists(db: DatabaseHandle, genre_id: int) -> bool:
    return db.execute("SELECT 1 FROM genre WHERE id = ?", (genre_id,)).fetchone() is not None


def _require_platforms(db: DatabaseHandle, platform_ids: Iterable[int]) -> list[int]:
    ids = list(dict.fromkeys(platform_ids))
    if not ids:
        raise InvalidReferenceError("At least one platform must be provided")
    placeholders = ", ".join("?" for _ in ids)
    row = db.execute(
        f"SELECT COUNT(*) AS found FROM platform WHERE id IN ({placeholders})", ids
    ).fetchone()
    if row is None or int(row["found"]) != len(ids):
        raise InvalidReferenceError("One or more platform ids do not exist")
    return ids


def _title_taken(db: DatabaseHandle, title: str, exclude_id: int | None = None) -> bool:
    if exclude_id is None:
        row = db.execute("SELECT 1 FROM game WHERE title = ?", (title,)).fetchone()
    else:
        row = db.execute(
            "SELECT 1 FROM game WHERE title = ? AND id <> ?", (title, exclude_id)
        ).fetchone()
    return row is not None


def get_game(db: DatabaseHandle, game_id: int) -> dict[str, Any] | None:
    """Return the detailed representation of a game, or ``None``."""

    row = db.execute(
        f"SELECT {LISTING_COLUMNS}, game.description, "
        "(SELECT COUNT(*) FROM owned o WHERE o.game_id = game.id) AS number_of_owners, "
        "(SELECT COUNT(*) FROM wishlist w WHERE w.game_id = game.id) AS number_of_wishlists "
        "FROM game JOIN user ON user.id = game.creator_id WHERE game.id = ?",
        (game_id,),
    ).fetchone()
    if row is None:
        return None
    game = listing_from_row(row)
    game["description"] = row["description"]
    game["numberOfOwners"] = int(row["number_of_owners"])
    game["numberOfWishlists"] = int(row["number_of_wishlists"])
    return game


def create_game(db: DatabaseHandle, data: GameCreate, creator_id: int) -> int:
    """Insert a game with its platform rows and return the new id."""

    with db_lock, db.transaction():
        if not _genre_exists(db, data.genreId):
            raise InvalidReferenceError("Genre does not exist")
        platform_ids = _require_platforms(db, data.platformIds)
        if _title_taken(db, data.title):
            raise ForbiddenActionError("Game title already exists")

        cursor = db.execute(
            "INSERT INTO game (title, description, creation_date, creator_id, genre_id, price) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (data.title, data.description, now_utc_db(), creator_id, data.genreId, data.price),
        )
        game_id = int(cursor.lastrowid)
        db.insert_rows(
            "game_platforms",
            ("game_id", "platform_id"),
            [(game_id, platform_id) for platform_id in platform_ids],
        )
    logger.info("User %s created game %s", creator_id, game_id)
    return game_id


def edit_game(db: DatabaseHandle, game_id: int, data: GameEdit, user_id: int) -> None:
    """Update the supplied fields of a game owned by ``user_id``.

    A supplied ``platformIds`` list replaces every existing platform row.
    """

    supplied = data.model_dump(exclude_none=True)
    if not supplied:
        raise InvalidReferenceError("No changes provided")

    with db_lock, db.transaction():
        creator_id = game_creator_id(db, game_id)
        if creator_id is None:
            raise ResourceNotFoundError("Game not found")
        if creator_id != user_id:
            raise ForbiddenActionError("Only the creator of a game can edit it")
        if data.title is not None and _title_taken(db, data.title, exclude_id=game_id):
            raise ForbiddenActionError("Game title already exists")
        if data.genreId is not None and not _genre_exists(db, data.genreId):
            raise InvalidReferenceError("Genre does not exist")
        platform_ids = (
            _require_platforms(db, data.platformIds) if data.platformIds is not None else None
        )

        changes = {key: supplied[key] for key in _EDITABLE_COLUMNS if key in supplied}
        if changes:
            assignments = ", ".join(f"{_EDITABLE_COLUMNS[key]} = ?" for key in changes)
            db.execute(
                f"UPDATE game SET {assignments} WHERE id = ?",
                (*changes.values(), game_id),
            )
        if platform_ids is not None:
            db.execute("DELETE FROM game_platforms WHERE game_id = ?", (game_id,))
            db.insert_rows(
                "game_platforms",
                ("game_id", "platform_id"),
                [(game_id, platform_id) for platform_id in platform_ids],
            )
    logger.info("User %s edited game %s (%s)", user_id, game_id, ", ".join(sorted(supplied)))


def delete_game(
    db: DatabaseHandle,
    game_id: int,
    user_id: int,
    image_store: ImageStore | None = None,
) -> None:
    """Delete a review-free game and its wishlist, owned and platform rows."""

    with db_lock, db.transaction():
        row = db.execute(
            "SELECT creator_id, image_filename FROM game WHERE id = ?", (game_id,)
        ).fetchone()
        if row is None:
            raise ResourceNotFoundError("Game not found")
        if int(row["creator_id"]) != user_id:
            raise ForbiddenActionError("Only the creator of a game can delete it")
        reviewed = db.execute(
            "SELECT 1 FROM game_review WHERE game_id = ? LIMIT 1", (game_id,)
        ).fetchone()
        if reviewed is not None:
            raise ForbiddenActionError("Cannot delete a game that has reviews")

        for table in ("wishlist", "owned", "game_platforms"):
            db.execute(f"DELETE FROM {table} WHERE game_id = ?", (game_id,))
        db.execute("DELETE FROM game WHERE id = ?", (game_id,))
        image_filename = row["image_filename"]

    if image_store is not None and image_filename:
        image_store.delete(image_filename)
    logger.info("User %s deleted game %s", user_id, game_id)


__all__ = [
    "create_game",
    "delete_game",
    "edit_game",
    "game_creator_id",
    "game_exists",
    "get_game",
    "list_genres",
    "list_platforms",
]
