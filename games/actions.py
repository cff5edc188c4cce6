"""Per-user wishlist and owned toggles."""

from __future__ import annotations

import logging

from db.utils import DatabaseHandle, db_lock
from errors import ForbiddenActionError, ResourceNotFoundError
from games.service import game_creator_id

logger = logging.getLogger(__name__)


def _has_row(db: DatabaseHandle, table: str, game_id: int, user_id: int) -> bool:
    row = db.execute(
        f"SELECT 1 FROM {table} WHERE game_id = ? AND user_id = ?", (game_id, user_id)
    ).fetchone()
    return row is not None


def _require_game(db: DatabaseHandle, game_id: int) -> int:
    creator_id = game_creator_id(db, game_id)
    if creator_id is None:
        raise ResourceNotFoundError("Game not found")
    return creator_id


def is_wishlisted(db: DatabaseHandle, game_id: int, user_id: int) -> bool:
    return _has_row(db, "wishlist", game_id, user_id)


def is_owned(db: DatabaseHandle, game_id: int, user_id: int) -> bool:
    return _has_row(db, "owned", game_id, user_id)


def add_to_wishlist(db: DatabaseHandle, game_id: int, user_id: int) -> None:
    with db_lock, db.transaction():
        if _require_game(db, game_id) == user_id:
            raise ForbiddenActionError("Cannot wishlist a game you created")
        if is_owned(db, game_id, user_id):
            raise ForbiddenActionError("Cannot wishlist a game you already own")
        if is_wishlisted(db, game_id, user_id):
            return
        db.execute("INSERT INTO wishlist (game_id, user_id) VALUES (?, ?)", (game_id, user_id))
    logger.info("User %s wishlisted game %s", user_id, game_id)


def remove_from_wishlist(db: DatabaseHandle, game_id: int, user_id: int) -> None:
    with db_lock, db.transaction():
        _require_game(db, game_id)
        if not is_wishlisted(db, game_id, user_id):
            raise ForbiddenActionError("Game is not on your wishlist")
        db.execute("DELETE FROM wishlist WHERE game_id = ? AND user_id = ?", (game_id, user_id))
    logger.info("User %s removed game %s from wishlist", user_id, game_id)


def add_to_owned(db: DatabaseHandle, game_id: int, user_id: int) -> None:
    """Mark the game owned, dropping it from the user's wishlist if present."""

    with db_lock, db.transaction():
        if _require_game(db, game_id) == user_id:
            raise ForbiddenActionError("Cannot mark a game you created as owned")
        if is_owned(db, game_id, user_id):
            return
        db.execute("DELETE FROM wishlist WHERE game_id = ? AND user_id = ?", (game_id, user_id))
        db.execute("INSERT INTO owned (game_id, user_id) VALUES (?, ?)", (game_id, user_id))
    logger.info("User %s marked game %s as owned", user_id, game_id)


def remove_from_owned(db: DatabaseHandle, game_id: int, user_id: int) -> None:
    with db_lock, db.transaction():
        _require_game(db, game_id)
        if not is_owned(db, game_id, user_id):
            raise ForbiddenActionError("Game is not marked as owned")
        db.execute("DELETE FROM owned WHERE game_id = ? AND user_id = ?", (game_id, user_id))
    logger.info("User %s unmarked game %s as owned", user_id, game_id)


__all__ = [
    "add_to_owned",
    "add_to_wishlist",
    "is_owned",
    "is_wishlisted",
    "remove_from_owned",
    "remove_from_wishlist",
]
