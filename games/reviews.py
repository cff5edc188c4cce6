"""Game reviews."""

from __future__ import annotations

import logging
from typing import Any

from db.utils import DatabaseHandle, db_lock
from errors import ForbiddenActionError, InvalidReferenceError, ResourceNotFoundError
from games.service import game_creator_id
from helpers import now_utc_db, to_iso_timestamp

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 10


def list_reviews(db: DatabaseHandle, game_id: int) -> list[dict[str, Any]]:
    """Return the reviews of a game, newest first."""

    if game_creator_id(db, game_id) is None:
        raise ResourceNotFoundError("Game not found")
    rows = db.execute(
        "SELECT r.user_id, r.rating, r.review, r.timestamp, u.first_name, u.last_name "
        "FROM game_review r JOIN user u ON u.id = r.user_id "
        "WHERE r.game_id = ? ORDER BY r.timestamp DESC, r.id DESC",
        (game_id,),
    ).fetchall()
    return [
        {
            "reviewerId": int(row["user_id"]),
            "rating": int(row["rating"]),
            "review": row["review"],
            "timestamp": to_iso_timestamp(row["timestamp"]),
            "reviewerFirstName": row["first_name"],
            "reviewerLastName": row["last_name"],
        }
        for row in rows
    ]


def add_review(
    db: DatabaseHandle,
    user_id: int,
    game_id: int,
    rating: int,
    review: str | None = None,
) -> None:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidReferenceError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    with db_lock, db.transaction():
        creator_id = game_creator_id(db, game_id)
        if creator_id is None:
            raise ResourceNotFoundError("Game not found")
        if creator_id == user_id:
            raise ForbiddenActionError("Cannot review your own game")
        existing = db.execute(
            "SELECT 1 FROM game_review WHERE game_id = ? AND user_id = ?", (game_id, user_id)
        ).fetchone()
        if existing is not None:
            raise ForbiddenActionError("You have already reviewed this game")
        db.execute(
            "INSERT INTO game_review (game_id, user_id, rating, review, timestamp) "
            "VALUES (?, ?, ?, ?, ?)",
            (game_id, user_id, rating, review, now_utc_db()),
        )
    logger.info("User %s reviewed game %s", user_id, game_id)


__all__ = ["MAX_RATING", "MIN_RATING", "add_review", "list_reviews"]
