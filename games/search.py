"""Filtered, sorted and paginated game listings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from db.utils import DatabaseHandle
from errors import AuthenticationError, InvalidReferenceError
from helpers import coerce_float, split_id_list, to_iso_timestamp

logger = logging.getLogger(__name__)

DEFAULT_COUNT = 100
DEFAULT_SORT = "CREATED_ASC"

_RATING_SQL = (
    "(SELECT IFNULL(AVG(r.rating), 0) FROM game_review r WHERE r.game_id = game.id)"
)
_PLATFORM_IDS_SQL = (
    "(SELECT GROUP_CONCAT(gp.platform_id) FROM game_platforms gp WHERE gp.game_id = game.id)"
)

SORT_CLAUSES: dict[str, str] = {
    "ALPHABETICAL_ASC": "game.title ASC",
    "ALPHABETICAL_DESC": "game.title DESC",
    "PRICE_ASC": "game.price ASC",
    "PRICE_DESC": "game.price DESC",
    "CREATED_ASC": "game.creation_date ASC",
    "CREATED_DESC": "game.creation_date DESC",
    "RATING_ASC": "rating ASC",
    "RATING_DESC": "rating DESC",
}

LISTING_COLUMNS = (
    "game.id AS game_id, game.title, game.genre_id, game.creation_date, "
    "game.creator_id, game.price, user.first_name AS creator_first_name, "
    f"user.last_name AS creator_last_name, {_RATING_SQL} AS rating, "
    f"{_PLATFORM_IDS_SQL} AS platform_ids"
)


@dataclass
class SearchParams:
    start_index: int = 0
    count: int = DEFAULT_COUNT
    q: str | None = None
    genre_ids: Sequence[int] | None = None
    platform_ids: Sequence[int] | None = None
    price: int | None = None
    creator_id: int | None = None
    reviewer_id: int | None = None
    sort_by: str = DEFAULT_SORT
    owned_by_me: bool = False
    wishlisted_by_me: bool = False
    user_id: int | None = None


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


def build_search_query(params: SearchParams) -> tuple[str, list[Any]]:
    """Return the ``WHERE`` clause (possibly empty) and its parameters."""

    conditions: list[str] = []
    values: list[Any] = []

    if params.q:
        conditions.append("(game.title LIKE ? OR game.description LIKE ?)")
        pattern = f"%{params.q}%"
        values.extend([pattern, pattern])

    if params.genre_ids:
        conditions.append(f"game.genre_id IN ({_placeholders(params.genre_ids)})")
        values.extend(params.genre_ids)

    if params.platform_ids:
        conditions.append(
            "game.id IN (SELECT game_id FROM game_platforms WHERE platform_id IN "
            f"({_placeholders(params.platform_ids)}))"
        )
        values.extend(params.platform_ids)

    if params.price is not None:
        if params.price == 0:
            conditions.append("game.price = 0")
        else:
            conditions.append("game.price <= ?")
            values.append(params.price)

    if params.creator_id is not None:
        conditions.append("game.creator_id = ?")
        values.append(params.creator_id)

    if params.reviewer_id is not None:
        conditions.append("game.id IN (SELECT game_id FROM game_review WHERE user_id = ?)")
        values.append(params.reviewer_id)

    if params.owned_by_me or params.wishlisted_by_me:
        if params.user_id is None:
            raise AuthenticationError("Authentication required to filter by your games")
        if params.owned_by_me:
            conditions.append("game.id IN (SELECT game_id FROM owned WHERE user_id = ?)")
            values.append(params.user_id)
        if params.wishlisted_by_me:
            conditions.append("game.id IN (SELECT game_id FROM wishlist WHERE user_id = ?)")
            values.append(params.user_id)

    where_sql = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where_sql, values


def order_by_clause(sort_by: str | None) -> str:
    key = (sort_by or DEFAULT_SORT).upper()
    if key not in SORT_CLAUSES:
        raise InvalidReferenceError(f"Invalid sortBy: {sort_by}")
    return f"ORDER BY {SORT_CLAUSES[key]}, game.id ASC"


def listing_from_row(row: Any) -> dict[str, Any]:
    """Shape a listing row into the API representation."""

    return {
        "gameId": int(row["game_id"]),
        "title": row["title"],
        "genreId": int(row["genre_id"]),
        "creationDate": to_iso_timestamp(row["creation_date"]),
        "creatorId": int(row["creator_id"]),
        "price": int(row["price"]),
        "creatorFirstName": row["creator_first_name"],
        "creatorLastName": row["creator_last_name"],
        "rating": coerce_float(row["rating"]),
        "platformIds": split_id_list(row["platform_ids"]),
    }


def search_games(db: DatabaseHandle, params: SearchParams) -> dict[str, Any]:
    """Return ``{"games": [...], "count": total}`` for ``params``.

    ``count`` is the number of matches before pagination.
    """

    order_sql = order_by_clause(params.sort_by)
    where_sql, values = build_search_query(params)

    total_row = db.execute(f"SELECT COUNT(*) AS total FROM game {where_sql}", values).fetchone()
    total = int(total_row["total"]) if total_row is not None else 0

    rows = db.execute(
        f"SELECT {LISTING_COLUMNS} FROM game JOIN user ON user.id = game.creator_id "
        f"{where_sql} {order_sql} LIMIT ? OFFSET ?",
        [*values, params.count, params.start_index],
    ).fetchall()
    logger.debug("Search matched %d games, returning %d", total, len(rows))
    return {"games": [listing_from_row(row) for row in rows], "count": total}


__all__ = [
    "DEFAULT_COUNT",
    "DEFAULT_SORT",
    "LISTING_COLUMNS",
    "SORT_CLAUSES",
    "SearchParams",
    "build_search_query",
    "listing_from_row",
    "order_by_clause",
    "search_games",
]
