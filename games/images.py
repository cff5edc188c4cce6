"""Cover image operations for games."""

from __future__ import annotations

from typing import Any

from db.utils import DatabaseHandle, db_lock
from errors import ForbiddenActionError, ResourceNotFoundError
from media.images import ImageStore, extension_for


def _game_image_row(db: DatabaseHandle, game_id: int) -> Any:
    row = db.execute(
        "SELECT creator_id, image_filename FROM game WHERE id = ?", (game_id,)
    ).fetchone()
    if row is None:
        raise ResourceNotFoundError("Game not found")
    return row


def get_game_image(
    db: DatabaseHandle, store: ImageStore, game_id: int
) -> tuple[bytes, str] | None:
    return store.load(_game_image_row(db, game_id)["image_filename"])


def set_game_image(
    db: DatabaseHandle,
    store: ImageStore,
    user_id: int,
    game_id: int,
    data: bytes,
    content_type: str,
) -> bool:
    """Store a cover image; only the creator may do so. ``True`` if it is the first."""

    with db_lock, db.transaction():
        row = _game_image_row(db, game_id)
        if int(row["creator_id"]) != user_id:
            raise ForbiddenActionError("Only the creator of a game can change its cover image")
        extension_for(content_type)
        store.verify(data, content_type)
        old_filename = row["image_filename"]
        filename = store.filename_for("game", game_id, content_type)
        db.execute("UPDATE game SET image_filename = ? WHERE id = ?", (filename, game_id))
        store.save(filename, data)
    if old_filename and old_filename != filename:
        store.delete(old_filename)
    return not old_filename


def delete_game_image(
    db: DatabaseHandle, store: ImageStore, user_id: int, game_id: int
) -> bool:
    """Remove the cover image; ``False`` when there was none."""

    with db_lock, db.transaction():
        row = _game_image_row(db, game_id)
        if int(row["creator_id"]) != user_id:
            raise ForbiddenActionError("Only the creator of a game can remove its cover image")
        filename = row["image_filename"]
        if not filename:
            return False
        db.execute("UPDATE game SET image_filename = NULL WHERE id = ?", (game_id,))
    store.delete(filename)
    return True
