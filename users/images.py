"""Profile image operations for users."""

from __future__ import annotations

from db.utils import DatabaseHandle, db_lock
from errors import ForbiddenActionError, ResourceNotFoundError
from media.images import ImageStore, extension_for


def _image_filename(db: DatabaseHandle, user_id: int) -> str | None:
    row = db.execute("SELECT image_filename FROM user WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        raise ResourceNotFoundError("User not found")
    return row["image_filename"]


def get_user_image(
    db: DatabaseHandle, store: ImageStore, user_id: int
) -> tuple[bytes, str] | None:
    return store.load(_image_filename(db, user_id))


def set_user_image(
    db: DatabaseHandle,
    store: ImageStore,
    current_user_id: int,
    user_id: int,
    data: bytes,
    content_type: str,
) -> bool:
    """Store a profile image; returns ``True`` when the user had none before."""

    if current_user_id != user_id:
        raise ForbiddenActionError("You cannot change another user's image")
    extension_for(content_type)
    store.verify(data, content_type)

    filename = store.filename_for("user", user_id, content_type)
    # The column changes before the file; the old file goes only after commit.
    with db_lock, db.transaction():
        old_filename = _image_filename(db, user_id)
        db.execute("UPDATE user SET image_filename = ? WHERE id = ?", (filename, user_id))
        store.save(filename, data)
    if old_filename and old_filename != filename:
        store.delete(old_filename)
    return not old_filename


def delete_user_image(db: DatabaseHandle, store: ImageStore, user_id: int) -> bool:
    """Remove the profile image; returns ``False`` when there was none."""

    with db_lock, db.transaction():
        filename = _image_filename(db, user_id)
        if not filename:
            return False
        db.execute("UPDATE user SET image_filename = NULL WHERE id = ?", (user_id,))
    store.delete(filename)
    return True
