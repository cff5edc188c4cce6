"""User account persistence: registration, sessions and profile edits."""

from __future__ import annotations

import logging
from typing import Any

from db.utils import DatabaseHandle, db_lock
from errors import (
    AuthenticationError,
    ForbiddenActionError,
    InvalidReferenceError,
    ResourceNotFoundError,
)
from services.passwords import generate_token, hash_password, verify_password
from services.validation import UserEdit, UserRegister

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "password": "password",
}


def get_user_by_token(db: DatabaseHandle, token: str | None) -> dict[str, Any] | None:
    """Return ``{"id": ...}`` for the user holding ``token``."""

    if not token:
        return None
    row = db.execute("SELECT id FROM user WHERE auth_token = ?", (token,)).fetchone()
    if row is None:
        return None
    return {"id": int(row["id"])}


def get_user_by_email(db: DatabaseHandle, email: str) -> dict[str, Any] | None:
    row = db.execute(
        "SELECT id, first_name, last_name, email, password FROM user WHERE email = ?",
        (email,),
    ).fetchone()
    if row is None:
        return None
    return dict(row)


def get_user_by_id(db: DatabaseHandle, user_id: int) -> dict[str, Any] | None:
    row = db.execute(
        "SELECT id, first_name, last_name, email, password FROM user WHERE id = ?",
        (user_id,),
    ).fetchone()
    if row is None:
        return None
    return dict(row)


def user_exists(db: DatabaseHandle, user_id: int) -> bool:
    return db.execute("SELECT 1 FROM user WHERE id = ?", (user_id,)).fetchone() is not None


def create_user(
    db: DatabaseHandle,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
) -> int:
    """Insert a user row with a hashed ``password`` and return its id."""

    cursor = db.execute(
        "INSERT INTO user (first_name, last_name, email, password) VALUES (?, ?, ?, ?)",
        (first_name, last_name, email, hash_password(password)),
    )
    return int(cursor.lastrowid)


def register(db: DatabaseHandle, data: UserRegister) -> int:
    with db_lock, db.transaction():
        if get_user_by_email(db, data.email) is not None:
            raise ForbiddenActionError("Email already in use")
        user_id = create_user(
            db,
            first_name=data.firstName,
            last_name=data.lastName,
            email=data.email,
            password=data.password,
        )
    logger.info("Registered user %s", user_id)
    return user_id


def login(db: DatabaseHandle, email: str, password: str) -> tuple[int, str]:
    """Check credentials and persist a fresh session token for the user."""

    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user["password"]):
        raise AuthenticationError("Incorrect email/password")

    token = generate_token()
    with db_lock, db.transaction():
        db.execute("UPDATE user SET auth_token = ? WHERE id = ?", (token, user["id"]))
    logger.info("User %s logged in", user["id"])
    return int(user["id"]), token


def logout(db: DatabaseHandle, user_id: int) -> None:
    with db_lock, db.transaction():
        db.execute("UPDATE user SET auth_token = NULL WHERE id = ?", (user_id,))
    logger.info("User %s logged out", user_id)


def view_user(
    db: DatabaseHandle,
    user_id: int,
    current_user_id: int | None = None,
) -> dict[str, Any]:
    """Return the full profile to its owner and only the name to everyone else."""

    user = get_user_by_id(db, user_id)
    if user is None:
        raise ResourceNotFoundError("User not found")
    profile = {"firstName": user["first_name"], "lastName": user["last_name"]}
    if current_user_id is not None and current_user_id == user_id:
        profile["email"] = user["email"]
    return profile


def update_user(db: DatabaseHandle, user_id: int, data: UserEdit) -> None:
    """Apply the supplied profile fields.

    A password change needs both ``password`` and ``currentPassword``; the new
    password must differ and the current one must match the stored hash.
    """

    changes: dict[str, Any] = {}
    if data.firstName is not None:
        changes["firstName"] = data.firstName
    if data.lastName is not None:
        changes["lastName"] = data.lastName

    if data.password is not None or data.currentPassword is not None:
        if data.password is None or data.currentPassword is None:
            raise InvalidReferenceError(
                "Both currentPassword and new password must be provided to change password"
            )
        if data.password == data.currentPassword:
            raise ForbiddenActionError("New password must be different from current password")

    with db_lock, db.transaction():
        user = get_user_by_id(db, user_id)
        if user is None:
            raise ResourceNotFoundError("User not found")

        if data.email is not None:
            existing = get_user_by_email(db, data.email)
            if existing is not None and int(existing["id"]) != user_id:
                raise ForbiddenActionError("Email already in use")
            changes["email"] = data.email

        if data.password is not None:
            if not verify_password(data.currentPassword or "", user["password"]):
                raise AuthenticationError("Current password is incorrect")
            changes["password"] = hash_password(data.password)

        if not changes:
            return

        assignments = ", ".join(f"{_PROFILE_COLUMNS[key]} = ?" for key in changes)
        db.execute(
            f"UPDATE user SET {assignments} WHERE id = ?",
            (*changes.values(), user_id),
        )
    logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(changes)))
