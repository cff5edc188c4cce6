"""Request guards shared by the user and game blueprints."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Mapping, ParamSpec, TypeVar

from flask import g, request

from helpers import MAX_DB_INT
from routes.api_utils import BadRequestError, ForbiddenError, UnauthorizedError
from users.service import get_user_by_token

P = ParamSpec("P")
R = TypeVar("R")

AUTH_HEADER = "X-Authorization"

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide the database accessor used to resolve tokens."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"middleware missing context value: {key}")
    return _context[key]


def load_current_user() -> dict[str, Any] | None:
    """Resolve the ``X-Authorization`` token into ``g.current_user``."""

    token = (request.headers.get(AUTH_HEADER) or "").strip()
    user = get_user_by_token(_ctx("get_db")(), token) if token else None
    g.current_user = user
    return user


def current_user_id() -> int | None:
    user = g.get("current_user")
    return int(user["id"]) if user else None


def require_auth(func: Callable[P, R]) -> Callable[P, R]:
    """Reject the request with 401 unless a valid token is supplied."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not (request.headers.get(AUTH_HEADER) or "").strip():
            raise UnauthorizedError("Unauthorized: No token provided")
        if load_current_user() is None:
            raise UnauthorizedError("Unauthorized")
        return func(*args, **kwargs)

    return wrapper


def optional_auth(func: Callable[P, R]) -> Callable[P, R]:
    """Attach the current user when a valid token is present."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        load_current_user()
        return func(*args, **kwargs)

    return wrapper


def parse_id(raw: Any, label: str) -> int:
    text = str(raw).strip()
    if not (text.isascii() and text.isdigit()) or int(text) > MAX_DB_INT:
        raise BadRequestError(f"Invalid {label} id")
    return int(text)


def with_id(label: str) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Replace the ``id`` view argument with its integer value (400 when invalid)."""

    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            target_id = parse_id(kwargs.pop("id"), label)
            g.target_id = target_id
            return func(*args, id=target_id, **kwargs)

        return wrapper

    return decorator


def authorize_self(func: Callable[P, R]) -> Callable[P, R]:
    """Allow the request only when the token owner is the targeted user."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if current_user_id() != g.get("target_id"):
            raise ForbiddenError("Forbidden: You cannot edit another user's information")
        return func(*args, **kwargs)

    return wrapper


__all__ = [
    "AUTH_HEADER",
    "authorize_self",
    "configure",
    "current_user_id",
    "load_current_user",
    "optional_auth",
    "parse_id",
    "require_auth",
    "with_id",
]
