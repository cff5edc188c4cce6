"""Shared helpers for API routes (error handling and logging)."""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from errors import (
    AuthenticationError,
    CatalogError,
    ForbiddenActionError,
    InvalidReferenceError,
    PayloadValidationError,
    ResourceNotFoundError,
)

P = ParamSpec("P")
R = TypeVar("R")


class APIError(Exception):
    """Base class for API errors that includes an HTTP status code."""

    status_code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        data = {"error": self.message}
        data.update(self.payload)
        return data


class BadRequestError(APIError):
    status_code = 400
    message = "Bad Request"


class UnauthorizedError(APIError):
    status_code = 401
    message = "Unauthorized"


class ForbiddenError(APIError):
    status_code = 403
    message = "Forbidden"


class NotFoundError(APIError):
    status_code = 404
    message = "Not Found"


_CATALOG_STATUS: tuple[tuple[type[CatalogError], type[APIError]], ...] = (
    (InvalidReferenceError, BadRequestError),
    (AuthenticationError, UnauthorizedError),
    (ForbiddenActionError, ForbiddenError),
    (ResourceNotFoundError, NotFoundError),
)


def api_error_from_catalog(exc: CatalogError) -> APIError:
    """Translate a domain error into the matching :class:`APIError`."""

    payload: dict[str, Any] = {}
    if isinstance(exc, PayloadValidationError) and exc.details:
        payload["details"] = list(exc.details)
    for error_type, api_type in _CATALOG_STATUS:
        if isinstance(exc, error_type):
            return api_type(str(exc), payload=payload)
    return APIError(str(exc))


def _resolve_user() -> str:
    try:
        user = g.get("current_user")
    except RuntimeError:
        return "unknown"
    if user:
        return str(user.get("id"))
    return "anonymous"


def _collect_request_context() -> dict[str, Any]:
    context: dict[str, Any] = {
        "route": request.path,
        "endpoint": request.endpoint,
        "method": request.method,
        "user": _resolve_user(),
        "view_args": dict(request.view_args or {}),
        "args": request.args.to_dict(flat=False),
    }

    if request.is_json:
        json_payload = request.get_json(silent=True)
        if isinstance(json_payload, dict):
            # Never log credentials.
            json_payload = {
                key: ("***" if "password" in key.lower() else value)
                for key, value in json_payload.items()
            }
        if json_payload is not None:
            context["json"] = json_payload

    return context


def _serialize_context(context: dict[str, Any]) -> str:
    try:
        return json.dumps(context, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(context)


def _log_api_error(exc: Exception, *, status_code: int, handled: bool) -> None:
    context = _collect_request_context()
    context["status_code"] = status_code
    context_str = _serialize_context(context)
    if handled and status_code < 500:
        current_app.logger.warning(
            "Handled API error (%s): %s | context=%s", status_code, exc, context_str
        )
        return
    if handled:
        current_app.logger.error(
            "Handled API error (%s): %s | context=%s", status_code, exc, context_str,
            exc_info=exc,
        )
        return
    current_app.logger.exception(
        "Unhandled API error (%s): %s | context=%s", status_code, exc, context_str
    )


def handle_api_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Decorator that centralizes API error handling and logging."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        try:
            return func(*args, **kwargs)
        except APIError as exc:
            status_code = exc.status_code
            _log_api_error(exc, status_code=status_code, handled=True)
            return jsonify(exc.to_dict()), status_code
        except CatalogError as exc:
            api_error = api_error_from_catalog(exc)
            _log_api_error(exc, status_code=api_error.status_code, handled=True)
            return jsonify(api_error.to_dict()), api_error.status_code
        except HTTPException as exc:
            status_code = exc.code or 500
            message = exc.description or str(exc)
            api_error = APIError(message=message, status_code=status_code)
            _log_api_error(exc, status_code=status_code, handled=True)
            return jsonify(api_error.to_dict()), status_code
        except Exception as exc:
            _log_api_error(exc, status_code=500, handled=False)
            return jsonify({"error": "Internal server error"}), 500

    return wrapper


__all__ = [
    "APIError",
    "BadRequestError",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "api_error_from_catalog",
    "handle_api_errors",
]
