"""User account and profile image API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, Response, jsonify, request

from media.images import ImageStore
from routes.api_utils import NotFoundError, handle_api_errors
from routes.middleware import (
    authorize_self,
    current_user_id,
    optional_auth,
    require_auth,
    with_id,
)
from services.validation import ImageHeader, UserEdit, UserLogin, UserRegister, validate
from users import images as user_images
from users import service as users_service

users_blueprint = Blueprint("users", __name__, url_prefix="/users")

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the user endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"users routes missing context value: {key}")
    return _context[key]


def _db():
    getter: Callable[[], Any] = _ctx("get_db")
    return getter()


def _image_store() -> ImageStore:
    return _ctx("image_store")


@users_blueprint.route("/register", methods=["POST"])
@handle_api_errors
def api_register():
    data = validate(UserRegister, request.get_json(silent=True))
    user_id = users_service.register(_db(), data)
    return jsonify({"userId": user_id}), 201


@users_blueprint.route("/login", methods=["POST"])
@handle_api_errors
def api_login():
    data = validate(UserLogin, request.get_json(silent=True))
    user_id, token = users_service.login(_db(), data.email, data.password)
    return jsonify({"userId": user_id, "token": token})


@users_blueprint.route("/logout", methods=["POST"])
@handle_api_errors
@require_auth
def api_logout():
    users_service.logout(_db(), current_user_id())
    return "", 200


@users_blueprint.route("/<id>", methods=["GET"])
@handle_api_errors
@with_id("user")
@optional_auth
def api_view_user(id: int):
    return jsonify(users_service.view_user(_db(), id, current_user_id()))


@users_blueprint.route("/<id>", methods=["PATCH"])
@handle_api_errors
@with_id("user")
@require_auth
@authorize_self
def api_update_user(id: int):
    data = validate(UserEdit, request.get_json(silent=True))
    users_service.update_user(_db(), id, data)
    return "", 200


@users_blueprint.route("/<id>/image", methods=["GET"])
@handle_api_errors
@with_id("user")
def api_get_user_image(id: int):
    image = user_images.get_user_image(_db(), _image_store(), id)
    if image is None:
        raise NotFoundError("Image not found")
    data, content_type = image
    return Response(data, status=200, mimetype=content_type)


@users_blueprint.route("/<id>/image", methods=["PUT"])
@handle_api_errors
@with_id("user")
@require_auth
@authorize_self
def api_set_user_image(id: int):
    header = validate(ImageHeader, {"contentType": request.content_type})
    is_new = user_images.set_user_image(
        _db(),
        _image_store(),
        current_user_id(),
        id,
        request.get_data(),
        header.contentType,
    )
    return "", 201 if is_new else 200


@users_blueprint.route("/<id>/image", methods=["DELETE"])
@handle_api_errors
@with_id("user")
@require_auth
@authorize_self
def api_delete_user_image(id: int):
    if not user_images.delete_user_image(_db(), _image_store(), id):
        raise NotFoundError("Image not found")
    return "", 200
