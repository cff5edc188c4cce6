"""Game catalog API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, Response, jsonify, request

from games import actions as game_actions
from games import images as game_images
from games import reviews as game_reviews
from games import service as games_service
from games.search import DEFAULT_COUNT, DEFAULT_SORT, SearchParams, search_games
from helpers import parse_flag, parse_id_list, parse_non_negative_int
from media.images import ImageStore
from routes.api_utils import NotFoundError, handle_api_errors
from routes.middleware import current_user_id, optional_auth, require_auth, with_id
from services.validation import GameCreate, GameEdit, ImageHeader, ReviewCreate, validate

games_blueprint = Blueprint("games", __name__, url_prefix="/games")

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the game endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"games routes missing context value: {key}")
    return _context[key]


def _db():
    getter: Callable[[], Any] = _ctx("get_db")
    return getter()


def _image_store() -> ImageStore:
    return _ctx("image_store")


def _search_params_from_request() -> SearchParams:
    args = request.args
    q = (args.get("q") or "").strip() or None
    return SearchParams(
        start_index=parse_non_negative_int(args.get("startIndex"), "startIndex", 0),
        count=parse_non_negative_int(args.get("count"), "count", DEFAULT_COUNT),
        q=q,
        genre_ids=parse_id_list(args.getlist("genreIds"), "genreIds"),
        platform_ids=parse_id_list(args.getlist("platformIds"), "platformIds"),
        price=parse_non_negative_int(args.get("price"), "price"),
        creator_id=parse_non_negative_int(args.get("creatorId"), "creatorId"),
        reviewer_id=parse_non_negative_int(args.get("reviewerId"), "reviewerId"),
        sort_by=(args.get("sortBy") or DEFAULT_SORT).strip(),
        owned_by_me=parse_flag(args.get("ownedByMe")),
        wishlisted_by_me=parse_flag(args.get("wishlistedByMe")),
        user_id=current_user_id(),
    )


@games_blueprint.route("", methods=["GET"])
@handle_api_errors
@optional_auth
def api_search_games():
    return jsonify(search_games(_db(), _search_params_from_request()))


@games_blueprint.route("", methods=["POST"])
@handle_api_errors
@require_auth
def api_create_game():
    data = validate(GameCreate, request.get_json(silent=True))
    game_id = games_service.create_game(_db(), data, current_user_id())
    return jsonify({"gameId": game_id}), 201


@games_blueprint.route("/genres", methods=["GET"])
@handle_api_errors
def api_genres():
    return jsonify(games_service.list_genres(_db()))


@games_blueprint.route("/platforms", methods=["GET"])
@handle_api_errors
def api_platforms():
    return jsonify(games_service.list_platforms(_db()))


@games_blueprint.route("/<id>", methods=["GET"])
@handle_api_errors
@with_id("game")
def api_get_game(id: int):
    game = games_service.get_game(_db(), id)
    if game is None:
        raise NotFoundError("No game found with the specified id")
    return jsonify(game)


@games_blueprint.route("/<id>", methods=["PATCH"])
@handle_api_errors
@with_id("game")
@require_auth
def api_edit_game(id: int):
    data = validate(GameEdit, request.get_json(silent=True))
    games_service.edit_game(_db(), id, data, current_user_id())
    return "", 200


@games_blueprint.route("/<id>", methods=["DELETE"])
@handle_api_errors
@with_id("game")
@require_auth
def api_delete_game(id: int):
    games_service.delete_game(_db(), id, current_user_id(), image_store=_image_store())
    return "", 200


@games_blueprint.route("/<id>/reviews", methods=["GET"])
@handle_api_errors
@with_id("game")
def api_list_reviews(id: int):
    return jsonify(game_reviews.list_reviews(_db(), id))


@games_blueprint.route("/<id>/reviews", methods=["POST"])
@handle_api_errors
@with_id("game")
@require_auth
def api_add_review(id: int):
    data = validate(ReviewCreate, request.get_json(silent=True))
    game_reviews.add_review(_db(), current_user_id(), id, data.rating, data.review)
    return "", 201


@games_blueprint.route("/<id>/wishlist", methods=["POST"])
@handle_api_errors
@with_id("game")
@require_auth
def api_add_wishlist(id: int):
    game_actions.add_to_wishlist(_db(), id, current_user_id())
    return "", 200


@games_blueprint.route("/<id>/wishlist", methods=["DELETE"])
@handle_api_errors
@with_id("game")
@require_auth
def api_remove_wishlist(id: int):
    game_actions.remove_from_wishlist(_db(), id, current_user_id())
    return "", 200


@games_blueprint.route("/<id>/owned", methods=["POST"])
@handle_api_errors
@with_id("game")
@require_auth
def api_add_owned(id: int):
    game_actions.add_to_owned(_db(), id, current_user_id())
    return "", 200


@games_blueprint.route("/<id>/owned", methods=["DELETE"])
@handle_api_errors
@with_id("game")
@require_auth
def api_remove_owned(id: int):
    game_actions.remove_from_owned(_db(), id, current_user_id())
    return "", 200


@games_blueprint.route("/<id>/image", methods=["GET"])
@handle_api_errors
@with_id("game")
def api_get_game_image(id: int):
    image = game_images.get_game_image(_db(), _image_store(), id)
    if image is None:
        raise NotFoundError("Image not found")
    data, content_type = image
    return Response(data, status=200, mimetype=content_type)


@games_blueprint.route("/<id>/image", methods=["PUT"])
@handle_api_errors
@with_id("game")
@require_auth
def api_set_game_image(id: int):
    header = validate(ImageHeader, {"contentType": request.content_type})
    is_new = game_images.set_game_image(
        _db(),
        _image_store(),
        current_user_id(),
        id,
        request.get_data(),
        header.contentType,
    )
    return "", 201 if is_new else 200


@games_blueprint.route("/<id>/image", methods=["DELETE"])
@handle_api_errors
@with_id("game")
@require_auth
def api_delete_game_image(id: int):
    if not game_images.delete_game_image(_db(), _image_store(), current_user_id(), id):
        raise NotFoundError("Image not found")
    return "", 200
