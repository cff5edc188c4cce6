"""Shared testing helpers for building the Flask app against temporary storage."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any

from PIL import Image

from web.app_factory import create_app

API = "/api/v1"
DEFAULT_PASSWORD = "password123"


def load_app(tmp_path: Path, **overrides: Any):
    """Build an app using a SQLite file and image directory under ``tmp_path``."""

    settings: dict[str, Any] = {
        "DB_DSN": f"sqlite:///{(tmp_path / 'catalog.db').as_posix()}",
        "DB_POOL_SIZE": 5,
        "DB_SSL": False,
        "IMAGE_DIR": str(tmp_path / "images"),
        "LOG_FILE": str(tmp_path / "logs" / "app.log"),
        "API_PREFIX": API,
        "SEED_DEMO_DATA": False,
        "DEMO_USER_PASSWORD": "password",
    }
    settings.update(overrides)
    app = create_app(settings)
    app.config["TESTING"] = True
    app.testing = True
    return app


def auth(token: str) -> dict[str, str]:
    return {"X-Authorization": token}


def register_user(
    client,
    email: str = "tester@example.com",
    *,
    first_name: str = "Test",
    last_name: str = "User",
    password: str = DEFAULT_PASSWORD,
) -> int:
    resp = client.post(
        f"{API}/users/register",
        json={
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        },
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["userId"]


def login(client, email: str, password: str = DEFAULT_PASSWORD) -> tuple[int, str]:
    resp = client.post(f"{API}/users/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    data = resp.get_json()
    return data["userId"], data["token"]


def register_and_login(client, email: str, **kwargs: Any) -> tuple[int, str]:
    register_user(client, email, **kwargs)
    return login(client, email, kwargs.get("password", DEFAULT_PASSWORD))


def create_game(client, token: str, **fields: Any) -> int:
    payload = {
        "title": "Test Game",
        "description": "A game used in tests.",
        "genreId": 1,
        "price": 1999,
        "platformIds": [1, 2],
    }
    payload.update(fields)
    resp = client.post(f"{API}/games", json=payload, headers=auth(token))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["gameId"]


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 4)) -> bytes:
    buf = io.BytesIO()
    mode = "P" if fmt == "GIF" else "RGB"
    Image.new(mode, size).save(buf, format=fmt)
    return buf.getvalue()
