from tests.app_helpers import API, auth, create_game, register_and_login


def test_genres_and_platforms_lists(client):
    genres = client.get(f"{API}/games/genres")
    assert genres.status_code == 200
    genre_list = genres.get_json()
    assert len(genre_list) == 10
    assert genre_list[0] == {"genreId": 1, "name": "Action"}

    platforms = client.get(f"{API}/games/platforms")
    assert platforms.status_code == 200
    assert platforms.get_json()[0] == {"platformId": 1, "name": "PC"}
    assert [p["name"] for p in platforms.get_json()] == [
        "PC",
        "Xbox",
        "Playstation 5",
        "Nintendo Switch",
        "Mobile",
    ]


def test_create_and_fetch_game(client):
    user_id, token = register_and_login(client, "creator@example.com", first_name="Cree")
    game_id = create_game(
        client,
        token,
        title="Star Farmer",
        description="Grow crops in space.",
        genreId=5,
        price=2500,
        platformIds=[3, 1],
    )

    resp = client.get(f"{API}/games/{game_id}")
    assert resp.status_code == 200
    game = resp.get_json()
    assert game["gameId"] == game_id
    assert game["title"] == "Star Farmer"
    assert game["description"] == "Grow crops in space."
    assert game["genreId"] == 5
    assert game["price"] == 2500
    assert game["creatorId"] == user_id
    assert game["creatorFirstName"] == "Cree"
    assert game["creatorLastName"] == "User"
    assert game["platformIds"] == [1, 3]
    assert game["rating"] == 0
    assert game["numberOfOwners"] == 0
    assert game["numberOfWishlists"] == 0
    assert game["creationDate"].endswith("Z")


def test_create_game_requires_auth(client):
    resp = client.post(
        f"{API}/games",
        json={
            "title": "Nope",
            "description": "No token.",
            "genreId": 1,
            "price": 0,
            "platformIds": [1],
        },
    )
    assert resp.status_code == 401


def test_create_game_validation(client):
    _, token = register_and_login(client, "creator@example.com")
    base = {
        "title": "Valid",
        "description": "Valid description.",
        "genreId": 1,
        "price": 100,
        "platformIds": [1],
    }

    unknown_genre = client.post(
        f"{API}/games", json={**base, "genreId": 99}, headers=auth(token)
    )
    assert unknown_genre.status_code == 400

    unknown_platform = client.post(
        f"{API}/games", json={**base, "platformIds": [1, 42]}, headers=auth(token)
    )
    assert unknown_platform.status_code == 400

    no_platforms = client.post(
        f"{API}/games", json={**base, "platformIds": []}, headers=auth(token)
    )
    assert no_platforms.status_code == 400

    negative_price = client.post(
        f"{API}/games", json={**base, "price": -5}, headers=auth(token)
    )
    assert negative_price.status_code == 400

    missing_title = {key: value for key, value in base.items() if key != "title"}
    assert client.post(f"{API}/games", json=missing_title, headers=auth(token)).status_code == 400


def test_create_game_duplicate_title_forbidden(client):
    _, token = register_and_login(client, "creator@example.com")
    create_game(client, token, title="Only Once")
    resp = client.post(
        f"{API}/games",
        json={
            "title": "Only Once",
            "description": "Second try.",
            "genreId": 1,
            "price": 0,
            "platformIds": [1],
        },
        headers=auth(token),
    )
    assert resp.status_code == 403


def test_create_game_rejects_out_of_range_numbers(client):
    _, token = register_and_login(client, "creator@example.com")
    payload = {
        "title": "Expensive",
        "description": "Costs more than the column holds.",
        "genreId": 1,
        "price": 99999999999999999999,
        "platformIds": [1],
    }
    resp = client.post(f"{API}/games", json=payload, headers=auth(token))
    assert resp.status_code == 400
    assert resp.get_json()["details"][0].startswith("data.price")

    payload.update(price=100, genreId=2**63)
    assert client.post(f"{API}/games", json=payload, headers=auth(token)).status_code == 400


def test_get_game_invalid_and_missing(client):
    assert client.get(f"{API}/games/xyz").status_code == 400
    assert client.get(f"{API}/games/\u00b2").status_code == 400
    assert client.get(f"{API}/games/99999999999999999999").status_code == 400
    assert client.get(f"{API}/users/99999999999999999999").status_code == 400
    assert client.get(f"{API}/games/2147483647").status_code == 404
    assert client.get(f"{API}/games/12345").status_code == 404


def test_edit_game_updates_supplied_fields(client):
    _, token = register_and_login(client, "creator@example.com")
    game_id = create_game(client, token, title="Old Title", platformIds=[1, 2])

    resp = client.patch(
        f"{API}/games/{game_id}",
        json={"title": "New Title", "price": 0, "platformIds": [4]},
        headers=auth(token),
    )
    assert resp.status_code == 200

    game = client.get(f"{API}/games/{game_id}").get_json()
    assert game["title"] == "New Title"
    assert game["price"] == 0
    assert game["platformIds"] == [4]
    assert game["description"] == "A game used in tests."


def test_edit_game_keeps_platforms_when_not_supplied(client):
    _, token = register_and_login(client, "creator@example.com")
    game_id = create_game(client, token, platformIds=[2, 3])
    resp = client.patch(
        f"{API}/games/{game_id}", json={"description": "Changed."}, headers=auth(token)
    )
    assert resp.status_code == 200
    assert client.get(f"{API}/games/{game_id}").get_json()["platformIds"] == [2, 3]


def test_edit_game_errors(client):
    _, creator_token = register_and_login(client, "creator@example.com")
    _, other_token = register_and_login(client, "other@example.com")
    game_id = create_game(client, creator_token, title="Mine")
    create_game(client, creator_token, title="Also Mine")
    url = f"{API}/games/{game_id}"

    assert client.patch(url, json={"title": "X"}).status_code == 401
    assert client.patch(url, json={"title": "X"}, headers=auth(other_token)).status_code == 403
    assert (
        client.patch(url, json={"title": "Also Mine"}, headers=auth(creator_token)).status_code
        == 403
    )
    assert client.patch(url, json={"genreId": 77}, headers=auth(creator_token)).status_code == 400
    assert (
        client.patch(url, json={"platformIds": [9]}, headers=auth(creator_token)).status_code
        == 400
    )
    assert client.patch(url, json={}, headers=auth(creator_token)).status_code == 400
    assert (
        client.patch(f"{API}/games/999", json={"title": "X"}, headers=auth(creator_token))
        .status_code
        == 404
    )


def test_delete_game_cascades_associations(client):
    _, creator_token = register_and_login(client, "creator@example.com")
    _, fan_token = register_and_login(client, "fan@example.com")
    _, owner_token = register_and_login(client, "owner@example.com")
    game_id = create_game(client, creator_token)

    assert client.post(f"{API}/games/{game_id}/wishlist", headers=auth(fan_token)).status_code == 200
    assert client.post(f"{API}/games/{game_id}/owned", headers=auth(owner_token)).status_code == 200

    resp = client.delete(f"{API}/games/{game_id}", headers=auth(creator_token))
    assert resp.status_code == 200
    assert client.get(f"{API}/games/{game_id}").status_code == 404

    listing = client.get(f"{API}/games").get_json()
    assert listing == {"games": [], "count": 0}


def test_delete_game_rules(client):
    _, creator_token = register_and_login(client, "creator@example.com")
    _, reviewer_token = register_and_login(client, "reviewer@example.com")
    game_id = create_game(client, creator_token)
    url = f"{API}/games/{game_id}"

    assert client.delete(url).status_code == 401
    assert client.delete(url, headers=auth(reviewer_token)).status_code == 403
    assert client.delete(f"{API}/games/404", headers=auth(creator_token)).status_code == 404

    review = client.post(f"{url}/reviews", json={"rating": 6}, headers=auth(reviewer_token))
    assert review.status_code == 201
    blocked = client.delete(url, headers=auth(creator_token))
    assert blocked.status_code == 403
    assert client.get(url).status_code == 200
