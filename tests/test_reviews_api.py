from tests.app_helpers import API, auth, create_game, register_and_login


def test_add_and_list_reviews(client):
    _, creator_token = register_and_login(client, "creator@example.com")
    first_id, first_token = register_and_login(
        client, "first@example.com", first_name="Fay", last_name="First"
    )
    second_id, second_token = register_and_login(client, "second@example.com")
    game_id = create_game(client, creator_token)
    url = f"{API}/games/{game_id}/reviews"

    assert client.post(url, json={"rating": 4}, headers=auth(first_token)).status_code == 201
    assert (
        client.post(
            url, json={"rating": 9, "review": "Great fun."}, headers=auth(second_token)
        ).status_code
        == 201
    )

    resp = client.get(url)
    assert resp.status_code == 200
    reviews = resp.get_json()
    # Newest first.
    assert [review["reviewerId"] for review in reviews] == [second_id, first_id]
    assert reviews[0]["review"] == "Great fun."
    assert reviews[0]["rating"] == 9
    assert reviews[1]["review"] is None
    assert reviews[1]["reviewerFirstName"] == "Fay"
    assert reviews[1]["reviewerLastName"] == "First"
    assert reviews[0]["timestamp"].endswith("Z")

    game = client.get(f"{API}/games/{game_id}").get_json()
    assert game["rating"] == 6.5


def test_review_rules(client):
    _, creator_token = register_and_login(client, "creator@example.com")
    _, reviewer_token = register_and_login(client, "reviewer@example.com")
    game_id = create_game(client, creator_token)
    url = f"{API}/games/{game_id}/reviews"

    assert client.post(url, json={"rating": 5}).status_code == 401
    assert client.post(url, json={"rating": 5}, headers=auth(creator_token)).status_code == 403
    assert client.post(url, json={"rating": 0}, headers=auth(reviewer_token)).status_code == 400
    assert client.post(url, json={"rating": 11}, headers=auth(reviewer_token)).status_code == 400
    assert client.post(url, json={"rating": "5"}, headers=auth(reviewer_token)).status_code == 400
    assert client.post(url, json={"rating": 5}, headers=auth(reviewer_token)).status_code == 201
    assert client.post(url, json={"rating": 6}, headers=auth(reviewer_token)).status_code == 403
    assert (
        client.post(f"{API}/games/999/reviews", json={"rating": 5}, headers=auth(reviewer_token))
        .status_code
        == 404
    )


def test_list_reviews_for_missing_game(client):
    assert client.get(f"{API}/games/999/reviews").status_code == 404
    assert client.get(f"{API}/games/nope/reviews").status_code == 400


def test_demo_reviews_are_newest_first(demo_client):
    reviews = demo_client.get(f"{API}/games/1/reviews").get_json()
    assert [review["reviewerId"] for review in reviews] == [4, 3]
    assert reviews[0]["timestamp"] == "2024-11-02T14:22:10.000Z"
