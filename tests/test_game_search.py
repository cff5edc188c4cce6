import pytest

from errors import AuthenticationError, InvalidReferenceError
from games.search import SearchParams, build_search_query, order_by_clause
from tests.app_helpers import API, auth, create_game, login, register_and_login

# Demo games listed by creation date, oldest first.
CREATED_ORDER = [11, 10, 9, 8, 12, 7, 6, 5, 4, 1, 2, 3]


def _ids(resp):
    return [game["gameId"] for game in resp.get_json()["games"]]


def test_build_search_query_without_filters():
    where_sql, values = build_search_query(SearchParams())
    assert where_sql == ""
    assert values == []


def test_build_search_query_combines_filters():
    params = SearchParams(
        q="quest",
        genre_ids=[1, 2],
        platform_ids=[3],
        price=2000,
        creator_id=4,
        reviewer_id=5,
    )
    where_sql, values = build_search_query(params)
    assert where_sql.startswith("WHERE ")
    assert "(game.title LIKE ? OR game.description LIKE ?)" in where_sql
    assert "game.genre_id IN (?, ?)" in where_sql
    assert "SELECT game_id FROM game_platforms WHERE platform_id IN (?)" in where_sql
    assert "game.price <= ?" in where_sql
    assert "game.creator_id = ?" in where_sql
    assert "SELECT game_id FROM game_review WHERE user_id = ?" in where_sql
    assert values == ["%quest%", "%quest%", 1, 2, 3, 2000, 4, 5]


def test_build_search_query_free_games_only():
    where_sql, values = build_search_query(SearchParams(price=0))
    assert where_sql == "WHERE game.price = 0"
    assert values == []


def test_build_search_query_user_filters_need_user():
    with pytest.raises(AuthenticationError):
        build_search_query(SearchParams(owned_by_me=True))
    where_sql, values = build_search_query(
        SearchParams(owned_by_me=True, wishlisted_by_me=True, user_id=7)
    )
    assert "FROM owned WHERE user_id = ?" in where_sql
    assert "FROM wishlist WHERE user_id = ?" in where_sql
    assert values == [7, 7]


def test_order_by_clause_tie_breaks_on_id():
    assert order_by_clause("PRICE_DESC") == "ORDER BY game.price DESC, game.id ASC"
    assert order_by_clause(None) == "ORDER BY game.creation_date ASC, game.id ASC"
    with pytest.raises(InvalidReferenceError):
        order_by_clause("SIDEWAYS")


def test_search_defaults_to_creation_order(demo_client):
    resp = demo_client.get(f"{API}/games")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 12
    assert _ids(resp) == CREATED_ORDER

    first = data["games"][0]
    assert first["title"] == "Cave Explorer"
    assert first["creatorFirstName"] == "Charlie"
    assert first["creationDate"] == "2024-02-02T09:30:00.000Z"
    assert first["platformIds"] == [4]


def test_search_pagination_keeps_total(demo_client):
    resp = demo_client.get(f"{API}/games?startIndex=2&count=3")
    data = resp.get_json()
    assert data["count"] == 12
    assert _ids(resp) == CREATED_ORDER[2:5]


def test_search_free_games(demo_client):
    resp = demo_client.get(f"{API}/games?price=0")
    assert _ids(resp) == [12, 7, 1]
    assert all(game["price"] == 0 for game in resp.get_json()["games"])


def test_search_max_price(demo_client):
    resp = demo_client.get(f"{API}/games?price=1999&sortBy=PRICE_ASC")
    assert _ids(resp) == [1, 7, 12, 4, 5]


def test_search_text_genre_and_platform_filters(demo_client):
    assert _ids(demo_client.get(f"{API}/games?q=horror")) == [8, 12]
    assert _ids(demo_client.get(f"{API}/games?genreIds=2")) == [11, 2]
    assert _ids(demo_client.get(f"{API}/games?genreIds=2,8")) == [11, 8, 12, 2]
    assert _ids(demo_client.get(f"{API}/games?genreIds=2&genreIds=8")) == [11, 8, 12, 2]
    assert _ids(demo_client.get(f"{API}/games?platformIds=4")) == [11, 9, 12]


def test_search_creator_and_reviewer_filters(demo_client):
    assert _ids(demo_client.get(f"{API}/games?creatorId=1")) == [9, 1]
    assert _ids(demo_client.get(f"{API}/games?reviewerId=3")) == [6, 1]


def test_search_rating_sort_tie_breaks_by_id(demo_client):
    resp = demo_client.get(f"{API}/games?sortBy=RATING_DESC")
    assert _ids(resp) == [9, 5, 3, 4, 7, 1, 2, 6, 10, 8, 11, 12]
    ratings = [game["rating"] for game in resp.get_json()["games"]]
    assert ratings[0] == 10.0
    assert ratings[-1] == 0.0


def test_search_alphabetical_sort(demo_client):
    titles = [
        game["title"]
        for game in demo_client.get(f"{API}/games?sortBy=ALPHABETICAL_ASC").get_json()["games"]
    ]
    assert titles == sorted(titles)


def test_search_owned_and_wishlisted_by_me(demo_client):
    _, token = login(demo_client, "alice@example.com", "password")
    owned = demo_client.get(f"{API}/games?ownedByMe=true", headers=auth(token))
    assert owned.status_code == 200
    assert _ids(owned) == [7]

    wishlisted = demo_client.get(f"{API}/games?wishlistedByMe=true", headers=auth(token))
    assert _ids(wishlisted) == [8]

    assert demo_client.get(f"{API}/games?ownedByMe=true").status_code == 401
    assert (
        demo_client.get(f"{API}/games?wishlistedByMe=true", headers=auth("bogus")).status_code
        == 401
    )


def test_search_rejects_bad_parameters(demo_client):
    assert demo_client.get(f"{API}/games?startIndex=-1").status_code == 400
    assert demo_client.get(f"{API}/games?count=abc").status_code == 400
    assert demo_client.get(f"{API}/games?count=\u00b2").status_code == 400
    assert demo_client.get(f"{API}/games?count=99999999999999999999").status_code == 400
    assert demo_client.get(f"{API}/games?price=99999999999999999999").status_code == 400
    assert demo_client.get(f"{API}/games?creatorId=99999999999999999999").status_code == 400
    assert demo_client.get(f"{API}/games?genreIds=1,x").status_code == 400
    bad_sort = demo_client.get(f"{API}/games?sortBy=SIDEWAYS")
    assert bad_sort.status_code == 400
    assert "sortBy" in bad_sort.get_json()["error"]


def test_search_with_no_matches_returns_empty_page(demo_client):
    resp = demo_client.get(f"{API}/games?q=zzzz-not-a-title")
    assert resp.status_code == 200
    assert resp.get_json() == {"games": [], "count": 0}


def test_every_sort_breaks_ties_by_id(app, client):
    _, token = register_and_login(client, "creator@example.com")
    for title, price in (("Alpha", 500), ("Bravo", 500), ("Charlie", 500), ("Delta", 100)):
        create_game(client, token, title=title, price=price)
    handle = app.extensions["catalog_fallback"]
    with handle.transaction():
        handle.execute("UPDATE game SET creation_date = ?", ("2024-05-01 12:00:00",))

    def order(sort_by):
        resp = client.get(f"{API}/games?sortBy={sort_by}")
        assert resp.status_code == 200
        return _ids(resp)

    assert order("PRICE_DESC") == [1, 2, 3, 4]
    assert order("PRICE_ASC") == [4, 1, 2, 3]
    assert order("CREATED_ASC") == [1, 2, 3, 4]
    assert order("CREATED_DESC") == [1, 2, 3, 4]
    assert order("RATING_ASC") == [1, 2, 3, 4]
    assert order("RATING_DESC") == [1, 2, 3, 4]
    assert order("ALPHABETICAL_DESC") == [4, 3, 2, 1]
