def test_add_movie(client, catalog, owner_headers, sample_list):
    response = client.post(
        f"/lists/{sample_list.id}/movies",
        headers=owner_headers,
        json={"media_id": 550, "media_type": "movie"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["movie_id"] == 550
    assert data["status"] == "not_watched"
    assert data["average_rating"] is None
    assert data["movie"]["title"] == "Clube da Luta"
    assert data["movie"]["poster_url"] == "https://image.tmdb.org/t/p/w500/fight.jpg"
    assert data["movie"]["genres"] == [{"id": 18, "name": "Drama"}]

    duplicate = client.post(
        f"/lists/{sample_list.id}/movies",
        headers=owner_headers,
        json={"media_id": 550, "media_type": "movie"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "MOVIE_ALREADY_IN_LIST"


def test_add_movie_catalog_unavailable(client, catalog, owner_headers, sample_list):
    catalog.unavailable = True
    response = client.post(
        f"/lists/{sample_list.id}/movies",
        headers=owner_headers,
        json={"media_id": 550, "media_type": "movie"},
    )
    assert response.status_code == 502
    assert response.json()["code"] == "CATALOG_UNAVAILABLE"


def test_add_movie_not_member(client, outsider_headers, sample_list):
    response = client.post(
        f"/lists/{sample_list.id}/movies",
        headers=outsider_headers,
        json={"media_id": 550, "media_type": "movie"},
    )
    assert response.status_code == 403


def test_list_movies(client, participant_headers, stocked_list):
    response = client.get(f"/lists/{stocked_list.id}/movies", headers=participant_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert {m["movie"]["title"] for m in data["movies"]} == {
        "The Matrix",
        "Inception",
        "Pulp Fiction",
    }


def test_list_movies_status_filter(client, owner_headers, stocked_list, movies):
    client.patch(
        f"/lists/{stocked_list.id}/movies/{movies[0].id}",
        headers=owner_headers,
        json={"status": "watched"},
    )

    response = client.get(
        f"/lists/{stocked_list.id}/movies?status=watched", headers=owner_headers
    )
    assert [m["movie_id"] for m in response.json()["movies"]] == [movies[0].id]


def test_update_movie_status_and_rating(
    client, owner_headers, participant_headers, stocked_list, movies
):
    url = f"/lists/{stocked_list.id}/movies/{movies[0].id}"

    response = client.patch(url, headers=owner_headers, json={"status": "watched", "rating": 8})
    assert response.status_code == 200
    data = response.json()
    assert data["old_status"] == "not_watched"
    assert data["new_status"] == "watched"
    assert data["list_movie"]["watched_at"] is not None
    assert data["old_entry"] is None
    assert data["new_entry"] == {"rating": 8, "notes": None}
    assert data["average_rating"] == 8.0

    response = client.patch(url, headers=participant_headers, json={"rating": 10})
    data = response.json()
    assert data["average_rating"] == 9.0
    assert data["list_movie"]["average_rating"] == 9.0
    assert {e["username"] for e in data["list_movie"]["user_entries"]} == {
        "owner",
        "participant",
    }

    response = client.patch(url, headers=owner_headers, json={"rating": None})
    data = response.json()
    assert data["old_entry"] == {"rating": 8, "notes": None}
    assert data["new_entry"] is None
    assert data["average_rating"] == 10.0


def test_update_movie_notes_only(client, owner_headers, stocked_list, movies):
    url = f"/lists/{stocked_list.id}/movies/{movies[1].id}"
    response = client.patch(url, headers=owner_headers, json={"notes": "watch in IMAX"})
    assert response.status_code == 200
    data = response.json()
    assert data["new_entry"] is None
    assert data["average_rating"] is None

    client.patch(url, headers=owner_headers, json={"rating": 6})
    response = client.patch(url, headers=owner_headers, json={"notes": "watch in IMAX"})
    assert response.json()["new_entry"] == {"rating": 6, "notes": "watch in IMAX"}


def test_update_movie_requires_a_field(client, owner_headers, stocked_list, movies):
    response = client.patch(
        f"/lists/{stocked_list.id}/movies/{movies[0].id}",
        headers=owner_headers,
        json={},
    )
    assert response.status_code == 422


def test_update_movie_invalid_rating(client, owner_headers, stocked_list, movies):
    response = client.patch(
        f"/lists/{stocked_list.id}/movies/{movies[0].id}",
        headers=owner_headers,
        json={"rating": 11},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_RATING"


def test_update_movie_not_in_list(client, owner_headers, sample_list):
    response = client.patch(
        f"/lists/{sample_list.id}/movies/603",
        headers=owner_headers,
        json={"status": "watching"},
    )
    assert response.status_code == 404
    assert response.json()["code"] == "MOVIE_NOT_IN_LIST"


def test_remove_movie(client, participant_headers, stocked_list, movies):
    url = f"/lists/{stocked_list.id}/movies/{movies[0].id}"
    assert client.delete(url, headers=participant_headers).status_code == 204
    assert client.delete(url, headers=participant_headers).status_code == 404

    response = client.get(f"/lists/{stocked_list.id}/movies", headers=participant_headers)
    assert response.json()["total"] == 2


def test_search_movies(client, owner_headers, stocked_list):
    response = client.get(
        f"/lists/{stocked_list.id}/movies/search?q=ion&limit=1", headers=owner_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert len(data["movies"]) == 1
    assert data["has_more"] is True


def test_search_movies_short_query(client, owner_headers, stocked_list):
    response = client.get(
        f"/lists/{stocked_list.id}/movies/search?q=a", headers=owner_headers
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_QUERY"


def test_reorder_movies(client, owner_headers, stocked_list, movies):
    response = client.patch(
        f"/lists/{stocked_list.id}/movies/reorder",
        headers=owner_headers,
        json={"movie_orders": [
            {"movie_id": movies[1].id, "display_order": 0},
            {"movie_id": movies[2].id, "display_order": 1},
            {"movie_id": movies[0].id, "display_order": 2},
        ]},
    )
    assert response.status_code == 204

    response = client.get(f"/lists/{stocked_list.id}/movies", headers=owner_headers)
    assert [m["movie_id"] for m in response.json()["movies"]] == [
        movies[1].id,
        movies[2].id,
        movies[0].id,
    ]
