import re


def test_create_list(client, owner_user, owner_headers):
    response = client.post(
        "/lists",
        headers=owner_headers,
        json={"name": "Movie Night", "description": "Fridays"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Movie Night"
    assert data["description"] == "Fridays"
    assert data["created_by"] == owner_user.id
    assert data["creator_username"] == "owner"
    assert re.fullmatch(r"[A-Z0-9]{10}", data["invite_code"])


def test_create_list_invalid_name(client, owner_headers):
    response = client.post("/lists", headers=owner_headers, json={"name": "   "})
    assert response.status_code == 400
    assert response.headers["Cache-Control"] == "no-store"
    body = response.json()
    assert body["code"] == "INVALID_NAME"
    assert body["details"]
    assert body["timestamp"].endswith("Z")


def test_create_list_unauthenticated(client):
    response = client.post("/lists", json={"name": "Nope"})
    assert response.status_code in (401, 403)


def test_join_flow(client, owner_headers, participant_headers):
    created = client.post("/lists", headers=owner_headers, json={"name": "Movie Night"})
    code = created.json()["invite_code"]

    response = client.post(
        "/lists/join", headers=participant_headers, json={"invite_code": code}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["already_member"] is False
    assert data["role"] == "participant"
    assert data["member_count"] == 2
    assert data["list"]["id"] == created.json()["id"]

    again = client.post(
        "/lists/join", headers=participant_headers, json={"invite_code": code.lower()}
    )
    assert again.json()["already_member"] is True
    assert again.json()["member_count"] == 2


def test_join_invalid_code(client, participant_headers):
    response = client.post(
        "/lists/join", headers=participant_headers, json={"invite_code": "short"}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INVITE_CODE"


def test_join_unknown_code(client, participant_headers):
    response = client.post(
        "/lists/join", headers=participant_headers, json={"invite_code": "NOPE000000"}
    )
    assert response.status_code == 404
    assert response.json()["code"] == "INVITE_CODE_NOT_FOUND"


def test_list_lists(client, participant_headers, stocked_list):
    response = client.get("/lists", headers=participant_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["has_more"] is False
    entry = data["lists"][0]
    assert entry["list"]["name"] == "Movie Night"
    assert entry["role"] == "participant"
    assert entry["member_count"] == 2
    assert entry["movie_count"] == 3


def test_list_lists_role_filter(client, participant_headers, shared_list):
    response = client.get("/lists?role=owner", headers=participant_headers)
    assert response.status_code == 200
    assert response.json()["lists"] == []


def test_list_lists_excludes_other_lists(client, outsider_headers, shared_list):
    response = client.get("/lists", headers=outsider_headers)
    assert response.json()["total"] == 0


def test_delete_list(client, owner_headers, participant_headers, shared_list):
    response = client.delete(f"/lists/{shared_list.id}", headers=participant_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "NOT_LIST_OWNER"

    response = client.delete(f"/lists/{shared_list.id}", headers=owner_headers)
    assert response.status_code == 204

    response = client.get(f"/lists/{shared_list.id}/movies", headers=participant_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "LIST_NOT_FOUND"


def test_delete_list_rate_limited(client, owner_headers):
    statuses = [
        client.delete("/lists/999999", headers=owner_headers).status_code
        for _ in range(4)
    ]
    assert statuses == [404, 404, 404, 429]


def test_leave_list(client, owner_headers, participant_headers, shared_list):
    response = client.post(f"/lists/{shared_list.id}/leave", headers=owner_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "OWNER_CANNOT_LEAVE"

    response = client.post(f"/lists/{shared_list.id}/leave", headers=participant_headers)
    assert response.status_code == 204

    response = client.post(f"/lists/{shared_list.id}/leave", headers=participant_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "NOT_A_MEMBER"
