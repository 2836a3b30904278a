from conftest import PASSWORD, auth_headers
from spotlight.models.account import Role


def sign_in(client, email):
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def test_me_returns_account_with_preferences(client, register):
    body = register("alice@example.com", areaActivity="Design")
    resp = client.get("/api/users/me", headers=auth_headers(body["tokens"]["accessToken"]))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["id"] == body["user"]["id"]
    assert data["email"] == "alice@example.com"
    assert data["areaActivity"] == "Design"
    assert data["role"] == "USER"
    assert data["enabled"] is True
    assert data["preferences"]["profileVisibility"] == "PUBLIC"
    assert "password" not in data
    assert "passwordHash" not in data


def test_me_requires_token(client):
    resp = client.get("/api/users/me")
    assert resp.status_code == 401


def test_update_profile(client, register):
    body = register("alice@example.com")
    headers = auth_headers(body["tokens"]["accessToken"])

    resp = client.put(
        "/api/users/me",
        json={"name": "  Alice Liddell ", "avatar": "https://cdn.example/a.png", "coverImage": None},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["name"] == "Alice Liddell"
    assert data["avatar"] == "https://cdn.example/a.png"
    assert data["coverImage"] is None

    assert client.get("/api/users/me", headers=headers).get_json()["data"]["name"] == "Alice Liddell"


def test_update_profile_rejects_email_change(client, register):
    body = register("alice@example.com")
    resp = client.put(
        "/api/users/me", json={"email": "new@example.com"}, headers=auth_headers(body["tokens"]["accessToken"])
    )
    assert resp.status_code == 422


def test_preferences_roundtrip(client, register):
    body = register("alice@example.com")
    headers = auth_headers(body["tokens"]["accessToken"])

    resp = client.get("/api/users/me/preferences", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["emailNotifications"] is True

    resp = client.put(
        "/api/users/me/preferences",
        json={"emailNotifications": False, "profileVisibility": "PRIVATE", "language": "fr"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["emailNotifications"] is False
    assert data["pushNotifications"] is True
    assert data["profileVisibility"] == "PRIVATE"
    assert data["language"] == "fr"


def test_preferences_validation(client, register):
    body = register("alice@example.com")
    resp = client.put(
        "/api/users/me/preferences",
        json={"profileVisibility": "FRIENDS"},
        headers=auth_headers(body["tokens"]["accessToken"]),
    )
    assert resp.status_code == 422
    assert "profileVisibility" in resp.get_json()["details"]


def test_self_disable_blocks_login(client, register):
    body = register("alice@example.com")
    resp = client.delete(
        f"/api/users/{body['user']['id']}/disable", headers=auth_headers(body["tokens"]["accessToken"])
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["enabled"] is False

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "ACCOUNT_DISABLED"

    resp = client.post("/api/auth/refresh-token", json={"refreshToken": body["tokens"]["refreshToken"]})
    assert resp.status_code == 401


def test_user_cannot_disable_someone_else(client, register):
    alice = register("alice@example.com")
    bob = register("bob@example.com", name="Bob")
    resp = client.delete(
        f"/api/users/{alice['user']['id']}/disable", headers=auth_headers(bob["tokens"]["accessToken"])
    )
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "FORBIDDEN"
    assert sign_in(client, "alice@example.com")["account"]["enabled"] is True


def test_admin_can_disable_anyone(client, register, make_account):
    alice = register("alice@example.com")
    make_account("admin@example.com", name="Admin", role=Role.ADMIN)
    admin = sign_in(client, "admin@example.com")
    assert admin["user"]["role"] == "ADMIN"

    resp = client.delete(
        f"/api/users/{alice['user']['id']}/disable", headers=auth_headers(admin["tokens"]["accessToken"])
    )
    assert resp.status_code == 200

    resp = client.post("/api/auth/refresh-token", json={"refreshToken": alice["tokens"]["refreshToken"]})
    assert resp.status_code == 401


def test_admin_disabling_unknown_user(client, make_account):
    make_account("admin@example.com", name="Admin", role=Role.ADMIN)
    admin = sign_in(client, "admin@example.com")
    resp = client.delete(
        "/api/users/00000000-0000-0000-0000-000000000000/disable",
        headers=auth_headers(admin["tokens"]["accessToken"]),
    )
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "USER_NOT_FOUND"


def test_disable_only_answers_delete(client, register):
    body = register("alice@example.com")
    resp = client.post(
        f"/api/users/{body['user']['id']}/disable", headers=auth_headers(body["tokens"]["accessToken"])
    )
    assert resp.status_code == 405


def test_search_matches_name_email_and_area(client, register, make_account):
    alice = register("alice@example.com", name="Alice", areaActivity="Photography")
    register("bob@example.com", name="Bob", areaActivity="Music")
    register("carol@studio.io", name="Carol")
    make_account("dave@example.com", name="Photo Dave", enabled=False)
    headers = auth_headers(alice["tokens"]["accessToken"])

    resp = client.get("/api/users?search=PHOTO", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert [u["name"] for u in body["data"]] == ["Alice"]
    assert body["meta"] == {"page": 0, "size": 20, "total": 1}
    assert "email" not in body["data"][0]

    resp = client.get("/api/users?search=studio", headers=headers)
    assert [u["name"] for u in resp.get_json()["data"]] == ["Carol"]

    resp = client.get("/api/users", headers=headers)
    assert [u["name"] for u in resp.get_json()["data"]] == ["Alice", "Bob", "Carol"]


def test_search_treats_wildcards_literally(client, register):
    alice = register("alice@example.com", name="Alice")
    resp = client.get("/api/users?search=%25", headers=auth_headers(alice["tokens"]["accessToken"]))
    assert resp.get_json()["data"] == []


def test_search_reports_follow_state(client, register):
    alice = register("alice@example.com", name="Alice")
    bob = register("bob@example.com", name="Bob")
    headers = auth_headers(alice["tokens"]["accessToken"])
    client.post(f"/api/users/follow/{bob['user']['id']}", headers=headers)

    resp = client.get("/api/users?search=bob", headers=headers)
    assert resp.get_json()["data"][0]["isFollowing"] is True


def test_public_profile(client, register, make_account):
    alice = register("alice@example.com", name="Alice")
    bob = register("bob@example.com", name="Bob", areaActivity="Music")
    headers = auth_headers(alice["tokens"]["accessToken"])

    resp = client.get(f"/api/users/{bob['user']['id']}/public", headers=headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["name"] == "Bob"
    assert data["areaActivity"] == "Music"
    assert data["chatAvailability"] == "AVAILABLE"
    assert data["metrics"] == {"followers": 0, "following": 0}
    assert data["isFollowing"] is False
    assert data["isFollowed"] is False
    assert "email" not in data
    assert "role" not in data

    disabled_id = make_account("dave@example.com", name="Dave", enabled=False)
    resp = client.get(f"/api/users/{disabled_id}/public", headers=headers)
    assert resp.status_code == 404

    resp = client.get("/api/users/missing/public", headers=headers)
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "USER_NOT_FOUND"


def test_follow_and_unfollow(client, register):
    alice = register("alice@example.com", name="Alice")
    bob = register("bob@example.com", name="Bob")
    alice_headers = auth_headers(alice["tokens"]["accessToken"])
    bob_headers = auth_headers(bob["tokens"]["accessToken"])

    resp = client.post(f"/api/users/follow/{bob['user']['id']}", headers=alice_headers)
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["isFollowing"] is True
    assert data["metrics"] == {"followers": 1, "following": 0}

    resp = client.get(f"/api/users/{alice['user']['id']}/public", headers=bob_headers)
    data = resp.get_json()["data"]
    assert data["isFollowed"] is True
    assert data["isFollowing"] is False
    assert data["metrics"] == {"followers": 0, "following": 1}

    resp = client.get("/api/users/followed", headers=alice_headers)
    assert resp.get_json()["data"] == [{"id": bob["user"]["id"], "name": "Bob", "avatar": None}]
    resp = client.get(f"/api/users/followers?userId={bob['user']['id']}", headers=alice_headers)
    assert [u["id"] for u in resp.get_json()["data"]] == [alice["user"]["id"]]

    resp = client.delete(f"/api/users/unfollow/{bob['user']['id']}", headers=alice_headers)
    assert resp.status_code == 204
    assert client.get("/api/users/followed", headers=alice_headers).get_json()["data"] == []

    resp = client.delete(f"/api/users/unfollow/{bob['user']['id']}", headers=alice_headers)
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "FOLLOW_NOT_FOUND"


def test_follow_rules(client, register, make_account):
    alice = register("alice@example.com", name="Alice")
    bob = register("bob@example.com", name="Bob")
    headers = auth_headers(alice["tokens"]["accessToken"])

    resp = client.post(f"/api/users/follow/{alice['user']['id']}", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "CANNOT_FOLLOW_SELF"

    assert client.post(f"/api/users/follow/{bob['user']['id']}", headers=headers).status_code == 201
    resp = client.post(f"/api/users/follow/{bob['user']['id']}", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "ALREADY_FOLLOWING"

    disabled_id = make_account("dave@example.com", name="Dave", enabled=False)
    resp = client.post(f"/api/users/follow/{disabled_id}", headers=headers)
    assert resp.status_code == 404


def test_follow_lists_for_unknown_user(client, register):
    alice = register("alice@example.com")
    resp = client.get("/api/users/followers?userId=missing", headers=auth_headers(alice["tokens"]["accessToken"]))
    assert resp.status_code == 404


def test_change_availability(client, register):
    alice = register("alice@example.com")
    headers = auth_headers(alice["tokens"]["accessToken"])

    resp = client.put("/api/users/me/busy", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["chatAvailability"] == "BUSY"
    assert client.get("/api/users/me", headers=headers).get_json()["data"]["chatAvailability"] == "BUSY"

    resp = client.put("/api/users/me/SLEEPING", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_AVAILABILITY"


def test_availability_route_leaves_preferences_alone(client, register):
    alice = register("alice@example.com")
    resp = client.put(
        "/api/users/me/preferences", json={"language": "de"}, headers=auth_headers(alice["tokens"]["accessToken"])
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["language"] == "de"
