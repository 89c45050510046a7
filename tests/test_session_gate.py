"""Every protected route must pass its tenant gate before anything else runs."""

import pytest

GATED_ROUTES = [
    ("post", "/api/admin/register"),
    ("post", "/api/admin/logout"),
    ("get", "/api/admin/profile"),
    ("put", "/api/admin/profile"),
    ("post", "/api/admin/change-password"),
    ("get", "/api/admin/verify-token"),
    ("post", "/api/studio/logout"),
    ("get", "/api/studio/profile"),
    ("put", "/api/studio/profile"),
    ("post", "/api/studio/change-password"),
    ("get", "/api/studio/check-auth"),
    ("get", "/api/studio/events"),
    ("post", "/api/studio/events"),
    ("get", "/api/studio/events/abc"),
    ("put", "/api/studio/events/abc"),
    ("delete", "/api/studio/events/abc"),
    ("get", "/api/studio/clients"),
]


@pytest.mark.parametrize("method,path", GATED_ROUTES)
def test_gated_route_without_token(client, method, path):
    kwargs = {"json": {}} if method in ("post", "put") else {}
    resp = getattr(client, method)(path, **kwargs)
    assert resp.status_code == 401
    assert resp.json() == {"code": "unauthorized", "message": "No token provided"}
    # Nothing was presented, so there is no cookie to clear
    assert "set-cookie" not in resp.headers


@pytest.mark.parametrize(
    "path", ["/api/admin/login", "/api/studio/login", "/api/studio/register"]
)
def test_public_routes_skip_gate(client, path):
    resp = client.post(path, json={})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


def test_malformed_authorization_header_falls_back_to_cookie(client, studio_user):
    resp = client.get("/api/studio/profile", headers={"Authorization": "Basic abc"})
    assert resp.status_code == 200


def test_studio_token_rejected_by_admin_gate(client, studio_user):
    resp = client.get(
        "/api/admin/profile", headers={"Authorization": f"Bearer {studio_user['token']}"}
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token"
    assert "set-cookie" not in resp.headers


def test_bad_bearer_header_keeps_valid_cookie(client, seeded_admin):
    client.post(
        "/api/admin/login",
        json={"email": seeded_admin["email"], "password": seeded_admin["password"]},
    )
    resp = client.get(
        "/api/admin/profile", headers={"Authorization": "Bearer stale.bad.token"}
    )
    assert resp.status_code == 401
    assert "set-cookie" not in resp.headers
    # The cookie session still works once the header is dropped
    assert client.get("/api/admin/profile").status_code == 200


def test_rejected_cookie_token_is_cleared(client):
    client.cookies.set("admin_token", "stale.bad.token")
    resp = client.get("/api/admin/profile")
    assert resp.status_code == 401
    assert resp.headers["set-cookie"].startswith("admin_token=")
    assert "Max-Age=0" in resp.headers["set-cookie"]


def test_deactivated_identity_via_header_keeps_cookie(client, runtime, admin_headers, seeded_admin):
    runtime.admin_auth.set_active(seeded_admin["identity"].id, False)
    resp = client.get("/api/admin/profile", headers=admin_headers)
    assert resp.status_code == 401
    assert resp.json()["message"] == "User not found or deactivated"
    assert "set-cookie" not in resp.headers
