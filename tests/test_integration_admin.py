"""Integration tests for the admin API.

Tests cover:
- Login with header and cookie sessions
- Gated admin registration
- Profile, change-password and verify-token
- Token expiry with a simulated clock
- Deactivation taking effect on live tokens
"""

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


class TestAdminLogin:
    def test_login_returns_token_profile_and_cookie(self, client, seeded_admin):
        resp = client.post(
            "/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["token"]
        assert body["profile"]["email"] == ADMIN_EMAIL
        assert body["profile"]["role"] == "SUPER_ADMIN"
        assert "password" not in body["profile"]
        assert "passwordHash" not in body["profile"]

        cookie = resp.headers["set-cookie"]
        assert cookie.startswith("admin_token=")
        assert "HttpOnly" in cookie
        assert "SameSite=strict" in cookie or "samesite=strict" in cookie.lower()
        assert "Max-Age=86400" in cookie

    def test_login_email_is_case_insensitive(self, client, seeded_admin):
        resp = client.post(
            "/api/admin/login", json={"email": "ADMIN@Test.com", "password": ADMIN_PASSWORD}
        )
        assert resp.status_code == 200

    def test_wrong_password_and_unknown_email_look_the_same(self, client, seeded_admin):
        wrong = client.post(
            "/api/admin/login", json={"email": ADMIN_EMAIL, "password": "nope-nope"}
        )
        unknown = client.post(
            "/api/admin/login", json={"email": "ghost@test.com", "password": ADMIN_PASSWORD}
        )
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert "set-cookie" not in wrong.headers

    def test_deactivated_admin_cannot_login(self, client, runtime, seeded_admin):
        runtime.admin_auth.set_active(seeded_admin["identity"].id, False)
        resp = client.post(
            "/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Account is deactivated"
        assert resp.json()["code"] == "account_deactivated"

    def test_deactivated_admin_with_wrong_password(self, client, runtime, seeded_admin):
        runtime.admin_auth.set_active(seeded_admin["identity"].id, False)
        resp = client.post(
            "/api/admin/login", json={"email": ADMIN_EMAIL, "password": "nope-nope"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"code": "account_deactivated", "message": "Account is deactivated"}
        assert "set-cookie" not in resp.headers

    def test_login_validation(self, client):
        resp = client.post("/api/admin/login", json={"email": "not-an-email", "password": ""})
        assert resp.status_code == 400
        fields = {item["field"] for item in resp.json()["errors"]}
        assert fields == {"email", "password"}


class TestAdminSessionFlow:
    def test_profile_with_bearer_token(self, client, admin_headers):
        resp = client.get("/api/admin/profile", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["profile"]["email"] == ADMIN_EMAIL

    def test_profile_with_cookie(self, client, seeded_admin):
        client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        resp = client.get("/api/admin/profile")
        assert resp.status_code == 200

    def test_verify_token(self, client, admin_headers):
        resp = client.get("/api/admin/verify-token", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["valid"] is True

    def test_update_profile_name(self, client, admin_headers):
        resp = client.put("/api/admin/profile", json={"name": "Chief"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["profile"]["name"] == "Chief"

    def test_update_profile_rejects_email(self, client, admin_headers):
        resp = client.put(
            "/api/admin/profile", json={"email": "new@test.com"}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "email"

    def test_change_password(self, client, admin_headers):
        resp = client.post(
            "/api/admin/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "Brand-new-1"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert client.post(
            "/api/admin/login", json={"email": ADMIN_EMAIL, "password": "Brand-new-1"}
        ).status_code == 200

    def test_change_password_wrong_current(self, client, admin_headers):
        resp = client.post(
            "/api/admin/change-password",
            json={"currentPassword": "wrong-one", "newPassword": "Brand-new-1"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Current password is incorrect"

    def test_logout_clears_cookie_but_token_lives_on(self, client, admin_headers):
        resp = client.post("/api/admin/logout", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.headers["set-cookie"].startswith('admin_token=""') or "Max-Age=0" in resp.headers["set-cookie"]
        # No server-side revocation: the bearer token is still accepted
        assert client.get("/api/admin/profile", headers=admin_headers).status_code == 200


class TestAdminRegistration:
    def test_register_requires_admin_session(self, client):
        resp = client.post(
            "/api/admin/register",
            json={"email": "new@test.com", "password": "Secret123", "name": "New"},
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "No token provided"

    def test_admin_registers_another_admin(self, client, admin_headers):
        resp = client.post(
            "/api/admin/register",
            json={"email": "Second@Test.com", "password": "Secret123", "name": "Second"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["profile"]["email"] == "second@test.com"
        assert "token" not in resp.json()
        assert "set-cookie" not in resp.headers

    def test_duplicate_admin(self, client, admin_headers):
        resp = client.post(
            "/api/admin/register",
            json={"email": ADMIN_EMAIL, "password": "Secret123", "name": "Dup"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "duplicate_identity"

    def test_register_validation(self, client, admin_headers):
        resp = client.post(
            "/api/admin/register",
            json={"email": "x@test.com", "password": "123", "name": "X", "role": "OWNER"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        fields = {item["field"] for item in resp.json()["errors"]}
        assert {"password", "name", "role"} <= fields


class TestAdminTokenLifetime:
    def test_token_expires_after_a_day(self, client, runtime, admin_headers):
        clock_start = runtime.codec.clock()
        assert client.get("/api/admin/profile", headers=admin_headers).status_code == 200

        runtime.codec.clock = lambda: clock_start + 24 * 3600 - 5
        assert client.get("/api/admin/profile", headers=admin_headers).status_code == 200

        runtime.codec.clock = lambda: clock_start + 24 * 3600 + 5
        resp = client.get("/api/admin/profile", headers=admin_headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid token"

    def test_deactivation_rejects_live_token(self, client, runtime, seeded_admin, admin_headers):
        runtime.admin_auth.set_active(seeded_admin["identity"].id, False)
        resp = client.get("/api/admin/profile", headers=admin_headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "User not found or deactivated"
