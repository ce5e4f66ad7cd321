"""
Login, logout and current-session routes.
"""

from umipos.services import session_service

PASSWORD = "Password123!"


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, pharmacist_a):
        resp = client.post("/api/auth/login", json={"username": "pharmacist_a", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["roles"] == ["Pharmacist"]
        assert "ADJUST_STOCK" in body["permissions"]
        assert body["tenant_id"] == pharmacist_a.tenant_id

    def test_login_by_email(self, client, pharmacist_a):
        resp = client.post("/api/auth/login", json={"email": pharmacist_a.email, "password": PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password(self, client, pharmacist_a):
        resp = client.post("/api/auth/login", json={"username": "pharmacist_a", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={}).status_code == 400

    def test_non_object_body(self, client, db_session):
        resp = client.post("/api/auth/login", json=[1, 2])
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON payload"

    def test_tenant_code_scopes_lookup(self, client, pharmacist_a, tenant_b):
        resp = client.post(
            "/api/auth/login",
            json={"username": "pharmacist_a", "password": PASSWORD, "tenant_code": tenant_b.code},
        )
        assert resp.status_code == 401

    def test_shared_username_needs_tenant_code(self, client, tenant_a, tenant_b, make_user):
        make_user(tenant_a, "shared", "Cashier")
        other = make_user(tenant_b, "shared", "Cashier")

        resp = client.post("/api/auth/login", json={"username": "shared", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "tenant_code required"

        resp = client.post(
            "/api/auth/login",
            json={"username": "shared", "password": PASSWORD, "tenant_code": tenant_b.code},
        )
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == other.id

    def test_device_limit(self, app, client, pharmacist_a, monkeypatch):
        monkeypatch.setitem(app.config, "MAX_DEVICES_PER_USER", 1)
        creds = {"username": "pharmacist_a", "password": PASSWORD}

        token = client.post("/api/auth/login", json=creds).get_json()["token"]
        assert client.post("/api/auth/login", json=creds).status_code == 409

        client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert client.post("/api/auth/login", json=creds).status_code == 200

    def test_token_works_for_protected_routes(self, client, pharmacist_a):
        token = client.post(
            "/api/auth/login", json={"username": "pharmacist_a", "password": PASSWORD}
        ).get_json()["token"]
        resp = client.get("/api/products", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200


class TestLogoutAndMe:

    def test_me(self, client, admin_a, admin_headers):
        body = client.get("/api/auth/me", headers=admin_headers).get_json()
        assert body["user"]["id"] == admin_a.id
        assert body["roles"] == ["TenantAdmin"]

    def test_logout_revokes_token(self, client, admin_headers):
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/auth/me", headers=admin_headers).status_code == 401

    def test_logout_then_cleanup_removes_row(self, client, admin_headers, db_session):
        client.post("/api/auth/logout", headers=admin_headers)
        assert session_service.cleanup_expired_sessions() == 1


class TestSessionsRoutes:

    def test_lists_own_live_sessions(self, client, admin_a, admin_headers, admin_b):
        other, _ = session_service.create_session(admin_a.id)
        session_service.create_session(admin_b.id)

        body = client.get("/api/auth/sessions", headers=admin_headers).get_json()
        assert body["count"] == 2
        assert [s["is_current"] for s in body["items"]].count(True) == 1
        assert {s["user_id"] for s in body["items"]} == {admin_a.id}
        assert other.id in {s["id"] for s in body["items"]}

    def test_revoke_other_device(self, client, admin_a, admin_headers):
        other, other_token = session_service.create_session(admin_a.id)

        resp = client.delete(f"/api/auth/sessions/{other.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert session_service.validate_session(other_token) is None
        assert client.get("/api/auth/sessions", headers=admin_headers).get_json()["count"] == 1

    def test_cannot_revoke_foreign_session(self, client, admin_headers, admin_b):
        foreign, foreign_token = session_service.create_session(admin_b.id)
        resp = client.delete(f"/api/auth/sessions/{foreign.id}", headers=admin_headers)
        assert resp.status_code == 404
        assert session_service.validate_session(foreign_token) is not None
