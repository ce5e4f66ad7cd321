# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

Two tenants with their own users and products; a user of Tenant B must
see nothing of Tenant A, and get 404 (not 403) for Tenant A's records so
that existence is not revealed.
"""

from umipos.services import permission_service, products_service


class TestProductIsolation:

    def test_list_only_own_products(self, client, admin_headers, product_a, product_b):
        body = client.get("/api/products", headers=admin_headers).get_json()
        assert [p["id"] for p in body["items"]] == [product_a.id]

    def test_cannot_read_foreign_product(self, client, admin_b_headers, product_a):
        assert client.get(f"/api/products/{product_a.id}", headers=admin_b_headers).status_code == 404

    def test_cannot_update_foreign_product(self, client, admin_b_headers, product_a):
        resp = client.put(f"/api/products/{product_a.id}", json={"name": "pwned"}, headers=admin_b_headers)
        assert resp.status_code == 404
        assert products_service.get_product(product_a.tenant_id, product_a.id).name != "pwned"

    def test_barcodes_unique_per_tenant_only(self, db_session, tenant_b, product_a):
        product = products_service.create_product(
            tenant_id=tenant_b.id,
            patch={"name": "Same barcode elsewhere", "price_cents": 1, "barcode": product_a.barcode},
        )
        assert product.id != product_a.id


class TestRoleIsolation:

    def test_roles_are_per_tenant(self, db_session, admin_a, admin_b, tenant_a):
        permission_service.revoke_permission_from_role(tenant_a.id, "TenantAdmin", "VIEW_INVENTORY")
        assert not permission_service.user_has_permission(admin_a.id, "VIEW_INVENTORY")
        assert permission_service.user_has_permission(admin_b.id, "VIEW_INVENTORY")

    def test_session_tenant_is_users_tenant(self, client, admin_b, admin_b_headers):
        body = client.get("/api/auth/me", headers=admin_b_headers).get_json()
        assert body["tenant_id"] == admin_b.tenant_id
