"""
Role-based permission resolution.
"""

import pytest

from umipos.models import Role, UserRole
from umipos.services import auth_service, permission_service
from umipos.services.permission_service import DatabasePermissionResolver


class TestUserPermissions:

    def test_cashier_permissions(self, db_session, cashier_a):
        perms = permission_service.get_user_permissions(cashier_a.id)
        assert "CREATE_SALE" in perms
        assert "ADJUST_STOCK" not in perms

    def test_tenant_admin_lacks_system_admin(self, db_session, admin_a):
        perms = permission_service.get_user_permissions(admin_a.id)
        assert "MANAGE_USERS" in perms
        assert "SYSTEM_ADMIN" not in perms

    def test_union_of_roles(self, db_session, cashier_a):
        auth_service.assign_role(cashier_a.id, "Operations")
        assert permission_service.user_has_permission(cashier_a.id, "ADJUST_STOCK")

    def test_foreign_tenant_gets_nothing(self, db_session, admin_a, tenant_b):
        assert permission_service.get_user_permissions(admin_a.id, tenant_b.id) == set()

    def test_inactive_user_gets_nothing(self, db_session, admin_a):
        admin_a.is_active = False
        db_session.commit()
        assert permission_service.get_user_permissions(admin_a.id) == set()
        assert not permission_service.user_in_role(admin_a.id, "TenantAdmin")

    def test_unknown_user(self, db_session):
        assert permission_service.get_user_permissions(99999) == set()
        assert permission_service.get_user_role_names(99999) == []

    def test_role_names_ignore_foreign_tenant_rows(self, db_session, admin_a, tenant_b):
        foreign = db_session.query(Role).filter_by(tenant_id=tenant_b.id, name="Cashier").one()
        db_session.add(UserRole(user_id=admin_a.id, role_id=foreign.id))
        db_session.commit()

        assert permission_service.get_user_role_names(admin_a.id) == ["TenantAdmin"]
        assert not permission_service.user_in_role(admin_a.id, "Cashier")

    def test_role_check_is_case_insensitive(self, db_session, pharmacist_a):
        assert permission_service.user_in_role(pharmacist_a.id, "pharmacist")
        assert not permission_service.user_in_role(pharmacist_a.id, "Cashier")


class TestGrantRevoke:

    def test_grant_then_revoke(self, db_session, cashier_a, tenant_a):
        permission_service.grant_permission_to_role(tenant_a.id, "Cashier", "LOW_STOCK_ALERT")
        assert permission_service.user_has_permission(cashier_a.id, "LOW_STOCK_ALERT")

        assert permission_service.revoke_permission_from_role(tenant_a.id, "Cashier", "LOW_STOCK_ALERT")
        assert not permission_service.user_has_permission(cashier_a.id, "LOW_STOCK_ALERT")

    def test_grant_is_tenant_scoped(self, db_session, tenant_a, tenant_b, make_user):
        cashier_b = make_user(tenant_b, "cashier_b", "Cashier")
        permission_service.grant_permission_to_role(tenant_a.id, "Cashier", "LOW_STOCK_ALERT")
        assert not permission_service.user_has_permission(cashier_b.id, "LOW_STOCK_ALERT")

    def test_revoke_not_granted(self, db_session, tenant_a):
        assert permission_service.revoke_permission_from_role(tenant_a.id, "Cashier", "SYSTEM_ADMIN") is False

    def test_unknown_role(self, db_session, tenant_a):
        with pytest.raises(ValueError):
            permission_service.grant_permission_to_role(tenant_a.id, "Janitor", "VIEW_SALES")

    def test_initialize_is_idempotent(self, db_session, permissions):
        assert permission_service.initialize_permissions() == 0


class TestDatabasePermissionResolver:

    def test_claim_string_ids(self, db_session, pharmacist_a):
        resolver = DatabasePermissionResolver()
        assert resolver.has_permission(str(pharmacist_a.id), "ADJUST_STOCK", pharmacist_a.tenant_id)
        assert resolver.is_in_role(str(pharmacist_a.id), "Pharmacist")

    def test_non_numeric_id_has_nothing(self, db_session):
        resolver = DatabasePermissionResolver()
        assert resolver.has_permission("not-a-number", "VIEW_SALES") is False
        assert resolver.is_in_role("", "Pharmacist") is False
