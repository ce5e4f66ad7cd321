"""
Pytest fixtures for UmiPOS backend tests.

Provides test database setup, tenant fixtures with default roles, users per
role, products, and the test client.
"""

import pytest

from umipos import create_app
from umipos.extensions import db
from umipos.models import Tenant, Product
from umipos.services import auth_service, permission_service, session_service

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    # Minimum bcrypt cost keeps user fixtures fast
    auth_service.BCRYPT_ROUNDS = 4

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SESSION_CLEANUP_ENABLED': False,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def permissions(db_session):
    """Permission catalogue."""
    permission_service.initialize_permissions()


def _make_tenant(db_session, name, code):
    tenant = Tenant(name=name, code=code, is_active=True)
    db_session.add(tenant)
    db_session.commit()
    auth_service.create_default_roles(tenant.id)
    permission_service.assign_default_role_permissions(tenant.id)
    return tenant


@pytest.fixture(scope='function')
def tenant_a(db_session, permissions):
    """Tenant A with default roles and permissions."""
    return _make_tenant(db_session, "Tenant A - Westlands Pharmacy", "WEST")


@pytest.fixture(scope='function')
def tenant_b(db_session, permissions):
    """Tenant B with default roles and permissions."""
    return _make_tenant(db_session, "Tenant B - Kilimani Chemist", "KILI")


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user(tenant, username, role_name) -> User."""
    def _make(tenant, username, role_name=None):
        user = auth_service.create_user(
            username=username,
            email=f"{username}@{tenant.code.lower()}.test",
            password=TEST_PASSWORD,
            tenant_id=tenant.id,
        )
        if role_name:
            auth_service.assign_role(user.id, role_name)
        return user
    return _make


@pytest.fixture(scope='function')
def admin_a(tenant_a, make_user):
    return make_user(tenant_a, "admin_a", "TenantAdmin")


@pytest.fixture(scope='function')
def pharmacist_a(tenant_a, make_user):
    return make_user(tenant_a, "pharmacist_a", "Pharmacist")


@pytest.fixture(scope='function')
def cashier_a(tenant_a, make_user):
    return make_user(tenant_a, "cashier_a", "Cashier")


@pytest.fixture(scope='function')
def admin_b(tenant_b, make_user):
    return make_user(tenant_b, "admin_b", "TenantAdmin")


def token_for(user) -> str:
    """Open a session for a user directly, skipping the login route."""
    _, token = session_service.create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_a):
    return auth_headers(token_for(admin_a))


@pytest.fixture(scope='function')
def pharmacist_headers(pharmacist_a):
    return auth_headers(token_for(pharmacist_a))


@pytest.fixture(scope='function')
def cashier_headers(cashier_a):
    return auth_headers(token_for(cashier_a))


@pytest.fixture(scope='function')
def admin_b_headers(admin_b):
    return auth_headers(token_for(admin_b))


def _make_product(db_session, tenant, **fields):
    values = {
        "tenant_id": tenant.id,
        "name": "Paracetamol 500mg",
        "category": "Analgesics",
        "barcode": "6001234500011",
        "price_cents": 250,
        "stock": 10,
        "min_stock": 5,
    }
    values.update(fields)
    product = Product(**values)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(tenant, **fields) -> Product."""
    def _make(tenant, **fields):
        return _make_product(db_session, tenant, **fields)
    return _make


@pytest.fixture(scope='function')
def product_a(db_session, tenant_a):
    """Product with 10 in stock in Tenant A."""
    return _make_product(db_session, tenant_a)


@pytest.fixture(scope='function')
def product_b(db_session, tenant_b):
    """Product in Tenant B."""
    return _make_product(db_session, tenant_b, name="Amoxicillin 250mg", barcode="6001234500028")


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Factory: headers_for(user) -> Authorization headers for a fresh session."""
    def _headers(user):
        return auth_headers(token_for(user))
    return _headers
