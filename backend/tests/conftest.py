"""
Pytest fixtures for Bazar backend tests.

Provides an in-memory database per test, users for every role, auth headers
and factories for clients, suppliers and products.
"""

import pytest
from sqlalchemy.pool import StaticPool

from bazar import create_app
from bazar.extensions import db
from bazar.services import auth_service, client_service, product_service, supplier_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
        },
        'SECRET_KEY': 'test-secret-key-0123456789abcdef0123456789',
        'JWT_SECRET_KEY': 'test-jwt-secret-0123456789abcdef0123456789',
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def _make_user(username: str, role: str):
    return auth_service.create_user(
        {
            "username": username,
            "email": f"{username}@bazar.test",
            "first_name": username.capitalize(),
            "last_name": "Tester",
            "role": role,
        },
        password=TEST_PASSWORD,
    )


@pytest.fixture
def admin_user(app):
    return _make_user("admin", "admin")


@pytest.fixture
def manager_user(app):
    return _make_user("manager", "manager")


@pytest.fixture
def employee_user(app):
    return _make_user("employee", "employee")


@pytest.fixture
def viewer_user(app):
    return _make_user("viewer", "viewer")


@pytest.fixture
def auth_headers(app):
    """Build an Authorization header for a user."""
    def _headers(user):
        return {"Authorization": f"Bearer {auth_service.issue_token(user)}"}
    return _headers


@pytest.fixture
def admin_headers(admin_user, auth_headers):
    return auth_headers(admin_user)


@pytest.fixture
def make_client(app):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "tax_id": f"10000000{counter['n']:02d}",
            "first_name": "María",
            "last_name": "López",
            "phone": "+57 300 555 0101",
            "email": f"cliente{counter['n']}@example.com",
            "address": {"street": "Calle 80 # 20-30", "city": "Bogotá", "state": "Cundinamarca"},
        }
        payload.update(overrides)
        return client_service.create_client(payload)

    return _make


@pytest.fixture
def sample_client(make_client):
    return make_client()


@pytest.fixture
def make_supplier(app):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "tax_id": f"90000000{counter['n']:02d}",
            "company": f"Distribuidora {counter['n']}",
            "contact_name": "Carlos Pérez",
            "phone": "+57 1 555 0101",
            "email": f"ventas{counter['n']}@proveedor.example",
            "bank_name": "Bancolombia",
            "bank_account": "001-234567-89",
            "address": {"street": "Calle 13 # 45-10", "city": "Bogotá", "state": "Cundinamarca"},
        }
        payload.update(overrides)
        return supplier_service.create_supplier(payload)

    return _make


@pytest.fixture
def sample_supplier(make_supplier):
    return make_supplier()


@pytest.fixture
def make_product(app):
    def _make(**overrides):
        payload = {
            "name": "Arroz 500g",
            "category": "Alimentos",
            "selling_price_cents": 10000,
            "cost_price_cents": 6000,
            "current_stock": 10,
            "reorder_point": 5,
        }
        payload.update(overrides)
        return product_service.create_product(payload)

    return _make


@pytest.fixture
def sample_product(make_product):
    return make_product()
