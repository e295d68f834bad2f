"""
Pytest fixtures for Inventario Pro backend tests.

Every test gets a fresh in-memory database and an application context that
stays pushed for the whole test, so requests made through the client share
the session the test inspects.
"""

import pytest

from inventario import create_app
from inventario.extensions import db
from inventario.models import User, UserRole
from inventario.services import user_service
from inventario.services.auth_service import hash_password


TEST_PASSWORD = "Passw0rd!"
ADMIN_PASSWORD = "Admin@12345"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SEED_ADMIN_PASSWORD': ADMIN_PASSWORD,
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


def make_user(username: str, role: str, **extra) -> User:
    user = User(
        real_name=extra.pop("real_name", username.title()),
        username=username,
        email=extra.pop("email", f"{username}@company.com"),
        password_hash=hash_password(extra.pop("password", TEST_PASSWORD)),
        role=role,
        **extra,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def admin(app):
    """The seeded administrator (username "admin")."""
    user, _ = user_service.ensure_seed_admin()
    return user


@pytest.fixture(scope='function')
def manager(app):
    return make_user("manager", UserRole.USER_MANAGER)


@pytest.fixture(scope='function')
def operator(app):
    return make_user("operator", UserRole.OPERATOR)


@pytest.fixture(scope='function')
def seed(admin, manager, operator):
    return {"admin": admin, "manager": manager, "operator": operator}


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username, ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.username, TEST_PASSWORD))


@pytest.fixture(scope='function')
def operator_headers(client, operator):
    return auth_headers(get_auth_token(client, operator.username, TEST_PASSWORD))
