"""
Pytest fixtures for back office tests.

Provides test database setup, seeded accounts, auth headers, and a few
domain rows (city, leaflet, distributor) most tests build on.
"""

from datetime import timedelta

import pytest
from backoffice import create_app
from backoffice.config import TestConfig
from backoffice.extensions import db
from backoffice.models import City, Distributor, Leaflet, Worker
from backoffice.models.auth import ROLE_ADMIN, ROLE_ADVERTISING, ROLE_MANAGER
from backoffice.services.auth_service import create_manager
from backoffice.time_utils import utcnow


PASSWORD = "1234"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app(TestConfig)
    app.config.update({
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
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
def admin_user(db_session):
    return create_manager(
        name="Админ Тестов", username="admin", password=PASSWORD, role=ROLE_ADMIN, visibility="PARTIAL"
    )


@pytest.fixture(scope='function')
def advertising_user(db_session):
    return create_manager(
        name="Реклама Тестов", username="adv", password=PASSWORD, role=ROLE_ADVERTISING
    )


@pytest.fixture(scope='function')
def manager_user(db_session):
    return create_manager(
        name="Менеджер Тестов", username="manager", password=PASSWORD, role=ROLE_MANAGER, visibility="MINIMAL"
    )


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/v1/auth/login', json={
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
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def advertising_headers(client, advertising_user):
    return auth_headers(get_auth_token(client, "adv"))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, "manager"))


@pytest.fixture(scope='function')
def bot_headers(app):
    return auth_headers(app.config["BOT_API_KEY"])


@pytest.fixture(scope='function')
def city(db_session):
    city = City(name="Казань")
    db_session.add(city)
    db_session.commit()
    return city


@pytest.fixture(scope='function')
def leaflet(db_session):
    """Leaflet template with 100 units in stock."""
    leaflet = Leaflet(name="Ремонт холодильников", value=100)
    db_session.add(leaflet)
    db_session.commit()
    return leaflet


@pytest.fixture(scope='function')
def distributor(db_session):
    distributor = Distributor(full_name="Иван Петров", phone="+79990000001", telegram="@ivan")
    db_session.add(distributor)
    db_session.commit()
    return distributor


@pytest.fixture(scope='function')
def worker(db_session):
    worker = Worker(full_name="Мастер Сергей", phone="+79990000002")
    db_session.add(worker)
    db_session.commit()
    return worker


@pytest.fixture(scope='function')
def arrive_soon():
    """An arrive_date inside the default 5-hour notification window."""
    return utcnow() + timedelta(hours=2)
