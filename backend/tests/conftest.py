"""
Pytest fixtures for clinicdesk backend tests.

Provides a fresh in-memory database per test, a staff login, and small
builders for products and cash records.
"""

from datetime import date, timedelta

import pytest

from clinicdesk import create_app
from clinicdesk.extensions import db
from clinicdesk.models import CashRecord
from clinicdesk.services import auth_service, inventory_service
from clinicdesk.time_utils import local_day_bounds


STAFF_PASSWORD = "Password123"

# Clinic-local business day used by most tests
DAY = date(2026, 1, 10)


def local_time(day: date, hour: int = 12, minute: int = 0):
    """UTC-naive instant for a clinic-local wall-clock time."""
    start, _ = local_day_bounds(day)
    return start + timedelta(hours=hour, minutes=minute)


def add_cash(record_type: str, amount: int, when, **fields) -> CashRecord:
    """Insert a ledger row directly (INCOME/EXPENSE rows never come through the ledger API)."""
    record = CashRecord(date=when, type=record_type, amount=amount, is_closed=False, **fields)
    db.session.add(record)
    db.session.commit()
    return record


def reload(model, pk):
    """Re-read a row, discarding whatever this test's session has cached."""
    return db.session.get(model, pk, populate_existing=True)


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def staff_user(db_session):
    return auth_service.create_user("desk", STAFF_PASSWORD, "Front Desk", rounds=4)


@pytest.fixture(scope='function')
def auth_headers(client, staff_user):
    token = get_auth_token(client, staff_user.username, STAFF_PASSWORD)
    assert token
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def product(db_session):
    """Empty implant fixture product."""
    return inventory_service.create_product({
        "product_line": "IMPLANT",
        "category": "FIXTURE",
        "name": "Osstem TS III",
        "specification": "4.0x10",
        "price": 120000,
    })


@pytest.fixture(scope='function')
def dental_products(db_session):
    first = inventory_service.create_product({
        "product_line": "DENTAL",
        "name": "Toothbrush",
        "price": 3000,
    })
    second = inventory_service.create_product({
        "product_line": "DENTAL",
        "name": "Interdental brush",
        "specification": "SSS",
        "price": 5000,
    })
    return first, second


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None
