"""
Pytest fixtures for the fuel station backend tests.

Provides the Flask app on in-memory SQLite, a test client, per-test table wipe,
employees with API tokens, and the in-memory store used by service tests.
"""

import pytest

from fuelstation import create_app
from fuelstation.extensions import db
from fuelstation.models import Employee
from fuelstation.services.employee_service import generate_token, hash_token
from fuelstation.time_utils import utcnow

from fakes import MemoryStore


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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


def _create_employee(db_session, name: str, position: str) -> tuple[Employee, str]:
    token = generate_token()
    employee = Employee(
        name=name,
        position=position,
        status="active",
        api_token_hash=hash_token(token),
        created_at=utcnow(),
    )
    db_session.add(employee)
    db_session.commit()
    return employee, token


@pytest.fixture(scope='function')
def cashier(db_session):
    """Active cashier; returns (employee, plaintext_token)."""
    return _create_employee(db_session, "Cashier One", "cashier")


@pytest.fixture(scope='function')
def second_cashier(db_session):
    return _create_employee(db_session, "Cashier Two", "cashier")


@pytest.fixture(scope='function')
def memory_store():
    return MemoryStore()


@pytest.fixture(scope='function')
def staff(memory_store):
    """Two active employees in the in-memory store."""
    first = memory_store.add(Employee(name="Ana", position="cashier", status="active", api_token_hash="a" * 64))
    second = memory_store.add(Employee(name="Ben", position="cashier", status="active", api_token_hash="b" * 64))
    return first, second


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return auth_headers(cashier[1])


@pytest.fixture(scope='function')
def second_cashier_headers(second_cashier):
    return auth_headers(second_cashier[1])
