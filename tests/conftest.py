"""Pytest configuration and shared fixtures.

The API runs against an in-memory mongomock database injected through the
``get_store`` dependency; no MongoDB server is needed.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token
from app.core.permissions import Role
from app.domain.account import AccountCreateRequest
from app.domain.classes import ClassCreateRequest, Slot
from app.domain.passes import Duration, PassCreateRequest
from app.infrastructure.mongo import StudioStore, get_store
from app.services import accounts, classes, passes

TEST_PASSWORD = "secret123"


@pytest.fixture
def store():
    """Fresh in-memory studio store with unique indexes."""
    studio_store = StudioStore(mongomock.MongoClient()["yoga_studio_test"])
    studio_store.ensure_indexes()
    return studio_store


@pytest.fixture
def test_client(store):
    """FastAPI test client wired to the in-memory store."""
    # Import after the environment is set up
    from main import app

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_account(store):
    """Factory creating an account (with password) of the given role."""
    counter = {"n": 0}

    def _make(role=Role.CLIENT, first_name="Test", email=None):
        counter["n"] += 1
        payload = AccountCreateRequest(
            first_name=first_name,
            last_name="Person",
            email=email or f"{role.value.lower()}{counter['n']}@yogastudio.com",
            phone="555-0100",
            address="1 Main St",
            role=role,
            password=TEST_PASSWORD,
        )
        result = accounts.create_account(store, payload)
        return store.accounts.get(result["accountId"])

    return _make


@pytest.fixture
def manager(make_account):
    return make_account(Role.MANAGER, first_name="Maya")


@pytest.fixture
def instructor(make_account):
    return make_account(Role.INSTRUCTOR, first_name="Ian")


@pytest.fixture
def client_account(make_account):
    return make_account(Role.CLIENT, first_name="Cora")


@pytest.fixture
def auth_headers():
    """Build the bearer header for an account."""
    def _headers(account):
        return {"Authorization": f"Bearer {create_access_token(account)}"}

    return _headers


@pytest.fixture
def monthly_pass(store, manager):
    """Active one-month pass with 10 sessions."""
    payload = PassCreateRequest(
        name="Monthly 10",
        duration=Duration(value=1, unit="months"),
        sessions=10,
        price=100.0,
    )
    return passes.create_definition(store, manager, payload)["pass"]


@pytest.fixture
def morning_class(store, instructor):
    """Monday 09:00 class taught by the ``instructor`` fixture."""
    profile = store.instructors.by_account(instructor.account_id)
    payload = ClassCreateRequest(
        class_name="Morning Flow",
        class_type="Vinyasa",
        instructor_id=profile.instructor_id,
        slots=[Slot(day="Monday", time="09:00")],
        capacity=2,
    )
    return classes.create_class(store, payload)["class"]


@pytest.fixture
def password():
    """Password given to every account built by ``make_account``."""
    return TEST_PASSWORD
