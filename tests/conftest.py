"""
Shared fixtures.

The environment is set before ``foodtruck`` is imported: an in-memory
SQLite database, development mode (mock adapters, no failures, no
latency), inline Celery tasks and a throwaway data directory.
"""

import os
import tempfile

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["DATA_DIRECTORY"] = tempfile.mkdtemp(prefix="foodtruck-tests-")
os.environ["BUSINESS_TIMEZONE"] = "America/New_York"
os.environ["MOCK_FAILURE_RATE"] = "0"
os.environ["MOCK_MIN_LATENCY"] = "0"
os.environ["MOCK_MAX_LATENCY"] = "0"

import pytest
from httpx import ASGITransport, AsyncClient

from foodtruck.core.config import get_settings
from foodtruck.database import drop_db, init_db
from foodtruck.main import create_app
from foodtruck.models import BusinessAccount, Product


def bearer(subject_id: str, email: str = "", name: str = "") -> dict[str, str]:
    """Authorization header understood by the mock identity service."""
    return {"Authorization": f"Bearer {subject_id}|{email}|{name}"}


@pytest.fixture
def app():
    return create_app(get_settings())


@pytest.fixture
async def database(app):
    await init_db(app.state.engine)
    yield
    await drop_db(app.state.engine)
    await app.state.engine.dispose()


@pytest.fixture
async def db(app, database):
    async with app.state.session_maker() as session:
        yield session


@pytest.fixture
async def account(db) -> BusinessAccount:
    truck = BusinessAccount(id="acct-1", name="Taco Loco", email="owner@tacoloco.example")
    db.add(truck)
    await db.commit()
    return truck


@pytest.fixture
async def products(db, account) -> dict[str, Product]:
    menu = {
        "taco": Product(id="p-taco", account_id=account.id, name="Carnitas Taco", category="Tacos", price=4.5),
        "chips": Product(id="p-chips", account_id=account.id, name="Chips & Salsa", category="Sides", price=3.25),
        "burrito": Product(id="p-burrito", account_id=account.id, name="Veggie Burrito", category="Burritos", price=10.99),
        "old": Product(id="p-old", account_id=account.id, name="Retired Special", price=9.0, is_active=False),
    }
    db.add_all(menu.values())
    await db.commit()
    return menu


@pytest.fixture
async def client(app, database):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def owner_headers(client) -> dict[str, str]:
    """Headers of a signed-up business owner of "Taco Loco"."""
    headers = bearer("owner-1", "owner@tacoloco.example", "Olga Owner")
    response = await client.post(
        "/api/me/signup",
        json={"kind": "business_owner", "business_name": "Taco Loco"},
        headers=headers,
    )
    assert response.status_code == 200
    return headers
