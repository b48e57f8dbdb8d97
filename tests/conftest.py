"""
Shared pytest fixtures.

Argon2 runs with minimal parameters and storage is in-memory so the suite
stays fast and needs no Redis.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.core.password_manager import PasswordManager
from app.core.storage import InMemoryStorage
from app.core.stores import TradeStore, UserStore
from app.core.tokens import TokenCodec
from app.main import create_app

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


@pytest.fixture
def settings():
    return Settings(
        app_env="test",
        jwt_access_secret=ACCESS_SECRET,
        jwt_refresh_secret=REFRESH_SECRET,
        access_token_expires=timedelta(minutes=10),
        refresh_token_expires=timedelta(days=7),
        argon2_time_cost=1,
        argon2_memory_cost=1024,
        argon2_parallelism=1,
        storage_backend="memory",
        request_logging=False,
    )


@pytest.fixture
def codec():
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET)


@pytest.fixture
def passwords():
    return PasswordManager(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def user_store(storage):
    return UserStore(storage)


@pytest.fixture
def trade_store(storage):
    return TradeStore(storage)


@pytest.fixture
def client(settings):
    """TestClient with the lifespan running; unhandled errors become 500s."""
    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def signup(client, email="a@b.com", password="secret1"):
    response = client.post("/signup", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def account(client):
    """A signed-up account: the full signup response body."""
    return signup(client)


@pytest.fixture
def headers(account):
    return auth_headers(account["accessToken"])
