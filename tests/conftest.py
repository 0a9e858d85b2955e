"""Pytest fixtures for testing"""

import json
import httpx
import pytest
import pytest_asyncio
from datetime import datetime, timedelta, timezone
from typing import Generator
from fastapi.testclient import TestClient
from prime_ledger.api.main import create_app
from prime_ledger.data.plans import SEED_PLANS, demo_accounts
from prime_ledger.domain.models import AuthUser
from prime_ledger.infrastructure.clients.auth import AuthClient, AuthSession
from prime_ledger.infrastructure.store.memory import InMemoryStore
from prime_ledger.services.ledger import Ledger

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)

AUTH_BASE_URL = "http://auth.test"
VALID_EMAIL = "ada@example.com"
VALID_PASSWORD = "correct-horse"
ACCESS_TOKEN = "token-123"
REMOTE_USER = {"id": "u-remote", "email": VALID_EMAIL, "user_metadata": {"display_name": "Ada"}}


class FakeClock:
    """Controllable clock for maturity tests"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int) -> None:
        self.now = self.now + timedelta(days=days)


def auth_api_handler(request: httpx.Request) -> httpx.Response:
    """Minimal hosted auth API: one known user, one token"""
    path = request.url.path
    if path == "/auth/v1/token":
        body = json.loads(request.content)
        if body.get("email") == VALID_EMAIL and body.get("password") == VALID_PASSWORD:
            return httpx.Response(200, json={"access_token": ACCESS_TOKEN, "user": REMOTE_USER})
        return httpx.Response(400, json={"error_description": "Invalid login credentials"})
    if path == "/auth/v1/signup":
        body = json.loads(request.content)
        user = {
            "id": "u-new",
            "email": body["email"],
            "user_metadata": {"display_name": body["data"]["display_name"]},
        }
        return httpx.Response(200, json={"access_token": ACCESS_TOKEN, "user": user})
    if path == "/auth/v1/user":
        if request.headers.get("Authorization") == f"Bearer {ACCESS_TOKEN}":
            return httpx.Response(200, json=REMOTE_USER)
        return httpx.Response(401, json={"msg": "invalid JWT"})
    if path == "/auth/v1/logout":
        return httpx.Response(204)
    return httpx.Response(404)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(id="user-1", email="user@example.com", display_name="Test User")


@pytest.fixture
def auth_session(user: AuthUser) -> AuthSession:
    """Session with the test user already signed in"""
    return AuthSession(user=user)


@pytest.fixture
def store(user: AuthUser) -> InMemoryStore:
    """Store seeded with the two demo accounts (3500.00 and 1200.00)"""
    store = InMemoryStore(plans=SEED_PLANS)
    store.seed_accounts(user.id, demo_accounts())
    return store


@pytest.fixture
def ledger(store: InMemoryStore, auth_session: AuthSession, clock: FakeClock) -> Ledger:
    return Ledger(store, auth_session, plans=SEED_PLANS, clock=clock)


@pytest_asyncio.fixture
async def loaded_ledger(ledger: Ledger) -> Ledger:
    await ledger.load()
    return ledger


@pytest.fixture
def auth_client(auth_session: AuthSession) -> AuthClient:
    return AuthClient(
        auth_session,
        base_url=AUTH_BASE_URL,
        api_key="anon-key",
        transport=httpx.MockTransport(auth_api_handler),
    )


@pytest.fixture
def client(ledger: Ledger, auth_client: AuthClient) -> Generator[TestClient, None, None]:
    """FastAPI test client; the lifespan loads the ledger for the signed-in user"""
    app = create_app(ledger=ledger, auth_client=auth_client)
    with TestClient(app) as test_client:
        yield test_client
