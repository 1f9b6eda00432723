"""Pytest configuration and fixtures for accounts and API tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from accounts.bootstrap import bootstrap_admin
from accounts.email import EmailDeliveryFailed, EmailDispatcher
from accounts.passwords import PasswordHasher
from accounts.repository import InMemoryUserRepository
from accounts.service import AuthService
from accounts.tokens import TokenCodec
from config import Settings
from web.api.main import create_app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"


class FakeEmailDispatcher(EmailDispatcher):
    """Records sent emails instead of sending. Set ``fail`` to simulate an SMTP outage."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def send_verification(self, user, url: str) -> None:
        self._record("verification", user.email, url)

    async def send_password_reset(self, user, url: str) -> None:
        self._record("password_reset", user.email, url)

    def _record(self, kind: str, to: str, url: str) -> None:
        if self.fail:
            raise EmailDeliveryFailed("connection refused")
        self.sent.append((kind, to, url))

    def last_code(self, kind: str) -> str:
        """Raw code from the last link of this kind (last path segment)."""
        url = next(u for k, _, u in reversed(self.sent) if k == kind)
        return url.rsplit("/", 1)[1]


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret-0123456789abcdef0123456789",
        password_hash_rounds=4,
        client_url="http://client.test",
        initial_admin_email=ADMIN_EMAIL,
        initial_admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def mailbox():
    return FakeEmailDispatcher()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(settings, mailbox, clock):
    """AuthService over the in-memory store."""
    return AuthService(
        settings=settings,
        users=InMemoryUserRepository(),
        tokens=TokenCodec(settings),
        passwords=PasswordHasher(rounds=4),
        mailer=mailbox,
        clock=clock,
    )


@pytest.fixture
async def app(settings, mailbox):
    """App on a fresh SQLite file. ASGI lifespan doesn't run with httpx, so init here."""
    app = create_app(settings, email_dispatcher=mailbox)
    auth = app.state.auth_service
    await app.state.database.init_db()
    await bootstrap_admin(settings, auth.users, auth.passwords)
    yield app
    await app.state.database.dispose()


@pytest.fixture
async def client(app):
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def verified_user(client, mailbox):
    """Register alice and follow the verification link. Returns (email, password)."""
    email, password = "alice@example.com", "Secret1!"
    r = await client.post("/auth/register", json={"pseudo": "alice", "email": email, "password": password})
    assert r.status_code == 201, r.text
    r = await client.get(f"/auth/verify/{mailbox.last_code('verification')}")
    assert r.status_code == 200, r.text
    return email, password


@pytest.fixture
async def admin_headers(client):
    """Login as the bootstrapped admin and return Authorization headers (cookies dropped)."""
    r = await client.post("/auth/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, f"Login failed: {r.text}"
    client.cookies.clear()
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
