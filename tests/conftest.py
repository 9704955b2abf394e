"""Global test configuration and fixtures for the Agent Marketplace API."""

import json
import os
from collections.abc import AsyncGenerator, Awaitable
from typing import Callable
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt

from src.api.core.constants import JWT_ALGORITHM
from src.database.connection import build_engine, build_session_factory
from src.database.models import Account, Agent, Base
from src.modules.ledger.service import LedgerService
from src.redis.client import get_redis_client
from src.utils.settings.auth import AuthSettings

from tests.factories import AccountFactory, AgentFactory
from tests.fakes import FakeWebhookClient, build_mock_redis

BASE_URL = "http://test-marketplace-api"


@pytest.fixture
def database_url(tmp_path) -> str:
    """Fresh SQLite file per test unless TEST_DATABASE_URL points elsewhere."""
    return os.getenv("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}"
    )


@pytest_asyncio.fixture
async def async_engine(database_url):
    engine = build_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(async_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_webhook() -> FakeWebhookClient:
    return FakeWebhookClient()


@pytest.fixture
def mock_redis():
    return build_mock_redis()


@pytest_asyncio.fixture
async def app(session_factory, fake_webhook, mock_redis):
    """FastAPI app wired to the test database and fake collaborators."""
    from src.main import app

    async with LifespanManager(app):
        app.state.session_factory = session_factory
        app.state.webhook_client = fake_webhook
        app.dependency_overrides[get_redis_client] = lambda: mock_redis
        yield app
        app.dependency_overrides.clear()


# Test Data Fixtures
@pytest.fixture
def fund_account(
    db_session: AsyncSession,
) -> Callable[[UUID, int], Awaitable[int]]:
    """Credit an account through the ledger and return the new balance."""

    async def fund(account_id: UUID, amount_cents: int) -> int:
        entry = await LedgerService(db_session).grant_bonus(
            account_id, amount_cents, "Test funding"
        )
        return entry.balance_after_cents

    return fund


@pytest_asyncio.fixture
async def test_account(db_session: AsyncSession) -> Account:
    account = await AccountFactory.create_async(db_session, name="Test Account")
    await db_session.commit()
    return account


@pytest_asyncio.fixture
async def creator_account(db_session: AsyncSession) -> Account:
    account = await AccountFactory.create_async(db_session, name="Agent Creator")
    await db_session.commit()
    return account


@pytest_asyncio.fixture
async def test_agent(db_session: AsyncSession, creator_account: Account) -> Agent:
    """An active agent priced at 100 cents, owned by ``creator_account``."""
    agent = await AgentFactory.create_async(
        db_session,
        owner_id=creator_account.id,
        name="Summarizer",
        price_per_execution_cents=100,
    )
    await db_session.commit()
    return agent


# JWT Token Fixtures
@pytest.fixture()
def jwt_token_factory() -> Callable[..., str]:
    """Factory for creating JWT tokens for test accounts."""
    auth_settings = AuthSettings()

    def create_token(
        account_id: str, email: str | None = None, name: str = "Test Account"
    ) -> str:
        payload = {
            "sub": account_id,
            "email": email,
            "role": "authenticated",
            "aud": auth_settings.JWT_AUDIENCE,
            "user_metadata": {"full_name": name},
        }
        return jwt.encode(payload, auth_settings.JWT_SECRET, algorithm=JWT_ALGORITHM)

    return create_token


@pytest.fixture
def admin_account_ids(monkeypatch) -> Callable[..., None]:
    """Grant admin rights by account id for the duration of a test."""

    def grant(*account_ids: UUID) -> None:
        monkeypatch.setenv(
            "ADMIN_ACCOUNT_IDS", json.dumps([str(a) for a in account_ids])
        )

    return grant


# HTTP Client Fixtures
@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client for testing public endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=BASE_URL,
    ) as ac:
        yield ac


@pytest.fixture
def client_factory(app: FastAPI, jwt_token_factory):
    """Factory for creating HTTP clients authenticated as a given account."""

    def create_client_for_account(account: Account) -> AsyncClient:
        token = jwt_token_factory(str(account.id), account.email, account.name)
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url=BASE_URL,
            headers={"Authorization": f"Bearer {token}"},
        )

    return create_client_for_account


@pytest_asyncio.fixture
async def authorized_client(
    client_factory, test_account: Account
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as ``test_account``."""
    async with client_factory(test_account) as ac:
        yield ac


@pytest_asyncio.fixture
async def creator_client(
    client_factory, creator_account: Account
) -> AsyncGenerator[AsyncClient, None]:
    async with client_factory(creator_account) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(
    client_factory, admin_account_ids, db_session: AsyncSession
) -> AsyncGenerator[AsyncClient, None]:
    admin = await AccountFactory.create_async(db_session, name="Operator")
    await db_session.commit()
    admin_account_ids(admin.id)
    async with client_factory(admin) as ac:
        yield ac
