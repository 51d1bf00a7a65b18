"""
Pytest configuration and shared fixtures.

Database tests run against in-memory SQLite (aiosqlite) with a StaticPool so
every session in a test sees the same connection. HTTP tests drive a fresh
application through httpx.ASGITransport with dependencies overridden.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import receptionist.consent.models  # noqa: F401
import receptionist.outreach.models  # noqa: F401
import receptionist.telephony.models  # noqa: F401
from receptionist.config import Settings, get_settings
from receptionist.messaging.factory import get_messaging_provider
from receptionist.messaging.mock_adapter import MockMessagingProvider
from receptionist.outreach.config import OutreachConfig, get_outreach_config
from receptionist.shared.database import Base, get_db_session
from receptionist.telephony.config import TelephonyConfig, get_telephony_config
from receptionist.telephony.signature import SIGNATURE_HEADER, compute_signature

TEST_AUTH_TOKEN = "test_auth_token_12345"
TEST_BASE_URL = "https://hooks.example.com"
TEST_INTERNAL_SECRET = "internal-secret-xyz"
CALLER = "+15877428885"
BUSINESS = "+15875550100"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_env="dev",
        debug=False,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        twilio_account_sid="AC_TEST_ACCOUNT_SID",
        twilio_auth_token=TEST_AUTH_TOKEN,
        webhook_base_url=TEST_BASE_URL,
        internal_webhook_secret=TEST_INTERNAL_SECRET,
        allow_insecure_webhooks=False,
    )


@pytest.fixture
def outreach_config() -> OutreachConfig:
    return OutreachConfig(
        whatsapp_from="whatsapp:+15875550100",
        sms_from=BUSINESS,
        messaging_service_sid="",
        whatsapp_content_sid="",
        booking_url="https://book.example.com",
        business_forward_number="",
        respect_consent=True,
        send_max_attempts=1,
        send_backoff_seconds=0,
    )


@pytest.fixture
def mock_provider() -> MockMessagingProvider:
    return MockMessagingProvider()


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def app(
    db_session: AsyncSession,
    test_settings: Settings,
    telephony_config: TelephonyConfig,
    outreach_config: OutreachConfig,
    mock_provider: MockMessagingProvider,
) -> FastAPI:
    """Application with storage, config and messaging dependencies overridden."""
    from receptionist.main import create_app

    application = create_app()

    async def _override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    application.dependency_overrides[get_db_session] = _override_get_db_session
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_telephony_config] = lambda: telephony_config
    application.dependency_overrides[get_outreach_config] = lambda: outreach_config
    application.dependency_overrides[get_messaging_provider] = lambda: mock_provider
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def signed_headers() -> Callable[..., dict[str, str]]:
    """Build provider signature headers for a path and form body."""

    def _build(path: str, params: dict[str, Any], token: str = TEST_AUTH_TOKEN) -> dict[str, str]:
        url = f"{TEST_BASE_URL}{path}"
        return {SIGNATURE_HEADER: compute_signature(url, params, token)}

    return _build
