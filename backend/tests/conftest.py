"""Shared test fixtures.

Environment is configured before any onboard_api import: settings and the
rate limiter are module-level singletons built at import time.

Database tests run against TEST_DATABASE_URL when it is set (PostgreSQL via
asyncpg) and otherwise against a per-test SQLite file.
"""

import os

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_TOKEN_SECRET = "test-onboarding-secret-that-is-at-least-32-chars"  # nosec B105  # gitleaks:allow

os.environ.setdefault("ONBOARDING_TOKEN_SECRET", TEST_TOKEN_SECRET)
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from onboard_api.models.base import Base  # noqa: E402
from onboard_api.models.practice import Practice, PracticeSettings  # noqa: E402
from onboard_api.repositories.onboarding_token_repository import (  # noqa: E402
    OnboardingTokenRepository,
)
from onboard_api.services.token_claims import IssuedToken, OnboardingScope  # noqa: E402
from onboard_api.services.token_signer import TokenSigner  # noqa: E402
from onboard_api.services.token_verifier import TokenVerifier  # noqa: E402

_MAX_TTL_SECONDS = 30 * 24 * 60 * 60


class FrozenClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# =============================================================================
# Token fixtures
# =============================================================================


@pytest.fixture
def secret() -> bytes:
    """Signing key shared by signer, verifier and the test app."""
    return TEST_TOKEN_SECRET.encode("utf-8")


@pytest.fixture
def clock() -> FrozenClock:
    """Clock starting at the current (whole-second) UTC time."""
    return FrozenClock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def signer(secret: bytes, clock: FrozenClock) -> TokenSigner:
    return TokenSigner(secret, max_ttl_seconds=_MAX_TTL_SECONDS, clock=clock)


@pytest.fixture
def verifier(secret: bytes, clock: FrozenClock) -> TokenVerifier:
    return TokenVerifier(secret, clock=clock)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create test database engine with all tables."""
    url = os.environ.get("TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'onboarding_test.db'}"
    )
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def practice(db_session: AsyncSession) -> Practice:
    """A provisioning practice with default settings."""
    practice = Practice(
        id=uuid.uuid4(),
        name="Sunrise Dental",
        email="frontdesk@sunrise-dental.example",
        phone="+15035550100",
        city="Portland",
        tz="America/Los_Angeles",
        status="provisioning",
    )
    db_session.add(practice)
    await db_session.flush()

    db_session.add(
        PracticeSettings(
            practice_id=practice.id,
            review_link="https://g.page/sunrise-dental",
            quiet_hours_start=8,
            quiet_hours_end=20,
            daily_cap=50,
            default_locale="en",
        )
    )
    await db_session.commit()
    await db_session.refresh(practice)
    return practice


@pytest_asyncio.fixture
async def stored_token(
    db_session: AsyncSession,
    signer: TokenSigner,
    practice: Practice,
) -> IssuedToken:
    """A one-hour onboarding token for ``practice`` with its record committed."""
    issued = signer.issue(str(practice.id), OnboardingScope.ONBOARDING, 3600)
    await OnboardingTokenRepository.create(db_session, claims=issued.claims)
    await db_session.commit()
    return issued


# =============================================================================
# API fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(
    secret: bytes,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[FastAPI, None]:
    """Application wired to the test database and test signing key."""
    from onboard_api.core.database import get_db
    from onboard_api.core.secrets import StaticSigningKeyProvider
    from onboard_api.main import create_app

    test_app = create_app(signing_key_provider=StaticSigningKeyProvider(secret))

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    test_app.dependency_overrides[get_db] = override_get_db
    yield test_app
    test_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for API tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
