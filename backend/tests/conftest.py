"""Pytest configuration and fixtures for the token vesting backend tests"""
import os
import pytest
import pytest_asyncio
from types import SimpleNamespace
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Tests run against a private in-memory SQLite database; set before the app
# reads its settings
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from token_vesting.main import app  # noqa: E402
from token_vesting.config import get_settings  # noqa: E402
from token_vesting.models.database import Base, get_db  # noqa: E402
from token_vesting.models.vesting import VestingSchedule  # noqa: E402
from token_vesting.services.authority import (  # noqa: E402
    derive_schedule_authority,
    derive_vault_address,
    encode_address,
)
from token_vesting.services.clock import get_clock  # noqa: E402
from token_vesting.services.ledger import TokenLedger  # noqa: E402
from token_vesting.services.vesting_service import VestingService  # noqa: E402

PROGRAM_ID = get_settings().program_id

NOW = 1_700_000_000
DAY = 86_400


def make_address(n: int) -> str:
    """Deterministic base58 address for test participants"""
    return encode_address(bytes([n]) * 32)


class FixedClock:
    """Clock the tests move by hand"""

    def __init__(self, now: int):
        self.now = now

    async def current_time(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Fresh in-memory database per test; StaticPool keeps the single connection alive"""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test"""
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def addresses() -> SimpleNamespace:
    return SimpleNamespace(
        admin=make_address(1),
        beneficiary=make_address(2),
        mint=make_address(3),
        other=make_address(4),
        other_mint=make_address(5),
    )


@pytest.fixture
def service(db_session: AsyncSession, clock: FixedClock) -> VestingService:
    return VestingService(db_session, clock, program_id=PROGRAM_ID)


@pytest.fixture
def ledger(db_session: AsyncSession) -> TokenLedger:
    return TokenLedger(db_session, PROGRAM_ID)


@pytest.fixture
def seed_schedule(db_session: AsyncSession, addresses: SimpleNamespace):
    """
    Insert a schedule, its vault and the escrowed balance directly.

    Bypasses create's parameter rules so short worked examples (durations
    under a day, start times already passed) can be set up.
    """

    async def _seed(
        total_amount: int = 1_000_000,
        start_time: int = NOW,
        cliff_duration: int = 0,
        vesting_duration: int = 1_000,
    ) -> VestingSchedule:
        authority = derive_schedule_authority(
            addresses.admin, addresses.beneficiary, addresses.mint, PROGRAM_ID
        )
        vault = derive_vault_address(authority.address, PROGRAM_ID)
        ledger = TokenLedger(db_session, PROGRAM_ID)
        vault_account = await ledger.open_vault(vault, authority, addresses.mint)
        vault_account.amount = total_amount

        schedule = VestingSchedule(
            address=authority.address,
            admin=addresses.admin,
            beneficiary=addresses.beneficiary,
            mint=addresses.mint,
            vault=vault.address,
            total_amount=total_amount,
            claimed_amount=0,
            start_time=start_time,
            cliff_duration=cliff_duration,
            vesting_duration=vesting_duration,
            is_revoked=False,
            revoked_amount=0,
            bump=authority.bump,
            vault_bump=vault.bump,
        )
        db_session.add(schedule)
        await db_session.flush()
        return schedule

    return _seed


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with a commit-or-rollback session per request"""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
