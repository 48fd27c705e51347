"""Database connection and session management"""
from decimal import Decimal
from sqlalchemy import Numeric, String
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator
from typing import AsyncGenerator

from token_vesting.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    # SQLite drivers do not take a connection pool size
    if url.startswith("sqlite"):
        return {"echo": settings.debug}
    return {"pool_size": settings.database_pool_size, "echo": settings.debug}


engine = create_async_engine(
    settings.database_url,
    **_engine_options(settings.database_url),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


class U64(TypeDecorator):
    """Unsigned 64-bit amount.

    BIGINT is signed, so amounts up to 2**64 - 1 are stored as NUMERIC(20, 0)
    and handed back as int. SQLite has no exact wide numeric and stores the
    decimal string instead.
    """
    impl = Numeric(20, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(20))
        return dialect.type_descriptor(Numeric(20, 0))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return str(int(value))
        return Decimal(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    await engine.dispose()
