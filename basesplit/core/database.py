from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC, matching the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_engine_and_sessionmaker(database_url: str):
    engine = create_async_engine(database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    return engine, session_factory


async def init_models(engine) -> None:
    """Create all tables. Used by tests and local sqlite runs; production uses alembic."""
    # Import models so they are registered on Base.metadata
    from basesplit.models import contact, payment_request, profile  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


