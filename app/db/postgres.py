from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    url = url or settings.postgres_url
    if url.startswith("sqlite"):
        return create_async_engine(url, **kwargs)
    return create_async_engine(url, pool_size=10, max_overflow=20, pool_pre_ping=True, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(echo=False)
async_session_factory = make_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create missing tables from ORM metadata (local runs; deployments use alembic)."""
    import app.models  # noqa: F401  register mappers

    from app.db.base import Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
