"""Async SQLAlchemy engine and session factory."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings


def normalise_url(url: str) -> str:
    """Force the async psycopg driver; require SSL for non-local hosts."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix) and "+psycopg" not in url:
            url = "postgresql+psycopg://" + url[len(prefix):]
            break

    host = url.split("@")[-1].split("/")[0].split(":")[0] if "@" in url else ""
    if host and host not in ("localhost", "127.0.0.1") and "sslmode" not in url:
        url += ("&" if "?" in url else "?") + "sslmode=require"
    return url


def build_engine(database_url: str) -> AsyncEngine:
    """Create an engine; stale pooled connections are checked before use."""
    return create_async_engine(normalise_url(database_url), echo=False, pool_pre_ping=True)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)

async_session = build_session_factory(engine)


async def get_session() -> AsyncSession:
    """Yield an async database session."""
    async with async_session() as session:
        yield session
