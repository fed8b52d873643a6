from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from core.settings import settings


def build_engine(url: str):
    """Create the async engine; pool and connect-timeout options only apply to PostgreSQL."""
    if url.startswith("sqlite"):
        return create_async_engine(url, connect_args={"timeout": settings.STORE_CONNECT_TIMEOUT_SECONDS})

    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.POSTGRES_POOL_SIZE,
        max_overflow=settings.POSTGRES_MAX_OVERFLOW,
        pool_recycle=600,
        pool_use_lifo=True,
        pool_timeout=settings.STORE_CONNECT_TIMEOUT_SECONDS,
        connect_args={"connect_timeout": settings.STORE_CONNECT_TIMEOUT_SECONDS},
    )


async_engine = build_engine(settings.SQLALCHEMY_DATABASE_URI or "sqlite+aiosqlite:///./votes.db")
AsyncSessionLocal = async_sessionmaker(async_engine, autocommit=False, expire_on_commit=False)
