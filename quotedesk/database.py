from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from quotedesk.config import settings
import structlog

logger = structlog.get_logger()

# libpq sslmode values that mean "encrypt the connection"
_SSL_MODES = {"require", "verify-ca", "verify-full"}


class Base(DeclarativeBase):
    pass


def async_engine_args(raw_url: str, ssl_required: bool = False) -> tuple[str, dict]:
    """
    Split a libpq-style URL into an asyncpg URL and connect_args.

    asyncpg rejects ``sslmode`` in the query string, so it is moved into
    ``connect_args``. The driver is forced to asyncpg.
    """
    url = make_url(raw_url)
    sslmode = url.query.get("sslmode")
    url = url.difference_update_query(["sslmode"]).set(drivername="postgresql+asyncpg")
    if ssl_required or sslmode in _SSL_MODES:
        return url.render_as_string(hide_password=False), {"ssl": "require"}
    return url.render_as_string(hide_password=False), {}


def sync_database_url() -> str:
    """URL for alembic: DATABASE_SYNC_URL, else DATABASE_URL on psycopg2."""
    if settings.DATABASE_SYNC_URL:
        return settings.DATABASE_SYNC_URL
    url = make_url(settings.DATABASE_URL).set(drivername="postgresql+psycopg2")
    return url.render_as_string(hide_password=False)


_url, _connect_args = async_engine_args(settings.DATABASE_URL, settings.DB_SSL_REQUIRED)

engine: AsyncEngine = create_async_engine(
    _url,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=30,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args=_connect_args,
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    """Request-scoped session. Commits when the handler returns, rolls back on any error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("db_connected", host=make_url(_url).host)


async def close_db():
    await engine.dispose()
    logger.info("db_disconnected")
