from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from voiceflow.core.config import settings


def normalize_database_url(url: str) -> str:
    """
    Supabase/Heroku hand out 'postgresql://' or 'postgres://'.
    Async SQLAlchemy requires 'postgresql+asyncpg://'.
    """
    if not url:
        raise ValueError("DATABASE_URL must be set in the environment variables.")
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str = None):
    url = normalize_database_url(url or settings.DATABASE_URL)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False, future=True)

    return create_async_engine(
        url,
        echo=False,
        future=True,
        # Hosted Postgres requires SSL
        connect_args={"ssl": "require"} if "localhost" not in url else {},
        pool_pre_ping=True,
        pool_recycle=300
    )


def build_session_factory(bind):
    return async_sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        class_=AsyncSession,
        expire_on_commit=False
    )


engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)

Base = declarative_base()


async def init_db(bind=None):
    """Create all tables registered on Base.metadata."""
    # Import models so they are registered with Base.metadata
    from voiceflow.models import task, event  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
