from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.utils.settings.database import DatabaseSettings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL."""
    connect_args: dict = {}
    if database_url.startswith("sqlite"):
        # Concurrent writers wait on the database lock instead of failing
        connect_args["timeout"] = 30
    return create_async_engine(database_url, echo=echo, connect_args=connect_args)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


_settings = DatabaseSettings()
async_engine = build_engine(_settings.DATABASE_URL_ASYNC, echo=_settings.DATABASE_ECHO)
AsyncSessionLocal = build_session_factory(async_engine)
