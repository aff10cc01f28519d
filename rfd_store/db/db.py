"""Database connection management using SQLModel with asyncpg / aiosqlite."""

import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from rfd_store.config.logger import app_logger
from rfd_store.config.settings import Settings

_SSL_MODES = {"require", "verify-ca", "verify-full"}


def get_db_url(db_url: str) -> tuple[str, bool]:
    """Normalize a database URL for SQLAlchemy's async drivers.

    Returns the cleaned URL and whether an ``sslmode`` parameter asked for TLS.
    """
    if not db_url:
        raise ValueError("DATABASE_URL not configured")
    # SQLite or other non-Postgres URLs are returned as-is
    if db_url.startswith("sqlite"):
        return db_url, False

    # asyncpg handles SSL via connect_args, not the query string
    parsed = urlparse(db_url)
    query_parts = parse_qsl(parsed.query)
    wants_ssl = any(k == "sslmode" and v in _SSL_MODES for k, v in query_parts)
    query = urlencode([(k, v) for k, v in query_parts if k != "sslmode"])
    clean_url = urlunparse(
        (
            parsed.scheme,
            parsed.netloc,
            parsed.path,
            parsed.params,
            query,
            parsed.fragment,
        )
    )

    if clean_url.startswith("postgresql://"):
        clean_url = clean_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif clean_url.startswith("postgres://"):
        clean_url = clean_url.replace("postgres://", "postgresql+asyncpg://", 1)

    return clean_url, wants_ssl


class Database:
    """Owns the async engine and session factory for one application."""

    def __init__(self, config: Settings):
        self.config = config
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def start(self) -> None:
        """Create the engine and the ``rfds`` table."""
        db_url, wants_ssl = get_db_url(self.config.effective_database_url)
        app_logger.info("Initializing database connection")

        engine_kwargs: dict = {"echo": self.config.DB_ECHO}
        if db_url.startswith("postgresql+asyncpg://"):
            engine_kwargs["pool_size"] = self.config.DB_POOL_SIZE
            engine_kwargs["max_overflow"] = 0
            if wants_ssl or self.config.DATABASE_SSL:
                engine_kwargs["connect_args"] = {"ssl": ssl.create_default_context()}

        self.engine = create_async_engine(db_url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        # Register the table with SQLModel metadata
        from rfd_store.models import RFD  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

        app_logger.info("Database initialized successfully")

    async def close(self) -> None:
        """Dispose of the engine."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_maker = None
            app_logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Async context manager yielding a fresh session."""
        if not self.session_maker:
            raise RuntimeError("Database not initialized. Call start() first.")

        async with self.session_maker() as session:
            yield session

    async def ping(self) -> tuple[bool, str]:
        """Run a lightweight health query against the database."""
        if not self.engine or not self.session_maker:
            return False, "Database not initialized"

        try:
            async with self.session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                row = result.scalar()
                if row == 1:
                    return True, "Database connection healthy"
                return False, f"Unexpected response: {row}"
        except Exception as e:
            return False, f"Database query failed: {str(e)}"
