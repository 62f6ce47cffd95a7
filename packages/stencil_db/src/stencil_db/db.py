from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import Request
from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Enable SQLite foreign key enforcement for every DBAPI connection.
    """

    @event.listens_for(engine.sync_engine.pool, "connect")  # pragma: no cover
    def _set_sqlite_pragma(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def normalize_database_url(database_url: str) -> str:
    """Route plain PostgreSQL URLs through the asyncpg driver."""
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


class Database:
    """
    Storage handle owning an async engine and its session factory.

    One instance is built by the process bootstrap and passed to every
    component that needs storage; nothing reads a module-level engine.

    Example:
        >>> database = Database("sqlite+aiosqlite:///db.sqlite3")
        >>> async with database.session() as session:
        ...     await session.execute(...)
        >>> await database.dispose()
    """

    def __init__(
        self,
        database_url: str,
        *,
        echo: bool = False,
        **engine_kwargs: Any,
    ) -> None:
        database_url = normalize_database_url(database_url)
        self.is_sqlite = database_url.startswith("sqlite")

        options: dict[str, Any] = {
            "echo": echo,
            **engine_kwargs,
        }

        if self.is_sqlite:
            # SQLite does not support pooling options
            options.pop("pool_size", None)
            options.pop("max_overflow", None)
            options.pop("pool_pre_ping", None)
            options.setdefault("connect_args", {"check_same_thread": False})
        else:
            options.setdefault("pool_pre_ping", True)

        self.url = database_url
        self.engine: AsyncEngine = create_async_engine(database_url, **options)

        if self.is_sqlite:
            _enable_sqlite_foreign_keys(self.engine)

        self._session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    def session(self) -> AsyncSession:
        """Open a new ORM session; use as ``async with database.session()``."""
        return self._session_factory()

    def connect(self) -> AbstractAsyncContextManager[AsyncConnection]:
        """Checkout a connection without starting a transaction block."""
        return self.engine.connect()

    def begin(self) -> AbstractAsyncContextManager[AsyncConnection]:
        """Checkout a connection inside a transaction committed on exit."""
        return self.engine.begin()

    async def create_all(self, metadata: MetaData) -> None:
        """Create every table of ``metadata`` that does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        """
        Dispose of the database engine and clean up resources.
        """
        await self.engine.dispose()

    def __repr__(self) -> str:
        return f"<Database url={self.engine.url!r}>"


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        msg = "Database not configured. Set app.state.database at startup."
        raise RuntimeError(msg)
    return database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session from the application's database handle.
    Suitable for use as a FastAPI dependency.
    """
    async with get_database(request).session() as session:
        yield session
