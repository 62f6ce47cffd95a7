from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Transaction block over an ``AsyncSession``.

    Commits when the block exits cleanly and rolls back when it raises. Inside
    an open transaction the block becomes a SAVEPOINT, so only its own work is
    undone.

    Example:
        >>> async with atomic(session):
        ...     session.add(record)
    """
    transaction = db.begin_nested() if db.in_transaction() else db.begin()
    async with transaction:
        yield db
