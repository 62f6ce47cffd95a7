import pytest
from sqlalchemy import inspect, select, text
from sqlalchemy.exc import IntegrityError
from stencil_db import Database, normalize_database_url

from .models import Author, Note

pytestmark = pytest.mark.asyncio


class TestNormalizeDatabaseUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
            ("sqlite+aiosqlite:///x.db", "sqlite+aiosqlite:///x.db"),
        ],
    )
    async def test_drivers(self, url, expected):
        assert normalize_database_url(url) == expected


class TestDatabase:
    async def test_sqlite_drops_pool_options(self, tmp_path):
        database = Database(
            f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}",
            pool_size=5,
            max_overflow=10,
        )
        try:
            assert database.is_sqlite is True
            async with database.connect() as conn:
                assert (await conn.execute(text("SELECT 1"))).scalar() == 1
        finally:
            await database.dispose()

    async def test_create_all_creates_tables(self, database):
        async with database.connect() as conn:
            tables = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_table_names()
            )
        assert {"test_authors", "test_notes"} <= set(tables)

    async def test_foreign_keys_are_enforced(self, db_session):
        db_session.add(Note(title="orphan", author_id=999))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_begin_commits(self, database):
        async with database.begin() as conn:
            await conn.execute(
                Author.__table__.insert().values(name="Ada")
            )
        async with database.session() as session:
            author = await session.scalar(select(Author))
        assert author is not None
        assert author.name == "Ada"
        assert author.created_at is not None
