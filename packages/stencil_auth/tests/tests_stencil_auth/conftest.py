import pytest_asyncio
from stencil_auth import User
from stencil_db import Database, Model


@pytest_asyncio.fixture
async def database(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    await database.create_all(Model.metadata)
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session):
    user = User(email="ada@example.com", role="Manager", is_active=True)
    user.set_password("correct-horse")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user
