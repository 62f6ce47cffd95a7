import pytest
import pytest_asyncio
from stencil_auth import User
from stencil_auth.schemas import Principal
from stencil_db import Database, Model
from stencil_models import MemoryDefinitionStore, ModelDefinition, SchemaStore

TASK = {
    "name": "Task",
    "fields": [{"name": "title", "type": "string", "required": True}],
    "rbac": {"Admin": ["all"], "Viewer": ["read"]},
}

NOTE = {
    "name": "Note",
    "fields": [
        {"name": "body", "type": "string", "required": True},
        {"name": "pinned", "type": "boolean"},
        {"name": "score", "type": "number"},
    ],
    "rbac": {"Admin": ["all"], "Editor": ["create", "read", "update", "delete"]},
    "ownerField": "owner_id",
}


@pytest.fixture
def task_definition():
    return ModelDefinition.parse(TASK)


@pytest.fixture
def note_definition():
    return ModelDefinition.parse(NOTE)


@pytest_asyncio.fixture
async def database(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'models.db'}")
    await database.create_all(Model.metadata)
    yield database
    await database.dispose()


@pytest.fixture
def memory_store():
    return MemoryDefinitionStore()


@pytest_asyncio.fixture
async def schema_store(database, memory_store):
    store = SchemaStore(database, memory_store)
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def principals(database):
    """An admin and two editors persisted as users, keyed by label."""
    people = {
        "admin": User(email="admin@example.com", role="Admin", password_hash="x"),
        "alice": User(email="alice@example.com", role="Editor", password_hash="x"),
        "bob": User(email="bob@example.com", role="Editor", password_hash="x"),
    }
    async with database.session() as session:
        session.add_all(people.values())
        await session.commit()
        return {
            label: Principal(id=user.id, role=user.role, email=user.email)
            for label, user in people.items()
        }
