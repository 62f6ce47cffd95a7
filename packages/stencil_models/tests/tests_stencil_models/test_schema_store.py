import pytest
import stencil_models.schema_store as schema_store_module
from sqlalchemy import inspect, text
from stencil_core import ConflictError, NotFoundError, ValidationError
from stencil_models import (
    ModelDefinition,
    ReconcileResult,
    SchemaStore,
    build_table,
    order_by_relations,
)

from .conftest import NOTE, TASK

PROJECT = {
    "name": "Project",
    "fields": [{"name": "title", "type": "string"}],
    "rbac": {"Admin": ["all"]},
}
ISSUE = {
    "name": "Issue",
    "fields": [{"name": "project", "type": "relation", "relation": "Project"}],
    "rbac": {"Admin": ["all"]},
}


async def columns_of(database, table_name):
    async with database.connect() as conn:
        return await conn.run_sync(
            lambda sync_conn: [
                column["name"] for column in inspect(sync_conn).get_columns(table_name)
            ]
        )


async def drop(database, table_name):
    async with database.begin() as conn:
        await conn.execute(text(f'DROP TABLE "{table_name}"'))


@pytest.mark.asyncio
class TestPublish:
    async def test_persists_and_creates_table(self, schema_store, task_definition):
        result = await schema_store.publish(task_definition)

        assert result.table_name == "task"
        assert result.created is True
        assert await schema_store.get("Task") == task_definition
        assert await schema_store.table_exists("task")
        assert await columns_of(schema_store.database, "task") == [
            "id",
            "title",
            "created_at",
            "updated_at",
        ]

    async def test_republish_is_idempotent(self, schema_store, task_definition):
        await schema_store.publish(task_definition)
        result = await schema_store.publish(task_definition)

        assert result.created is False
        assert result.missing_columns == ()

    async def test_republish_with_new_field_reports_drift(
        self, schema_store, task_definition, caplog
    ):
        await schema_store.publish(task_definition)
        changed = ModelDefinition.parse(
            {**TASK, "fields": [*TASK["fields"], {"name": "due", "type": "string"}]}
        )

        result = await schema_store.publish(changed)

        assert result.missing_columns == ("due",)
        assert await schema_store.get("Task") == changed
        assert "lacks declared columns due" in caplog.text

    async def test_owner_column(self, schema_store, note_definition):
        await schema_store.publish(note_definition)
        assert "owner_id" in await columns_of(schema_store.database, "note")

    async def test_table_name_conflict(self, schema_store, task_definition):
        await schema_store.publish(task_definition)
        other = ModelDefinition.parse({**TASK, "name": "Chore", "tableName": "task"})

        with pytest.raises(ConflictError, match="already belongs to model 'Task'"):
            await schema_store.publish(other)
        assert await schema_store.get("Chore") is None

    async def test_relation_target_must_exist(self, schema_store):
        with pytest.raises(ValidationError, match="Relation target 'Project'"):
            await schema_store.publish(ModelDefinition.parse(ISSUE))

        assert await schema_store.get("Issue") is None
        assert not await schema_store.table_exists("issue")

    async def test_failed_republish_restores_previous(self, schema_store):
        first = ModelDefinition.parse({**ISSUE, "fields": []})
        await schema_store.publish(first)
        await drop(schema_store.database, "issue")

        with pytest.raises(ValidationError):
            await schema_store.publish(ModelDefinition.parse(ISSUE))
        assert await schema_store.get("Issue") == first

    async def test_relation_to_published_model(self, schema_store):
        await schema_store.publish(
            ModelDefinition.parse({**PROJECT, "tableName": "projects"})
        )
        result = await schema_store.publish(ModelDefinition.parse(ISSUE))

        assert result.created is True
        async with schema_store.database.connect() as conn:
            fks = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_foreign_keys("issue")
            )
        assert fks[0]["referred_table"] == "projects"

    async def test_self_relation(self, schema_store):
        definition = ModelDefinition.parse(
            {
                "name": "Category",
                "fields": [{"name": "parent", "type": "relation", "relation": "Category"}],
            }
        )
        assert (await schema_store.publish(definition)).created is True


@pytest.mark.asyncio
class TestReconcile:
    async def test_recreates_dropped_table(self, schema_store, task_definition):
        await schema_store.publish(task_definition)
        await drop(schema_store.database, "task")

        result = await schema_store.reconcile(task_definition)

        assert result.created is True
        assert await schema_store.table_exists("task")

    async def test_existing_table_untouched(self, schema_store, task_definition):
        await schema_store.publish(task_definition)
        async with schema_store.database.begin() as conn:
            await conn.execute(text("INSERT INTO task (title) VALUES ('kept')"))

        result = await schema_store.reconcile(task_definition)

        assert result.created is False
        async with schema_store.database.connect() as conn:
            count = await conn.scalar(text("SELECT count(*) FROM task"))
        assert count == 1

    async def test_losing_a_creation_race_is_a_no_op(
        self, schema_store, task_definition, monkeypatch
    ):
        # Another worker created the table after this one found it missing.
        async with schema_store.database.begin() as conn:
            await conn.run_sync(build_table(task_definition).create)

        def create_without_check(conn, definition, relation_tables):
            build_table(definition, relation_tables=relation_tables).create(conn)
            return ReconcileResult(definition.table, created=True)

        monkeypatch.setattr(
            schema_store_module, "_ensure_table_sync", create_without_check
        )

        result = await schema_store.publish(task_definition)

        assert result == ReconcileResult("task", created=False)
        assert await schema_store.get("Task") == task_definition

    async def test_reconcile_all_orders_relations(self, database, memory_store):
        # Stored without tables: Issue sorts before Project by name.
        await memory_store.save(ModelDefinition.parse(ISSUE))
        await memory_store.save(ModelDefinition.parse(PROJECT))
        schema_store = SchemaStore(database, memory_store)

        reconciled = await schema_store.reconcile_all()

        assert [d.name for d in reconciled] == ["Project", "Issue"]
        assert await schema_store.table_exists("issue")

    async def test_reconcile_all_skips_failures(self, database, memory_store, caplog):
        await memory_store.save(ModelDefinition.parse(ISSUE))
        await memory_store.save(ModelDefinition.parse(TASK))
        schema_store = SchemaStore(database, memory_store)

        reconciled = await schema_store.reconcile_all()

        assert [d.name for d in reconciled] == ["Task"]
        assert "Failed to reconcile model Issue" in caplog.text


def test_order_by_relations_keeps_independent_models():
    definitions = [ModelDefinition.parse(d) for d in (ISSUE, NOTE, PROJECT)]
    order = [d.name for d in order_by_relations(definitions)]

    assert order.index("Project") < order.index("Issue")
    assert set(order) == {"Issue", "Note", "Project"}


@pytest.mark.asyncio
class TestRemove:
    async def test_drops_table_and_definition(self, schema_store, task_definition):
        await schema_store.publish(task_definition)

        result = await schema_store.remove("Task")

        assert result.clean
        assert await schema_store.get("Task") is None
        assert not await schema_store.table_exists("task")
        assert await schema_store.load_all() == []

    async def test_orphan_table_is_dropped(self, schema_store, task_definition):
        await schema_store.publish(task_definition)
        await schema_store.store.delete("Task")

        result = await schema_store.remove("Task")

        assert result.clean
        assert not await schema_store.table_exists("task")

    async def test_missing_table_with_definition(self, schema_store, task_definition):
        await schema_store.publish(task_definition)
        await drop(schema_store.database, "task")

        await schema_store.remove("Task")
        assert await schema_store.get("Task") is None

    @pytest.mark.parametrize(
        "name", ["users", "auth_tokens", "stencil_model_definitions"]
    )
    async def test_platform_tables_are_refused(self, schema_store, name):
        with pytest.raises(ConflictError, match="reserved by the platform"):
            await schema_store.remove(name)

        assert await schema_store.table_exists(name)

    async def test_table_of_another_model_is_refused(self, schema_store):
        todo = ModelDefinition.parse({**TASK, "tableName": "todo"})
        await schema_store.publish(todo)

        with pytest.raises(ConflictError, match="belongs to model 'Task'"):
            await schema_store.remove("todo")

        assert await schema_store.table_exists("todo")
        assert await schema_store.get("Task") == todo

    async def test_name_in_other_case_is_refused(self, schema_store, task_definition):
        await schema_store.publish(task_definition)

        with pytest.raises(ConflictError, match="remove 'Task' instead"):
            await schema_store.remove("task")

        assert await schema_store.table_exists("task")
        assert await schema_store.get("Task") == task_definition

    async def test_unknown_model(self, schema_store):
        with pytest.raises(NotFoundError):
            await schema_store.remove("Ghost")

    async def test_invalid_name(self, schema_store):
        with pytest.raises(ValidationError, match="Invalid model name format"):
            await schema_store.remove("task; drop table users")

    async def test_definition_delete_failure_is_a_warning(
        self, schema_store, task_definition, monkeypatch
    ):
        await schema_store.publish(task_definition)

        async def broken_delete(name):
            raise OSError("read-only file system")

        monkeypatch.setattr(schema_store.store, "delete", broken_delete)

        result = await schema_store.remove("Task")

        assert not await schema_store.table_exists("task")
        assert result.completed == ["drop table"]
        assert "read-only file system" in str(result.warnings[0])
