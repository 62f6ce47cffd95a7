import pytest
from stencil_core import ValidationError
from stencil_models import ModelDefinition, is_valid_name

from .conftest import NOTE, TASK


def with_changes(base, **changes):
    return {**base, **changes}


class TestModelDefinition:
    def test_parse_task(self):
        definition = ModelDefinition.parse(TASK)

        assert definition.name == "Task"
        assert definition.table == "task"
        assert definition.fields[0].required is True
        assert definition.owner_field is None

    def test_table_name_override(self):
        definition = ModelDefinition.parse(with_changes(TASK, tableName="todo_items"))
        assert definition.table == "todo_items"

    def test_camel_case_keys_survive_to_document(self):
        document = ModelDefinition.parse(NOTE).to_document()

        assert document["ownerField"] == "owner_id"
        assert "owner_field" not in document
        assert ModelDefinition.parse(document) == ModelDefinition.parse(NOTE)

    def test_permitted_operations(self):
        definition = ModelDefinition.parse(TASK)

        assert definition.permitted_operations("Admin") == {
            "create",
            "read",
            "update",
            "delete",
        }
        assert definition.permitted_operations("Viewer") == {"read"}
        assert definition.permitted_operations("Stranger") == set()

    def test_summary_shape(self):
        summary = ModelDefinition.parse(
            with_changes(TASK, description="Things to do")
        ).summary()

        assert summary == {
            "name": "Task",
            "description": "Things to do",
            "fields": [{"name": "title", "type": "string", "required": True}],
        }

    @pytest.mark.parametrize(
        ("changes", "message"),
        [
            ({"name": "Task; DROP TABLE users"}, "Invalid model name"),
            ({"tableName": "bad-name"}, "Invalid identifier"),
            ({"tableName": "users"}, "reserved by the platform"),
            ({"name": "Models"}, "reserved by the platform"),
            ({"fields": [{"name": "id", "type": "number"}]}, "is reserved"),
            (
                {
                    "fields": [
                        {"name": "title", "type": "string"},
                        {"name": "title", "type": "number"},
                    ]
                },
                "Duplicate field name",
            ),
            ({"fields": [{"name": "x", "type": "date"}]}, "fields.0.type"),
            ({"fields": [{"name": "tag", "type": "relation"}]}, "must name its target"),
            ({"rbac": {"Admin": ["publish"]}}, "rbac.Admin.0"),
            (
                {
                    "ownerField": "title",
                },
                "must not also be declared",
            ),
        ],
    )
    def test_rejects_invalid_definitions(self, changes, message):
        with pytest.raises(ValidationError, match=message):
            ModelDefinition.parse(with_changes(TASK, **changes))

    def test_rejects_missing_name(self):
        with pytest.raises(ValidationError, match="name"):
            ModelDefinition.parse({"fields": []})

    def test_rejects_non_object(self):
        with pytest.raises(ValidationError):
            ModelDefinition.parse(["Task"])


def test_is_valid_name():
    assert is_valid_name("Task_2")
    assert not is_valid_name("")
    assert not is_valid_name("../etc")
    assert not is_valid_name("task name")
