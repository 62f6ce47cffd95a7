import pytest
from stencil_core import NotFoundError
from stencil_models import ModelDefinition, RouteRegistry, build_model_routes

from .conftest import TASK


@pytest.fixture
def registry():
    return RouteRegistry()


class TestRouteRegistry:
    def test_register_and_resolve(self, registry, task_definition):
        routes = registry.register(build_model_routes(task_definition, database=None))

        assert registry.resolve("task") is routes
        assert registry.path_for("Task") == "/task"
        assert "Task" in registry
        assert len(registry) == 1

    def test_register_replaces(self, registry, task_definition):
        registry.register(build_model_routes(task_definition, database=None))
        newer = registry.register(build_model_routes(task_definition, database=None))

        assert registry.resolve("task") is newer
        assert len(registry) == 1

    def test_republish_to_new_table_moves_path(self, registry, task_definition):
        registry.register(build_model_routes(task_definition, database=None))
        moved = ModelDefinition.parse({**TASK, "tableName": "todo"})
        registry.register(build_model_routes(moved, database=None))

        assert registry.path_for("Task") == "/todo"
        assert registry.resolve("todo").definition == moved
        with pytest.raises(NotFoundError):
            registry.resolve("task")

    def test_unregister(self, registry, task_definition):
        routes = registry.register(build_model_routes(task_definition, database=None))

        assert registry.unregister("Task") is routes
        assert registry.unregister("Task") is None
        assert "Task" not in registry
        with pytest.raises(NotFoundError, match="No model is published at '/task'"):
            registry.resolve("task")

    def test_iteration(self, registry, task_definition):
        registry.register(build_model_routes(task_definition, database=None))
        assert [routes.name for routes in registry] == ["Task"]
