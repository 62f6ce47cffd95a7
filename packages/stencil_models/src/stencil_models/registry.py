import logging
from collections.abc import Iterator

from stencil_core import NotFoundError
from stencil_db import Database

from .definition import ModelDefinition
from .router_factory import ModelRoutes, build_model_routes

logger = logging.getLogger(__name__)


class RouteRegistry:
    """
    Live mapping from URL segment to the handlers of one published model.

    Registering a model again replaces its previous handlers, including when
    a republish moved it to a different table. The HTTP layer resolves this
    registry on every request.
    """

    def __init__(self) -> None:
        self._by_path: dict[str, ModelRoutes] = {}
        self._paths: dict[str, str] = {}

    def register(self, routes: ModelRoutes) -> ModelRoutes:
        segment = routes.definition.table
        previous_segment = self._paths.get(routes.name)
        if previous_segment is not None and previous_segment != segment:
            self._by_path.pop(previous_segment, None)

        current = self._by_path.get(segment)
        if current is not None and current.name != routes.name:
            self._paths.pop(current.name, None)

        replaced = current is not None
        self._by_path[segment] = routes
        self._paths[routes.name] = segment
        logger.info(
            "%s routes for %s at %s",
            "Replaced" if replaced else "Registered",
            routes.name,
            routes.base_path,
        )
        return routes

    def register_definition(
        self,
        definition: ModelDefinition,
        database: Database,
        admin_role: str = "Admin",
    ) -> ModelRoutes:
        return self.register(build_model_routes(definition, database, admin_role))

    def unregister(self, name: str) -> ModelRoutes | None:
        """Forget the routes of model ``name``; returns what was removed."""
        segment = self._paths.pop(name, None)
        if segment is None:
            return None
        logger.info("Unregistered routes for %s", name)
        return self._by_path.pop(segment, None)

    def resolve(self, model_path: str) -> ModelRoutes:
        routes = self._by_path.get(model_path)
        if routes is None:
            raise NotFoundError(f"No model is published at '/{model_path}'")
        return routes

    def path_for(self, name: str) -> str | None:
        segment = self._paths.get(name)
        return f"/{segment}" if segment is not None else None

    def __contains__(self, name: object) -> bool:
        return name in self._paths

    def __len__(self) -> int:
        return len(self._by_path)

    def __iter__(self) -> Iterator[ModelRoutes]:
        return iter(list(self._by_path.values()))
