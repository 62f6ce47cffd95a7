from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from stencil_auth.routes import router as auth_router
from stencil_core import StencilSettings, setup_logging
from stencil_db import Database, Model
from stencil_models import (
    DefinitionStore,
    FileSystemDefinitionStore,
    RouteRegistry,
    SchemaStore,
    SQLAlchemyDefinitionStore,
)
from stencil_models.api import crud_router, models_router

from .exceptions import setup_exception_handlers
from .middleware import setup_middleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def build_definition_store(
    settings: StencilSettings, database: Database
) -> DefinitionStore:
    if settings.DEFINITION_STORE == "filesystem":
        return FileSystemDefinitionStore(settings.MODELS_DIR)
    return SQLAlchemyDefinitionStore(database)


@asynccontextmanager
async def lifespan(app: StencilApp) -> AsyncIterator[None]:
    """Create platform tables, reconcile stored models and mount their routes."""
    database: Database = app.state.database
    schema_store: SchemaStore = app.state.schema_store
    registry: RouteRegistry = app.state.registry
    settings: StencilSettings = app.state.settings

    await database.create_all(Model.metadata)
    await schema_store.initialize()
    for definition in await schema_store.reconcile_all():
        registry.register_definition(definition, database, settings.ADMIN_ROLE)
    logger.info("Stencil ready with %d models under %r", len(registry), app.api_prefix)

    yield

    await database.dispose()


class StencilApp(FastAPI):
    """
    FastAPI application serving the auth endpoints, model management and the
    generated CRUD endpoints of every published model.

    Collaborators default to what ``settings`` describes; tests pass their own.
    """

    def __init__(
        self,
        settings: StencilSettings | None = None,
        *,
        database: Database | None = None,
        definition_store: DefinitionStore | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("title", "Stencil")
        kwargs.setdefault("lifespan", lifespan)
        super().__init__(**kwargs)

        settings = settings or StencilSettings()
        database = database or Database(
            settings.DATABASE_URL,
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
        store = definition_store or build_definition_store(settings, database)

        self.state.settings = settings
        self.state.database = database
        self.state.schema_store = SchemaStore(database, store)
        self.state.registry = RouteRegistry()
        self.api_prefix = settings.api_prefix

        setup_middleware(self, settings, database)
        setup_exception_handlers(self)

        self.include_router(auth_router, prefix=self.api_prefix)
        self.include_router(models_router, prefix=self.api_prefix)
        # Catch-all model paths go last so fixed routes win.
        self.include_router(crud_router, prefix=self.api_prefix)

    @property
    def registry(self) -> RouteRegistry:
        return self.state.registry

    @property
    def schema_store(self) -> SchemaStore:
        return self.state.schema_store


def create_app(settings: StencilSettings | None = None) -> StencilApp:
    """Application factory used by uvicorn and ``python -m stencil_web``."""
    settings = settings or StencilSettings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return StencilApp(settings)
