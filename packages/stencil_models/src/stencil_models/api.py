"""
HTTP surface of published models.

``models_router`` manages definitions under ``/models``. ``crud_router``
declares one generic route per CRUD operation and dispatches through the
application's :class:`RouteRegistry`, so publishing or removing a model takes
effect on the next request. Include ``crud_router`` last: its paths match any
segment.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status
from stencil_auth.models import User
from stencil_auth.schemas import Principal
from stencil_authorization.dependencies import admin_required, auth_required
from stencil_core import NotFoundError, StencilSettings, ValidationError, get_settings
from stencil_db import Database, get_database

from .definition import ModelDefinition, is_valid_name
from .registry import RouteRegistry
from .router_factory import ModelRoutes
from .schema_store import SchemaStore

logger = logging.getLogger(__name__)

models_router = APIRouter(prefix="/models", tags=["models"])
crud_router = APIRouter(tags=["data"])


def get_schema_store(request: Request) -> SchemaStore:
    return request.app.state.schema_store


def get_registry(request: Request) -> RouteRegistry:
    return request.app.state.registry


def get_principal(user: User = Depends(auth_required)) -> Principal:
    return Principal.model_validate(user)


def resolve_routes(
    model_path: str,
    registry: RouteRegistry = Depends(get_registry),
) -> ModelRoutes:
    return registry.resolve(model_path)


def _check_model_name(model_name: str) -> None:
    if not is_valid_name(model_name):
        raise ValidationError("Invalid model name format.")


@models_router.post("/publish", status_code=status.HTTP_201_CREATED)
async def publish_model(
    payload: Any = Body(...),
    _admin: User = Depends(admin_required),
    schema_store: SchemaStore = Depends(get_schema_store),
    registry: RouteRegistry = Depends(get_registry),
    database: Database = Depends(get_database),
    settings: StencilSettings = Depends(get_settings),
) -> dict[str, str]:
    definition = ModelDefinition.parse(payload)
    await schema_store.publish(definition)
    routes = registry.register_definition(definition, database, settings.ADMIN_ROLE)
    return {"message": "Model published successfully", "path": routes.base_path}


@models_router.get("")
async def list_models(
    _user: User = Depends(auth_required),
    schema_store: SchemaStore = Depends(get_schema_store),
) -> list[dict[str, Any]]:
    return [definition.summary() for definition in await schema_store.load_all()]


@models_router.get("/{model_name}")
async def get_model(
    model_name: str,
    _user: User = Depends(auth_required),
    schema_store: SchemaStore = Depends(get_schema_store),
) -> dict[str, Any]:
    _check_model_name(model_name)
    definition = await schema_store.get(model_name)
    if definition is None:
        raise NotFoundError(f"Model '{model_name}' not found")
    return definition.to_document()


@models_router.delete("/{model_name}")
async def delete_model(
    model_name: str,
    _admin: User = Depends(admin_required),
    schema_store: SchemaStore = Depends(get_schema_store),
    registry: RouteRegistry = Depends(get_registry),
) -> dict[str, str]:
    _check_model_name(model_name)
    result = await schema_store.remove(model_name)
    registry.unregister(model_name)
    for warning in result.warnings:
        logger.warning("Model %s removed with warning: %s", model_name, warning)
    return {
        "message": f"Model '{model_name}' and all its data deleted successfully."
    }


@crud_router.post("/{model_path}", status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: Any = Body(...),
    principal: Principal = Depends(get_principal),
    routes: ModelRoutes = Depends(resolve_routes),
) -> dict[str, Any]:
    return await routes.create(principal, payload)


@crud_router.get("/{model_path}")
async def list_items(
    principal: Principal = Depends(get_principal),
    routes: ModelRoutes = Depends(resolve_routes),
) -> list[dict[str, Any]]:
    return await routes.list(principal)


@crud_router.get("/{model_path}/{item_id}")
async def get_item(
    item_id: int,
    principal: Principal = Depends(get_principal),
    routes: ModelRoutes = Depends(resolve_routes),
) -> dict[str, Any]:
    return await routes.retrieve(principal, item_id)


@crud_router.put("/{model_path}/{item_id}")
async def update_item(
    item_id: int,
    payload: Any = Body(...),
    principal: Principal = Depends(get_principal),
    routes: ModelRoutes = Depends(resolve_routes),
) -> dict[str, Any]:
    return await routes.update(principal, item_id, payload)


@crud_router.delete("/{model_path}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: int,
    principal: Principal = Depends(get_principal),
    routes: ModelRoutes = Depends(resolve_routes),
) -> Response:
    await routes.delete(principal, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
