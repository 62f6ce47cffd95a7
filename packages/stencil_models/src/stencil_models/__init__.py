from .ddl import build_column, build_table, column_type
from .definition import FieldDefinition, ModelDefinition, is_valid_name
from .policy import authorize, check_ownership, is_allowed
from .registry import RouteRegistry
from .router_factory import ModelRoutes, build_model_routes
from .saga import Saga, SagaResult
from .schema_store import ReconcileResult, SchemaStore, order_by_relations
from .stores import (
    DefinitionStore,
    FileSystemDefinitionStore,
    MemoryDefinitionStore,
    SQLAlchemyDefinitionStore,
)
from .validator import coerce_payload, validate

__all__ = [
    "DefinitionStore",
    "FieldDefinition",
    "FileSystemDefinitionStore",
    "MemoryDefinitionStore",
    "ModelDefinition",
    "ModelRoutes",
    "ReconcileResult",
    "RouteRegistry",
    "SQLAlchemyDefinitionStore",
    "Saga",
    "SagaResult",
    "SchemaStore",
    "authorize",
    "build_column",
    "build_model_routes",
    "build_table",
    "check_ownership",
    "coerce_payload",
    "column_type",
    "is_allowed",
    "is_valid_name",
    "order_by_relations",
    "validate",
]
