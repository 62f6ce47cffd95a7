from .config import StencilSettings, get_settings
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    IntegrityWarning,
    NotFoundError,
    StencilError,
    StorageError,
    ValidationError,
)
from .logging import scoped_correlation_id, setup_logging

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "IntegrityWarning",
    "NotFoundError",
    "StencilError",
    "StencilSettings",
    "StorageError",
    "ValidationError",
    "get_settings",
    "scoped_correlation_id",
    "setup_logging",
]
