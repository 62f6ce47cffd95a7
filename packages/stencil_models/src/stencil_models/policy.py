"""Role and ownership checks for generated CRUD operations."""

import logging
from collections.abc import Mapping
from typing import Any

from stencil_auth.schemas import Principal
from stencil_core import AuthenticationError, AuthorizationError

from .definition import ModelDefinition, Operation

logger = logging.getLogger(__name__)


def is_allowed(definition: ModelDefinition, role: str, operation: Operation) -> bool:
    return operation in definition.permitted_operations(role)


def authorize(
    definition: ModelDefinition,
    principal: Principal | None,
    operation: Operation,
) -> None:
    """
    Operation-level check against ``definition.rbac``.

    Raises:
        AuthenticationError: No principal, or a principal without a role.
        AuthorizationError: The role does not grant ``operation`` (or ``all``).
    """
    if principal is None or not principal.role:
        raise AuthenticationError("Not authenticated")
    if not is_allowed(definition, principal.role, operation):
        logger.info(
            "Denied %s on %s for role %s", operation, definition.name, principal.role
        )
        raise AuthorizationError("Forbidden: Insufficient permissions")


def requires_ownership(
    definition: ModelDefinition, principal: Principal, admin_role: str
) -> bool:
    return definition.owner_field is not None and principal.role != admin_role


def check_ownership(
    definition: ModelDefinition,
    principal: Principal,
    row: Mapping[str, Any],
    admin_role: str,
) -> None:
    """Row-level check for update and delete on an already fetched row."""
    if not requires_ownership(definition, principal, admin_role):
        return
    if row.get(definition.owner_field) != principal.id:
        raise AuthorizationError("Forbidden: You do not own this item")
