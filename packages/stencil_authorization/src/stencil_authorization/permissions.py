from abc import ABC, abstractmethod

from fastapi import Request
from stencil_auth.models import User
from stencil_auth.schemas import AnonymousUser


class BasePermission(ABC):
    message: str = "You do not have permission to perform this action"

    @abstractmethod
    async def has_permission(
        self, request: Request, user: User | AnonymousUser
    ) -> bool:
        raise NotImplementedError


class AllowAny(BasePermission):
    """Allow access to anyone (authenticated or not)."""

    async def has_permission(
        self,
        request: Request,  # noqa: ARG002
        user: User | AnonymousUser,  # noqa: ARG002
    ):
        return True


class IsAuthenticated(BasePermission):
    """Allow access only to authenticated, active users."""

    message = "Authentication credentials were not provided"

    async def has_permission(
        self,
        request: Request,  # noqa: ARG002
        user: User | AnonymousUser,
    ):
        return user.is_authenticated and user.is_active


class HasRole(BasePermission):
    """Allow access to users holding one of ``roles``."""

    def __init__(self, *roles: str):
        self.roles = frozenset(roles)
        self.message = f"Requires one of the roles: {', '.join(sorted(self.roles))}"

    async def has_permission(
        self,
        request: Request,  # noqa: ARG002
        user: User | AnonymousUser,
    ):
        return user.is_authenticated and user.role in self.roles


class IsAdmin(BasePermission):
    """Allow access only to users holding the configured admin role."""

    message = "Administrator role required"

    async def has_permission(
        self,
        request: Request,
        user: User | AnonymousUser,
    ):
        settings = getattr(request.app.state, "settings", None)
        admin_role = settings.ADMIN_ROLE if settings is not None else "Admin"
        return user.is_authenticated and user.role == admin_role
