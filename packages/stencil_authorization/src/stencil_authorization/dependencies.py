from fastapi import Depends, Request
from stencil_auth.models import User
from stencil_auth.schemas import AnonymousUser
from stencil_core import AuthenticationError, AuthorizationError

from .permissions import (
    AllowAny,
    BasePermission,
    IsAdmin,
    IsAuthenticated,
)


def get_current_user(request: Request) -> User | AnonymousUser:
    user = getattr(request.state, "user", None)
    if user is None:
        return AnonymousUser()
    return user


def handle_permission_denied(
    *,
    user: User | AnonymousUser,
    permission: BasePermission,
):
    """Anonymous callers get 401, authenticated ones 403."""
    if not user.is_authenticated:
        raise AuthenticationError(permission.message)
    raise AuthorizationError(permission.message)


def permission_dependency(permissions: list[BasePermission]):
    """FastAPI dependency factory for checking permissions.

    Args:
        permissions (list[BasePermission]): A list of permissions to check.
    """

    async def permission_dependency_factory(
        request: Request, user: User | AnonymousUser = Depends(get_current_user)
    ):
        for permission in permissions:
            if not await permission.has_permission(request, user):
                handle_permission_denied(user=user, permission=permission)
        return user

    return permission_dependency_factory


allow_any = permission_dependency([AllowAny()])
auth_required = permission_dependency([IsAuthenticated()])
admin_required = permission_dependency([IsAuthenticated(), IsAdmin()])
