from .dependencies import (
    admin_required,
    allow_any,
    auth_required,
    get_current_user,
    permission_dependency,
)
from .permissions import AllowAny, BasePermission, HasRole, IsAdmin, IsAuthenticated

__all__ = [
    "AllowAny",
    "BasePermission",
    "HasRole",
    "IsAdmin",
    "IsAuthenticated",
    "admin_required",
    "allow_any",
    "auth_required",
    "get_current_user",
    "permission_dependency",
]
