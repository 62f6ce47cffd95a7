from .backend import (
    AuthenticationBackend,
    TokenAuthenticationBackend,
    count_users,
    create_user,
)
from .hasher import hash_password, verify_password
from .middleware import TokenAuthenticationMiddleware, extract_bearer_token
from .models import AccessToken, User
from .schemas import (
    AnonymousUser,
    AuthenticationResult,
    LoginSchema,
    Principal,
    TokenResponse,
    UserCreateSchema,
    UserSchema,
)

__all__ = [
    "AccessToken",
    "AnonymousUser",
    "AuthenticationBackend",
    "AuthenticationResult",
    "LoginSchema",
    "Principal",
    "TokenAuthenticationBackend",
    "TokenAuthenticationMiddleware",
    "TokenResponse",
    "User",
    "UserCreateSchema",
    "UserSchema",
    "count_users",
    "create_user",
    "extract_bearer_token",
    "hash_password",
    "verify_password",
]
