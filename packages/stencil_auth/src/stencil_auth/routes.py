"""
HTTP endpoints for registering users and exchanging credentials for tokens.

Mounted by the application under ``{API_PREFIX}/auth``.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from stencil_authorization.dependencies import auth_required, get_current_user
from stencil_core import (
    AuthenticationError,
    AuthorizationError,
    StencilSettings,
    ValidationError,
    get_settings,
)
from stencil_db import get_db

from .backend import TokenAuthenticationBackend, count_users, create_user
from .middleware import extract_bearer_token
from .models import User
from .schemas import (
    AnonymousUser,
    LoginSchema,
    Principal,
    TokenResponse,
    UserCreateSchema,
    UserSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_token_backend(
    settings: StencilSettings = Depends(get_settings),
) -> TokenAuthenticationBackend:
    return TokenAuthenticationBackend(
        token_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserCreateSchema,
    db: AsyncSession = Depends(get_db),
    settings: StencilSettings = Depends(get_settings),
    actor: User | AnonymousUser = Depends(get_current_user),
) -> Principal:
    role = payload.role or settings.DEFAULT_ROLE
    if role not in settings.ROLES:
        raise ValidationError(
            f"Unknown role '{role}'. Expected one of: {', '.join(settings.ROLES)}"
        )

    # The very first account bootstraps the platform and may pick any role.
    if role != settings.DEFAULT_ROLE and await count_users(db) > 0:
        if not actor.is_authenticated or actor.role != settings.ADMIN_ROLE:
            raise AuthorizationError(
                f"Only {settings.ADMIN_ROLE} users may assign the '{role}' role"
            )

    user = await create_user(
        db, email=payload.email, password=payload.password, role=role
    )
    return Principal.model_validate(user)


@router.post("/login")
async def login(
    payload: LoginSchema,
    db: AsyncSession = Depends(get_db),
    backend: TokenAuthenticationBackend = Depends(get_token_backend),
) -> TokenResponse:
    result = await backend.login(db, email=payload.email, password=payload.password)
    if not result.success:
        logger.info("Login failed for %s: %s", payload.email, result.errors)
        raise AuthenticationError("Invalid credentials")

    access_token = result.extra["token"]
    return TokenResponse(
        token=access_token.token,
        expires_at=access_token.expires_at,
        user=UserSchema.model_validate(result.user),
    )


@router.post("/logout")
async def logout(
    request: Request,
    _user: User = Depends(auth_required),
    db: AsyncSession = Depends(get_db),
    backend: TokenAuthenticationBackend = Depends(get_token_backend),
) -> dict[str, bool]:
    token = extract_bearer_token(request.headers.get("authorization"))
    return {"success": await backend.logout(db, token)}


@router.get("/me")
async def me(user: User = Depends(auth_required)) -> Principal:
    return Principal.model_validate(user)
