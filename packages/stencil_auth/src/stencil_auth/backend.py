import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Tuple

from typing_extensions import override

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from stencil_core import ConflictError

from .models import AccessToken, User
from .schemas import AnonymousUser, AuthenticationResult

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(days=1)


class AuthenticationBackend(ABC):
    @abstractmethod
    async def authenticate(self, *arg: Any, **kwargs: Any) -> AuthenticationResult: ...

    @abstractmethod
    async def login(self, *arg: Any, **kwargs: Any) -> AuthenticationResult: ...

    @abstractmethod
    async def logout(self, *arg: Any, **kwargs: Any) -> Any: ...


class TokenAuthenticationBackend(AuthenticationBackend):
    """Opaque bearer tokens stored in the ``auth_tokens`` table."""

    def __init__(self, token_ttl: timedelta = DEFAULT_TOKEN_TTL):
        self.token_ttl = token_ttl

    @override
    async def authenticate(
        self,
        db: AsyncSession,
        token: str,
    ) -> AuthenticationResult:
        """Verify a bearer token against the database.

        Args:
            db (AsyncSession): Database session.
            token (str): The raw bearer token.

        Returns:
            AuthenticationResult: Always returns a result object, never None.
        """
        if not token:
            return AuthenticationResult(
                success=False,
                user=AnonymousUser(),
                message="Missing Token",
                errors=["No bearer token supplied"],
            )
        stmt: Select[Tuple[AccessToken, User]] = (
            select(AccessToken, User)
            .join(User, AccessToken.user_id == User.id)
            .where(AccessToken.token == token)
        )
        result = await db.execute(stmt)
        row = result.first()
        if not row:
            return AuthenticationResult(
                success=False,
                user=AnonymousUser(),
                message="Invalid Token",
                errors=["Token does not exist in database"],
            )
        access_token: AccessToken
        user: User
        access_token, user = row

        if not user.is_active:
            return AuthenticationResult(
                success=False,
                user=AnonymousUser(),
                message="Account Inactive",
                errors=["User account is disabled"],
            )
        if access_token.is_expired:
            return AuthenticationResult(
                success=False,
                user=AnonymousUser(),
                message="Token Expired",
                errors=["The token has expired"],
            )

        return AuthenticationResult(
            success=True,
            user=user,
            message="Authenticated",
            extra={"token": access_token},
        )

    @override
    async def login(
        self,
        db: AsyncSession,
        *,
        email: str,
        password: str,
    ) -> AuthenticationResult:
        user = None
        if email and password:
            candidate = await db.scalar(
                select(User).where(User.email == email.lower()).limit(1)
            )
            if candidate and candidate.check_password(password):
                user = candidate
        if not user:
            return AuthenticationResult(
                success=False,
                user=AnonymousUser(),
                message="Login Failed",
                errors=["Invalid credentials"],
            )
        if not user.is_active:
            return AuthenticationResult(
                success=False,
                user=AnonymousUser(),
                message="Login Failed",
                errors=["Account is inactive"],
            )

        access_token = AccessToken(
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + self.token_ttl,
        )
        db.add(access_token)
        await db.commit()
        await db.refresh(access_token)
        logger.info("User %s logged in", user.id)

        return AuthenticationResult(
            success=True,
            user=user,
            message="Login Successful",
            extra={"token": access_token},
        )

    @override
    async def logout(self, db: AsyncSession, token: str) -> bool:
        """Revoke ``token``; returns False when nothing was revoked."""
        if not token:
            return False
        result = await db.execute(delete(AccessToken).where(AccessToken.token == token))
        await db.commit()
        return bool(result.rowcount)


async def count_users(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(User)) or 0


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    role: str,
) -> User:
    """Persist a new user with a hashed password.

    Raises:
        ConflictError: When the email is already registered.
    """
    user = User(email=email.lower(), role=role, is_active=True)
    user.set_password(password)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(f"A user with email '{email}' already exists") from exc
    await db.refresh(user)
    logger.info("Registered user %s with role %s", user.id, role)
    return user
