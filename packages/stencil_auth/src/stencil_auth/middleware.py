import logging
from typing import Any, Awaitable, Callable, Final

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.types import ASGIApp

from .backend import TokenAuthenticationBackend
from .schemas import AnonymousUser

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token of an ``Authorization: Bearer <token>`` header, or ''."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return ""
    return authorization[len(BEARER_PREFIX) :].strip()


class TokenAuthenticationMiddleware:
    """
    Resolve the bearer token of each request into ``request.state.user``.

    Unknown, expired or missing tokens leave the request anonymous; rejecting
    the request is left to the permission dependencies.
    """

    def __init__(
        self,
        app: ASGIApp,
        session_maker: async_sessionmaker[AsyncSession],
    ):
        self.app: Final[ASGIApp] = app
        self.backend: Final[TokenAuthenticationBackend] = TokenAuthenticationBackend()
        self.session_maker: Final[async_sessionmaker[AsyncSession]] = session_maker

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[[], Awaitable[Any]],
        send,
    ) -> Any:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return None
        request = Request(scope)

        request.state.user = AnonymousUser()
        request.state.auth = None

        token = extract_bearer_token(request.headers.get("authorization"))
        if token:
            try:
                async with self.session_maker() as db:
                    result = await self.backend.authenticate(db, token)

                    if result.success:
                        user = result.user
                        db.expunge(user)
                        request.state.user = user
                        request.state.auth = result.extra.get("token")
                    else:
                        logger.debug(
                            "Authentication failed for token ending in ...%s: %s",
                            token[-4:],
                            result.message,
                        )
            except Exception:
                logger.exception(
                    "Authentication middleware encountered an unexpected error"
                )

        return await self.app(scope, receive, send)
