"""Request id, timing and CORS middleware."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from stencil_auth import TokenAuthenticationMiddleware
from stencil_core import StencilSettings, scoped_correlation_id
from stencil_db import Database

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, log it and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        with scoped_correlation_id(request_id):
            response: Response = await call_next(request)

            duration = round((time.perf_counter() - start_time) * 1000, 2)
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Response-Time-Ms"] = str(duration)

            logger.info(
                "%s %s %s %sms",
                request.method,
                request.url.path,
                response.status_code,
                duration,
            )
        return response


def setup_middleware(
    app: FastAPI, settings: StencilSettings, database: Database
) -> None:
    """Install middleware; the last one added runs first."""
    app.add_middleware(
        TokenAuthenticationMiddleware,  # ty:ignore[invalid-argument-type]
        session_maker=database.session_factory,
    )

    if settings.ENABLE_CORS:
        app.add_middleware(
            CORSMiddleware,  # ty:ignore[invalid-argument-type]
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if settings.ENABLE_REQUEST_ID:
        app.add_middleware(RequestIdMiddleware)  # ty:ignore[invalid-argument-type]
