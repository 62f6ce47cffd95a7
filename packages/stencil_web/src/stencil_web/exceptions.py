import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from stencil_core import StencilError

logger = logging.getLogger(__name__)


async def handle_stencil_error(request: Request, exc: StencilError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StencilError, handle_stencil_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
