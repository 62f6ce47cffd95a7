"""
Process-wide logging for Stencil.

Every record carries a UTC timestamp and, inside a request, the request's
correlation id. The web layer scopes the id with :func:`scoped_correlation_id`.
"""

import logging
import sys
import time
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from contextvars import ContextVar, Token
from logging.handlers import RotatingFileHandler
from pathlib import Path

correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(trace_str)s%(name)s: %(message)s"

# The request middleware already logs one line per request.
QUIET_LOGGERS = ("uvicorn.access",)


class TraceFormatter(logging.Formatter):
    """Prefixes records with ``[correlation-id]`` and renders times in UTC."""

    converter = time.gmtime

    def formatTime(self, record, datefmt=None):  # noqa: N802
        created = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, created)
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", created)
        return f"{stamp}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        cid = correlation_id.get()
        # distinct attribute name so it never collides with extra={}
        record.trace_str = f"[{cid}] " if cid else ""
        return super().format(record)


def _file_handler(
    log_file: str | Path, max_bytes: int, backup_count: int
) -> logging.Handler | None:
    path = Path(log_file).resolve()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    except OSError as exc:
        # read-only containers
        sys.stderr.write(f"Failed to set up log file {path}: {exc}\n")
        return None


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | Path | None = None,
    *,
    max_bytes: int = 10_485_760,
    backup_count: int = 10,
    capture_roots: bool = True,
    module_name: str = "stencil",
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure logging once per process.

    Args:
        level: Level name (``"info"``, ``"DEBUG"``) or number.
        log_file: Optional path of a rotating log file.
        capture_roots: Configure the root logger. When False only
            ``module_name`` is configured and stops propagating.
        quiet_loggers: Loggers raised to WARNING.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    target = logging.getLogger() if capture_roots else logging.getLogger(module_name)
    target.handlers.clear()
    target.setLevel(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        file_handler = _file_handler(log_file, max_bytes, backup_count)
        if file_handler is not None:
            handlers.append(file_handler)

    formatter = TraceFormatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        target.addHandler(handler)

    if not capture_roots:
        target.propagate = False

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_correlation_id(value: str) -> Token:
    return correlation_id.set(value)


def reset_correlation_id(token: Token) -> None:
    correlation_id.reset(token)


@contextmanager
def scoped_correlation_id(value: str) -> Generator[None, None, None]:
    """
    Bind ``value`` as the correlation id for the duration of the block.

    >>> with scoped_correlation_id("req-123"):
    ...     logger.info("tagged")
    """
    token = set_correlation_id(value)
    try:
        yield
    finally:
        reset_correlation_id(token)
