"""
Domain error taxonomy and backend error translation.

Blob store (botocore) and metadata store (SQLAlchemy) failures are translated
exactly once, at the call site that produced them, into one of the
``GatewayError`` subclasses below. Nothing above those call sites inspects
backend-specific exceptions.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

logger = logging.getLogger(__name__)

GENERIC_SERVER_MESSAGE = "Internal server error"

# S3 error codes that mean "this key/version is absent"
_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchVersion", "NotFound"})
_TIMEOUT_CODES = frozenset({"RequestTimeout", "RequestTimeoutException"})
# PostgreSQL SQLSTATE 57014 = query_canceled (statement_timeout)
_PG_QUERY_CANCELED = "57014"


class GatewayError(Exception):
    """Base class for every error the gateway surfaces to a caller."""

    kind = "InternalError"
    status_code = 500
    server_side = True

    def __init__(self, message: str = GENERIC_SERVER_MESSAGE, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def public_message(self) -> str:
        """Message safe to put in a response body."""
        return GENERIC_SERVER_MESSAGE if self.server_side else self.message

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class BadRequestError(GatewayError):
    kind = "BadRequest"
    status_code = 400
    server_side = False


class NotFoundError(GatewayError):
    kind = "NotFound"
    status_code = 404
    server_side = False


class RequestTimeoutError(GatewayError):
    """A blob store or metadata store call timed out; safe to retry."""

    kind = "TimeoutError"
    status_code = 408
    server_side = False


class StorageError(GatewayError):
    kind = "StorageError"


class DatabaseError(GatewayError):
    kind = "DatabaseError"


class InternalError(GatewayError):
    kind = "InternalError"


def _client_error_code(exc: ClientError) -> str:
    error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
    code = str(error.get("Code", ""))
    if not code:
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") if isinstance(exc.response, dict) else None
        code = str(status or "")
    return code


def map_storage_error(exc: BaseException, *, operation: str, key: str | None = None) -> GatewayError:
    """Classify a blob store failure."""
    if isinstance(exc, GatewayError):
        return exc
    detail = f"{operation} key={key}: {type(exc).__name__}: {exc}"
    if isinstance(exc, ClientError):
        code = _client_error_code(exc)
        if code in _NOT_FOUND_CODES:
            return NotFoundError("Object not found", detail=detail)
        if code in _TIMEOUT_CODES:
            return RequestTimeoutError("Storage request timed out", detail=detail)
        return StorageError(detail=detail)
    if isinstance(exc, ConnectTimeoutError | ReadTimeoutError | asyncio.TimeoutError):
        return RequestTimeoutError("Storage request timed out", detail=detail)
    if isinstance(exc, BotoCoreError):
        return StorageError(detail=detail)
    return InternalError(detail=detail)


def map_database_error(exc: BaseException, *, operation: str) -> GatewayError:
    """Classify a metadata store failure."""
    if isinstance(exc, GatewayError):
        return exc
    detail = f"{operation}: {type(exc).__name__}: {exc}"
    if isinstance(exc, PoolTimeoutError):
        return RequestTimeoutError("Database request timed out", detail=detail)
    if isinstance(exc, DBAPIError) and getattr(exc.orig, "sqlstate", None) == _PG_QUERY_CANCELED:
        return RequestTimeoutError("Database request timed out", detail=detail)
    if isinstance(exc, SQLAlchemyError):
        return DatabaseError(detail=detail)
    return InternalError(detail=detail)


@contextmanager
def translate_storage_errors(operation: str, key: str | None = None) -> Iterator[None]:
    try:
        yield
    except GatewayError:
        raise
    except (ClientError, BotoCoreError, asyncio.TimeoutError) as e:
        raise map_storage_error(e, operation=operation, key=key) from e


@contextmanager
def translate_database_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except GatewayError:
        raise
    except SQLAlchemyError as e:
        raise map_database_error(e, operation=operation) from e


def log_gateway_error(exc: GatewayError, *, method: str, path: str) -> None:
    """Log server-side failures in full; client errors get a single info line."""
    if exc.server_side:
        cause = exc.__cause__ or exc
        logger.error(
            "%s on %s %s: %s",
            exc.kind,
            method,
            path,
            exc,
            exc_info=(type(cause), cause, cause.__traceback__),
        )
    else:
        logger.info("%s on %s %s: %s", exc.kind, method, path, exc)
