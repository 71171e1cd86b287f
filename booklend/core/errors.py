"""Domain error taxonomy and its mapping onto HTTP responses.

Services raise the ``LibraryError`` subclasses below; the API layer turns each
one into a status code and a ``{"detail": ...}`` body.  Raw storage errors are
converted to ``TransientError`` before they reach a client so driver messages
never leak.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

logger = logging.getLogger("booklend.errors")


class LibraryError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LibraryError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(LibraryError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(LibraryError):
    status_code = 403
    default_message = "Access denied"


class NotFound(LibraryError):
    status_code = 404
    default_message = "Not found"


class Conflict(LibraryError):
    status_code = 409
    default_message = "Conflict"


class TransientError(LibraryError):
    status_code = 503
    default_message = "Storage temporarily unavailable, please retry"


@contextmanager
def storage_errors(db: Session):
    """Roll back and re-raise driver timeouts/lock errors as ``TransientError``."""
    try:
        yield
    except (OperationalError, PoolTimeoutError) as exc:
        db.rollback()
        logger.warning(f"Storage call failed: {exc.__class__.__name__}")
        raise TransientError() from exc


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.default_message
    err = errors[0]
    loc = [str(part) for part in err.get("loc", ()) if part != "body"]
    field = ".".join(loc)
    if err.get("type") == "missing":
        return f"Missing required field: {field}" if field else "Request body required"
    return f"{field}: {err.get('msg')}" if field else err.get("msg", ValidationError.default_message)


def _error_response(exc: LibraryError) -> JSONResponse:
    headers = {"Retry-After": "1"} if isinstance(exc, TransientError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return _error_response(exc)

    # reads are not wrapped in storage_errors; their session is rolled back on close
    @app.exception_handler(OperationalError)
    @app.exception_handler(PoolTimeoutError)
    async def storage_error_handler(request: Request, exc: Exception):
        logger.warning(f"Storage call failed on {request.method} {request.url.path}: {exc.__class__.__name__}")
        return _error_response(TransientError())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(ValidationError(_first_validation_message(exc)))
