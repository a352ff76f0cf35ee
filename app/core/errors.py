"""
Central error handling for the HR attendance engine

Engine operations raise one of the EngineError subclasses below. They carry a
machine-readable ``code`` and a ``context`` dict; the handlers at the bottom of
this module are the only place they become HTTP responses.
"""
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """Base class for every failure the attendance engine reports on purpose."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "engine_error"

    def __init__(self, code: Optional[str] = None, **context: Any) -> None:
        self.code = code or self.default_code
        self.context: Dict[str, Any] = context
        super().__init__(self.code)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, context={self.context!r})"


class ConflictError(EngineError):
    """An invariant or state-dependent business rule blocks the operation."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class NotFoundError(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class InvalidStateError(EngineError):
    """The entity is in a state that forbids the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_state"


class ImmutableError(EngineError):
    """A finalized approval workflow, or the session it covers, was touched through the wrong path."""

    status_code = status.HTTP_423_LOCKED
    default_code = "immutable"


class UnauthorizedError(EngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "unauthorized"


_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    """
    Handle EngineError with the same JSON envelope as HTTPException

    Args:
        request: FastAPI request object
        exc: EngineError instance

    Returns:
        JSONResponse carrying the error code and its context
    """
    logger.debug("engine error on %s: %r", request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "status_code": exc.status_code,
            "detail": exc.code,
            "code": exc.code,
            "context": exc.context,
            "path": str(request.url.path)
        },
        headers=_CORS_HEADERS,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "status_code": exc.status_code,
            "detail": exc.detail,
            "path": str(request.url.path)
        },
        headers=_CORS_HEADERS,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "detail": "Validation error: Invalid request data",
                "path": str(request.url.path)
            }
        )

    # Sanitize for JSON: e.g. ctx.error ValueError -> str
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "status_code": 422,
            "detail": "Validation error",
            "errors": errors,
            "path": str(request.url.path)
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "status_code": 500,
                "detail": "Internal server error",
                "path": str(request.url.path)
            },
            headers=_CORS_HEADERS,
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": True,
            "status_code": 500,
            "detail": str(exc),
            "path": str(request.url.path),
            "traceback": traceback.format_exc() if settings.APP_ENV == "local" else None
        },
        headers=_CORS_HEADERS,
    )
