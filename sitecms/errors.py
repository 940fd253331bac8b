# errors.py - HTTP error types and the handler boundary
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from pymongo.errors import ConnectionFailure

from .config import settings

T = TypeVar("T")


class BadRequest(HTTPException):
    def __init__(self, message: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class Unauthorized(HTTPException):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFound(HTTPException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=message)


class MethodNotAllowed(HTTPException):
    def __init__(self, message: str = "Method Not Allowed"):
        super().__init__(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail=message)


def internal_error(exc: Exception, context: str) -> HTTPException:
    """Log an unexpected failure and build the 500 sent to the client.

    Production deployments only ever see the generic message.
    """
    logger.error(f"{context} error: {exc!r}")
    if settings.is_production:
        message = "Internal server error"
    else:
        message = str(exc) or "Internal server error"
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


async def guarded(gateway, context: str, action: Callable[[Any], Awaitable[T]]) -> T:
    """Run one validated action against the database behind the handler error boundary."""
    try:
        return await action(gateway.get_database())
    except HTTPException:
        raise
    except ConnectionFailure as e:
        gateway.invalidate()
        raise internal_error(e, context)
    except Exception as e:
        raise internal_error(e, context)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )
