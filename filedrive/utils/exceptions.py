import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DriveError(Exception):
    """Base class for errors raised by the drive services."""

    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DriveError):
    default_message = "Invalid request data"


class UnauthorizedError(DriveError):
    default_message = "Could not validate credentials"


class ForbiddenError(DriveError):
    default_message = "You do not have permission to access this resource"


class NotFoundError(DriveError):
    default_message = "Item not found"


class ConflictError(DriveError):
    default_message = "Item already exists"


class InvariantViolation(DriveError):
    """Internal state the services assume can never happen."""

    default_message = "Internal server error"


STATUS_CODES: dict[type[DriveError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvariantViolation: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(exc: DriveError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(
    status_code: int, message: str, headers: dict | None = None, **extra
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": message, **extra}, headers=headers
    )


async def drive_error_handler(request: Request, exc: DriveError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc
        )
        # Internal details stay in the log
        return error_response(status_code, DriveError.default_message)

    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(status_code, exc.message, headers=headers)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return error_response(
        status.HTTP_400_BAD_REQUEST, "Validation failed", details=details
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception(
        "Database error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DriveError, drive_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
