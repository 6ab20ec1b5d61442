import logging
from enum import Enum
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError, PendingRollbackError

from engconnect.config import get_settings

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    NO_CREDENTIAL = "NoCredential"
    INVALID_CREDENTIAL = "InvalidCredential"
    IDENTITY_GONE = "IdentityGone"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    OWNERSHIP_DENIED = "OwnershipDenied"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    QUIZ_NOT_ENABLED = "QuizNotEnabled"
    DUPLICATE_SUBMISSION = "DuplicateSubmission"
    VALIDATION_FAILED = "ValidationFailed"
    STORE_UNAVAILABLE = "StoreUnavailable"
    INVALID_LOGIN = "InvalidLogin"
    USERNAME_TAKEN = "UsernameTaken"
    INTERNAL_ERROR = "InternalError"


STATUS_CODES = {
    ErrorKind.NO_CREDENTIAL: 401,
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.IDENTITY_GONE: 401,
    ErrorKind.INVALID_LOGIN: 401,
    ErrorKind.ROLE_NOT_PERMITTED: 403,
    ErrorKind.OWNERSHIP_DENIED: 403,
    ErrorKind.RESOURCE_NOT_FOUND: 404,
    ErrorKind.QUIZ_NOT_ENABLED: 404,
    ErrorKind.DUPLICATE_SUBMISSION: 400,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.USERNAME_TAKEN: 400,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.INTERNAL_ERROR: 500,
}

DEFAULT_MESSAGES = {
    ErrorKind.NO_CREDENTIAL: "Not authorized, no token provided",
    ErrorKind.INVALID_CREDENTIAL: "Not authorized, token failed",
    ErrorKind.IDENTITY_GONE: "Not authorized, user not found",
    ErrorKind.ROLE_NOT_PERMITTED: "Access denied",
    ErrorKind.OWNERSHIP_DENIED: "Access denied. You can only manage problems you posted",
    ErrorKind.RESOURCE_NOT_FOUND: "Not found",
    ErrorKind.QUIZ_NOT_ENABLED: "Quiz not found or not enabled",
    ErrorKind.DUPLICATE_SUBMISSION: "Already submitted",
    ErrorKind.VALIDATION_FAILED: "Invalid request",
    ErrorKind.STORE_UNAVAILABLE: "Service temporarily unavailable, please retry",
    ErrorKind.INVALID_LOGIN: "Invalid username or password",
    ErrorKind.USERNAME_TAKEN: "User already exists",
    ErrorKind.INTERNAL_ERROR: "Internal server error",
}


def status_for(kind: ErrorKind) -> int:
    if kind == ErrorKind.DUPLICATE_SUBMISSION:
        return get_settings().duplicate_status
    return STATUS_CODES[kind]


class ApiError(Exception):
    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def status_code(self) -> int:
        return status_for(self.kind)


def error_response(kind: ErrorKind, message: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(kind),
        content={"kind": kind.value, "message": message or DEFAULT_MESSAGES[kind]},
    )


def _validation_message(exc):
    messages = []
    for error in exc.errors():
        msg = error.get("msg", "")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        else:
            location = ".".join(str(part) for part in error.get("loc", ())[1:])
            msg = f"{location}: {msg}" if location else msg
        if msg not in messages:
            messages.append(msg)
    return ", ".join(messages) or DEFAULT_MESSAGES[ErrorKind.VALIDATION_FAILED]


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return error_response(exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(ErrorKind.VALIDATION_FAILED, _validation_message(exc))

    @app.exception_handler(OperationalError)
    @app.exception_handler(PendingRollbackError)
    async def store_error_handler(request: Request, exc: Exception):
        logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(ErrorKind.STORE_UNAVAILABLE)

    @app.exception_handler(DBAPIError)
    async def driver_error_handler(request: Request, exc: DBAPIError):
        if exc.connection_invalidated:
            return await store_error_handler(request, exc)
        return await unhandled_error_handler(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(ErrorKind.INTERNAL_ERROR)
