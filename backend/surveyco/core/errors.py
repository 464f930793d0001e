import logging
import os
import signal
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from surveyco.core.config import settings

logger = logging.getLogger(__name__)

class ErrorKind(str, Enum):
    BAD_REQUEST = "BadRequest"
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    CONFLICT = "Conflict"
    MAX_PAGES_EXCEEDED = "MaxPagesExceeded"
    MAX_QUESTIONS_EXCEEDED = "MaxQuestionsExceeded"

_STATUS = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.CONFLICT: 409,
    ErrorKind.MAX_PAGES_EXCEEDED: 400,
    ErrorKind.MAX_QUESTIONS_EXCEEDED: 400,
}

class AppError(Exception):
    """Operational error raised by the domain layer.

    Carries a kind tag that maps to an HTTP status. Anything that is not an
    ``AppError`` reaching the boundary is treated as fatal.
    """

    def __init__(self, kind: ErrorKind, message: str, is_operational: bool = True):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.is_operational = is_operational

    @property
    def status_code(self) -> int:
        return _STATUS[self.kind]

def error_body(message: str, code: str) -> dict:
    return {"error": {"message": message, "code": code}}

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if not exc.is_operational:
        return await fatal_error_handler(request, exc)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.kind.value))

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content=error_body("Invalid data.", ErrorKind.BAD_REQUEST.value))

async def fatal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # an interrupted transaction may leave ambiguous state; restart instead of limping on
    logger.critical("fatal error on %s %s", request.method, request.url.path, exc_info=exc)
    if settings.exit_on_fatal_error:
        os.kill(os.getpid(), signal.SIGTERM)
    return JSONResponse(status_code=500, content=error_body("Something went wrong.", "InternalServerError"))

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, fatal_error_handler)
