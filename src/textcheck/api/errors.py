"""Map domain errors to HTTP responses at the service boundary."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from textcheck.errors import NotFoundError, TextcheckError, ValidationFailedError

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI) -> None:
    """Register the exception handlers shared by both services.

    Not found -> 404, rejected upload -> 400, everything else -> a generic 500
    whose details only go to the log. A malformed id in the path cannot name
    an existing resource and is reported as not found.
    """

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        if any(tuple(error.get("loc", ()))[:1] == ("path",) for error in exc.errors()):
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not found"})
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not found"})

    @app.exception_handler(ValidationFailedError)
    async def validation_failed(request: Request, exc: ValidationFailedError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(TextcheckError)
    async def internal_error(request: Request, exc: TextcheckError) -> JSONResponse:
        logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
        return _internal_error_response()

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("%s %s failed in the database", request.method, request.url.path, exc_info=exc)
        return _internal_error_response()


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
