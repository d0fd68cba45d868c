"""Global exception handlers.

SkillSwapError becomes its own envelope, FastAPI request validation becomes a
400 with field details, driver failures become a 503, and anything else is a
500 that leaks nothing.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from errors import DatabaseError, ErrorSeverity, SkillSwapError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_database_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(SkillSwapError)
    async def skillswap_error_handler(request: Request, exc: SkillSwapError):
        log = logger.error if exc.http_status >= 500 else logger.info
        log(
            f"{type(exc).__name__}: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_database_error_handler(app: FastAPI) -> None:

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        logger.error(
            f"Database error on {request.url.path}: {exc}",
            extra={"error_code": "DATABASE_ERROR", "path": request.url.path},
        )
        err = DatabaseError("Database unavailable", "query")
        return JSONResponse(status_code=err.http_status, content=err.to_response())


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.WARNING.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
