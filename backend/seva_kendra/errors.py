"""Domain errors and their translation to HTTP responses.

Services raise these exceptions; `register_error_handlers` maps each
type to a status code and the uniform `{success: false, ...}` body the
portal frontend expects. Client errors carry a `message`, server errors
carry an `error`.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("seva_kendra.errors")


class SevaKendraError(Exception):
    """Base class for all domain errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SevaKendraError):
    """A required field is missing or a value is not accepted."""
    status_code = 400


class ConflictError(SevaKendraError):
    """A uniqueness rule was violated (e.g. phone already registered)."""
    status_code = 400


class AuthError(SevaKendraError):
    """Credentials or token could not be verified."""
    status_code = 401


class NotFoundError(SevaKendraError):
    status_code = 404


class InternalError(SevaKendraError):
    """The persistence layer failed; `message` is the underlying error text."""
    status_code = 500


def error_body(status_code: int, text: str) -> dict:
    key = "error" if status_code >= 500 else "message"
    return {"success": False, key: text}


def register_error_handlers(app: FastAPI) -> None:
    """Install exception handlers for domain, request and unexpected errors."""

    @app.exception_handler(SevaKendraError)
    async def handle_domain_error(request: Request, exc: SevaKendraError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        else:
            logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        message = "; ".join(problems) or "Invalid request"
        logger.warning("%s %s rejected (400): %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content=error_body(400, message))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body(500, str(exc)))
