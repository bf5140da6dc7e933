"""HTTP surface for the spaced-repetition scheduler."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.srs import router as srs_router
from src.srs.errors import ConflictError, NotFoundError, SRSError, StorageError, ValidationError
from src.srs.scheduler import ReviewScheduler

LOGGER = logging.getLogger(__name__)

_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    StorageError: 503,
}


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def _handle_srs_error(request: Request, exc: SRSError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        LOGGER.error(
            "SRS request failed: %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        message = "Storage temporarily unavailable" if status_code == 503 else "Internal server error"
    else:
        message = str(exc)
    return JSONResponse(status_code=status_code, content=error_body(exc.code, message))


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content=error_body(ValidationError.code, details))


def create_app(scheduler: ReviewScheduler, title: str = "Study SRS") -> FastAPI:
    """Build the FastAPI application around an already wired scheduler."""
    app = FastAPI(title=title)
    app.state.scheduler = scheduler
    app.add_exception_handler(SRSError, _handle_srs_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.include_router(srs_router)
    return app


__all__ = ["create_app"]
