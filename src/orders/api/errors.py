"""HTTP translation of order errors.

Every error body has the shape ``{"code", "message", "details"}``.
Unexpected failures are logged with full detail and answered with a
generic 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from orders.errors import (
    AlreadyTerminal,
    InvalidInput,
    InvalidTransition,
    NotFound,
    NotModifiable,
    OrderError,
    PreconditionFailed,
    UpstreamUnavailable,
    VersionConflict,
)

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    NotFound: 404,
    VersionConflict: 409,
    InvalidTransition: 409,
    AlreadyTerminal: 409,
    PreconditionFailed: 422,
    NotModifiable: 422,
    InvalidInput: 422,
    UpstreamUnavailable: 503,
}


def status_code_for(exc: OrderError) -> int:
    for error_cls, status_code in STATUS_CODES.items():
        if isinstance(exc, error_cls):
            return status_code
    return 400


async def _order_error(request: Request, exc: OrderError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.warning("request_rejected", path=request.url.path, code=exc.code, status_code=status_code)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def _protean_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return await _order_error(request, InvalidInput(exc.messages))


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.setdefault(field, []).append(error["msg"])
    return await _order_error(request, InvalidInput(errors))


async def _object_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:  # noqa: ARG001
    return await _order_error(request, NotFound("Resource", request.url.path))


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"code": "INTERNAL", "message": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    """Install protean's handlers, then the order-specific ones on top."""
    register_protean_handlers(app)
    app.add_exception_handler(OrderError, _order_error)
    app.add_exception_handler(ValidationError, _protean_validation_error)
    app.add_exception_handler(ObjectNotFoundError, _object_not_found)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected_error)
