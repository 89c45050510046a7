from __future__ import annotations

from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photocap.api.schemas import ErrorBody, ErrorDetail
from photocap.logging import get_logger
from photocap.service.errors import ErrorKind, ServiceError, Unauthorized
from photocap.storage.errors import ConstraintViolation

logger = get_logger(__name__)

_STATUS_TO_KIND = {
    400: ErrorKind.VALIDATION_FAILED,
    401: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.DUPLICATE_IDENTITY,
}

_PYDANTIC_PREFIXES = ("Value error, ", "Assertion failed, ")


def _kind_for_status(status_code: int) -> ErrorKind:
    return _STATUS_TO_KIND.get(status_code, ErrorKind.INTERNAL)


def _error_response(
    status_code: int,
    message: str,
    kind: ErrorKind,
    errors: Optional[List[dict]] = None,
) -> JSONResponse:
    body = ErrorBody(
        code=kind.value,
        message=message,
        errors=[ErrorDetail(**item) for item in errors] if errors else None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _field_errors(exc: RequestValidationError) -> List[dict]:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        message = str(err.get("msg", "invalid value"))
        for prefix in _PYDANTIC_PREFIXES:
            if message.startswith(prefix):
                message = message[len(prefix) :]
        details.append({"field": ".".join(loc) or "body", "message": message})
    return details


def _cookie_secure(request: Request) -> bool:
    runtime = getattr(request.app.state, "runtime", None)
    return runtime.settings.cookie_secure if runtime is not None else True


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain, storage and validation errors onto the uniform error body."""

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = _field_errors(exc)
        logger.info(
            "request_validation_failed",
            path=request.url.path,
            method=request.method,
            fields=[item["field"] for item in errors],
        )
        return _error_response(400, "Validation failed", ErrorKind.VALIDATION_FAILED, errors)

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "service_error",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_code=exc.kind.value,
            message=exc.message,
        )
        response = _error_response(exc.status_code, exc.message, exc.kind, exc.errors)
        if isinstance(exc, Unauthorized) and exc.clear_cookie:
            response.delete_cookie(
                exc.clear_cookie,
                path="/",
                secure=_cookie_secure(request),
                httponly=True,
                samesite="strict",
            )
        return response

    @app.exception_handler(ConstraintViolation)
    async def handle_constraint_violation(request: Request, exc: ConstraintViolation):
        logger.warning(
            "constraint_violation",
            path=request.url.path,
            method=request.method,
            message=exc.message,
            field=exc.field,
        )
        return _error_response(409, "Resource already exists", ErrorKind.DUPLICATE_IDENTITY)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(
                "http_error",
                path=request.url.path,
                method=request.method,
                status_code=exc.status_code,
            )
        message = exc.detail if isinstance(exc.detail, str) else "http error"
        return _error_response(exc.status_code, message, _kind_for_status(exc.status_code))

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.exception(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )
        return _error_response(500, "Internal server error", ErrorKind.INTERNAL)
