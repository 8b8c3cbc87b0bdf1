from decimal import Decimal
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.invtrack.core.context import trace_id_of
from app.invtrack.core.error_catalog import AppError, ErrorCatalog, ErrorDefinition
from app.invtrack.core.metrics import metrics


_HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}

_LOCK_TIMEOUT_MARKERS = (
    "lock timeout",
    "deadlock detected",
    "database is locked",
    "could not obtain lock",
)


def _set_error_context(request: Request, code: str, exc: Exception | None = None) -> None:
    request.state.error_code = code
    if exc is not None:
        request.state.error_class = exc.__class__.__name__


def _is_lock_timeout(exc: Exception) -> bool:
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _LOCK_TIMEOUT_MARKERS)


def _record_idempotency_failure(request: Request, status_code: int, response_body: dict) -> None:
    context = getattr(request.state, "idempotency", None)
    if context is None:
        return
    context.record_failure(status_code=status_code, response_body=response_body)


def _json_safe(value):
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def _validation_error_details(exc: RequestValidationError) -> dict:
    errors = []
    for error in exc.errors():
        loc = list(error.get("loc", []))
        field = ".".join(str(item) for item in loc if item not in {"body", "query", "path", "header"}) or None
        errors.append(
            {
                "field": field,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "validation_error"),
                "loc": loc,
            }
        )
    return {"errors": errors}


def error_payload(request: Request, error: ErrorDefinition, details: object = None) -> dict:
    return {
        "code": error.code,
        "message": error.message,
        "details": _json_safe(details),
        "trace_id": trace_id_of(request),
    }


def error_response(code: str, message: str, details: object, trace_id: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "trace_id": trace_id,
        },
    )


def _respond(request: Request, error: ErrorDefinition, details: object, exc: Exception) -> JSONResponse:
    _set_error_context(request, error.code, exc)
    payload = error_payload(request, error, details)
    _record_idempotency_failure(request, error.status_code, payload)
    return JSONResponse(status_code=error.status_code, content=payload)


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _respond(request, exc.error, exc.details, exc)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code = _HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
        detail = exc.detail
        payload = {
            "code": code,
            "message": str(detail) if detail is not None else "HTTP error",
            "details": detail if isinstance(detail, dict) else None,
            "trace_id": trace_id_of(request),
        }
        _set_error_context(request, code, exc)
        _record_idempotency_failure(request, exc.status_code, payload)
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _respond(request, ErrorCatalog.VALIDATION_ERROR, _validation_error_details(exc), exc)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        if _is_lock_timeout(exc):
            metrics.increment_lock_wait_timeout()
            return _respond(request, ErrorCatalog.LOCK_TIMEOUT, {"type": exc.__class__.__name__}, exc)
        if isinstance(exc, OperationalError):
            return _respond(request, ErrorCatalog.DB_UNAVAILABLE, {"type": exc.__class__.__name__}, exc)
        return _respond(request, ErrorCatalog.INTERNAL_ERROR, {"type": exc.__class__.__name__}, exc)
