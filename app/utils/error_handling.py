"""
InvoiceFlow - Error Handling

Every error leaves the API as

    {"detail": {"code": "...", "message": "...", "timestamp": "...Z"}}

Routers mostly raise HTTPException (services signal rule violations with
ValueError and missing rows with None); the handlers below give those the
same envelope as the typed exceptions defined here.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings

logger = logging.getLogger("invoiceflow.errors")


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to clients."""

    # 4xx
    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    PLAN_REQUIRED = "PLAN_REQUIRED"
    NOT_FOUND = "NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    PLAN_LIMIT_REACHED = "PLAN_LIMIT_REACHED"

    # 5xx
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_CODES = {
    400: ErrorCode.INVALID_INPUT,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    503: ErrorCode.EXTERNAL_SERVICE_ERROR,
}


def error_body(code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build the `detail` envelope shared by all error responses."""
    body: Dict[str, Any] = {
        "code": code.value,
        "message": message,
        "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
    }
    if details:
        body["details"] = details
    return body


def error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": error_body(code, message, details)})


# ===========================================
# EXCEPTIONS
# ===========================================

class AppException(Exception):
    """Base for errors that carry their own status and code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return error_body(self.code, self.message, self.details)


class PlanRequiredException(AppException):
    """The user's effective plan does not include the feature (403)."""

    def __init__(self, required_plan: str, current_plan: str):
        super().__init__(
            code=ErrorCode.PLAN_REQUIRED,
            message=f"This feature requires the {required_plan} plan (current plan: {current_plan})",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"required_plan": required_plan, "current_plan": current_plan},
        )


class PlanLimitException(AppException):
    """A plan quota is used up for the current period (422)."""

    def __init__(self, plan: str, limit: int, resource: str = "invoices"):
        super().__init__(
            code=ErrorCode.PLAN_LIMIT_REACHED,
            message=f"The {plan} plan allows {limit} {resource} per month. Upgrade to create more.",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"plan": plan, "limit": limit, "resource": resource},
        )


class PaymentGatewayException(AppException):
    """OxaPay rejected a request or could not be reached (502)."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.PAYMENT_GATEWAY_ERROR,
            message=f"Payment gateway error: {message}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": "OxaPay"},
            original_error=original_error,
        )


# ===========================================
# HANDLERS
# ===========================================

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{request.method} {request.url.path} -> {exc.code.value}: {exc.message}",
        exc_info=exc.original_error,
    )
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {message}")

    response = error_response(exc.status_code, code, message)
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic request errors, flattened to field/message pairs."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    first = errors[0]["message"] if errors else "Request validation failed"

    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.VALIDATION_ERROR,
        first,
        {"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Database failures that escaped a service.

    Unique and foreign-key violations are client errors (duplicate invoice
    number, reference to a row that was just deleted); anything else is a 500.
    """
    logger.error(f"{request.method} {request.url.path} -> {type(exc).__name__}: {exc}", exc_info=True)

    if isinstance(exc, IntegrityError):
        reason = str(exc.orig).lower() if exc.orig else ""
        if "unique" in reason or "duplicate" in reason:
            return error_response(
                status.HTTP_409_CONFLICT, ErrorCode.RESOURCE_CONFLICT, "A record with this value already exists"
            )
        if "foreign key" in reason:
            return error_response(
                status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCode.VALIDATION_ERROR, "Referenced record does not exist"
            )

    message = "Database unavailable" if isinstance(exc, OperationalError) else "A database error occurred"
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.critical(f"{request.method} {request.url.path} -> unhandled {type(exc).__name__}: {exc}", exc_info=True)

    message = "An unexpected error occurred. Please try again later."
    if not settings.is_production:
        message = f"{type(exc).__name__}: {exc}"

    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR, message)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on the application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
