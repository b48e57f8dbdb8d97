"""Error taxonomy and exception handlers."""
import logging
import traceback
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ValidationFailedError(Exception):
    """Malformed or out-of-range input."""

    def __init__(self, message: str = "Validation failed", details: Optional[str] = None):
        super().__init__(message)
        self.details = details


class AuthenticationError(Exception):
    """Missing, expired or invalid token, or bad credentials."""
    pass


class ConflictError(Exception):
    """Duplicate unique key."""
    pass


class ResourceNotFoundError(Exception):
    """Exception for missing resources."""
    pass


class MethodNotAllowedError(Exception):
    """Operation is never permitted on the target resource."""
    pass


class InternalError(Exception):
    """Unexpected server-side failure."""
    pass


class TokenVerificationError(InternalError):
    """Token verification failed for a reason other than expiry or a bad signature."""
    pass


class ServiceUnavailableError(Exception):
    """Exception for service unavailability."""
    pass


class ErrorResponse:
    """Standardized error response format."""

    def __init__(self,
                 error_code: str,
                 message: str,
                 details: Optional[Any] = None,
                 request_id: Optional[str] = None,
                 timestamp: Optional[datetime] = None,
                 extra: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details
        self.request_id = request_id or str(uuid.uuid4())
        self.timestamp = timestamp or datetime.now(timezone.utc)
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        response = {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "request_id": self.request_id,
                "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
                **self.extra,
            }
        }
        if self.details:
            response["error"]["details"] = self.details
        return response


class ErrorLogger:
    """Centralized error logging with security considerations."""

    @staticmethod
    def _context(request: Request) -> Dict[str, Any]:
        return {
            "method": request.method,
            "url": str(request.url),
            "user_agent": request.headers.get("user-agent", "Unknown"),
            "ip_address": request.client.host if request.client else "Unknown",
        }

    @staticmethod
    def log_error(error: Exception, request: Request, exc_info: bool = False) -> str:
        """Log error with request context; returns the error id."""
        error_id = str(uuid.uuid4())
        context = {
            "error_id": error_id,
            "error_type": type(error).__name__,
            "error_message": str(error),
            **ErrorLogger._context(request),
        }
        if exc_info:
            logger.error(f"Error {error_id}: {context}", exc_info=error,
                         extra={"error_context": context})
        else:
            logger.info(f"Request error {error_id}: {context}",
                        extra={"error_context": context})
        return error_id

    @staticmethod
    def log_security_event(event_type: str, details: Dict[str, Any], request: Request) -> str:
        """Log security-related events."""
        event_id = str(uuid.uuid4())
        security_context = {
            "event_id": event_id,
            "event_type": event_type,
            "details": details,
            **ErrorLogger._context(request),
        }
        logger.warning(
            f"Security Event {event_id}: {event_type} {details}",
            extra={"security_context": security_context}
        )
        return event_id


HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def _json(status_code: int, error: ErrorResponse, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.to_dict(), headers=headers)


def setup_error_handlers(app: FastAPI, debug: bool = False):
    """Register the exception handlers mapping the taxonomy to HTTP responses."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Framework-raised HTTP errors, including unmatched routes.

        A known path with an unsupported method is an unmatched route too;
        the ledger's own 405s come from ``MethodNotAllowedError`` instead.
        """
        error_id = ErrorLogger.log_error(exc, request)
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            error = ErrorResponse(
                error_code="NOT_FOUND",
                message="Route not found",
                request_id=error_id,
                extra={"path": request.url.path, "method": request.method},
            )
            return _json(status.HTTP_404_NOT_FOUND, error)

        error = ErrorResponse(
            error_code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            message=str(exc.detail),
            request_id=error_id,
        )
        return _json(exc.status_code, error, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Schema failures on body, query or path are reported as 400."""
        error_id = ErrorLogger.log_error(exc, request)

        error_details = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            error_details.append(f"{field}: {error['msg']}")

        error = ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Validation failed",
            details="; ".join(error_details),
            request_id=error_id
        )
        return _json(status.HTTP_400_BAD_REQUEST, error)

    @app.exception_handler(ValidationFailedError)
    async def validation_failed_handler(request: Request, exc: ValidationFailedError):
        error_id = ErrorLogger.log_error(exc, request)
        error = ErrorResponse(
            error_code="VALIDATION_ERROR",
            message=str(exc),
            details=exc.details,
            request_id=error_id
        )
        return _json(status.HTTP_400_BAD_REQUEST, error)

    @app.exception_handler(AuthenticationError)
    async def authentication_exception_handler(request: Request, exc: AuthenticationError):
        error_id = ErrorLogger.log_security_event(
            "AUTHENTICATION_FAILURE",
            {"reason": str(exc)},
            request
        )
        error = ErrorResponse(
            error_code="UNAUTHORIZED",
            message=str(exc),
            request_id=error_id
        )
        return _json(status.HTTP_401_UNAUTHORIZED, error, {"WWW-Authenticate": "Bearer"})

    @app.exception_handler(ConflictError)
    async def conflict_exception_handler(request: Request, exc: ConflictError):
        error_id = ErrorLogger.log_error(exc, request)
        error = ErrorResponse(
            error_code="CONFLICT",
            message=str(exc),
            request_id=error_id
        )
        return _json(status.HTTP_409_CONFLICT, error)

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_exception_handler(request: Request, exc: ResourceNotFoundError):
        error_id = ErrorLogger.log_error(exc, request)
        error = ErrorResponse(
            error_code="RESOURCE_NOT_FOUND",
            message=str(exc),
            request_id=error_id
        )
        return _json(status.HTTP_404_NOT_FOUND, error)

    @app.exception_handler(MethodNotAllowedError)
    async def method_not_allowed_exception_handler(request: Request, exc: MethodNotAllowedError):
        error_id = ErrorLogger.log_security_event(
            "LEDGER_MUTATION_REJECTED",
            {"reason": str(exc)},
            request
        )
        error = ErrorResponse(
            error_code="METHOD_NOT_ALLOWED",
            message=str(exc),
            request_id=error_id
        )
        return _json(status.HTTP_405_METHOD_NOT_ALLOWED, error)

    @app.exception_handler(ServiceUnavailableError)
    async def service_unavailable_exception_handler(request: Request, exc: ServiceUnavailableError):
        error_id = ErrorLogger.log_error(exc, request, exc_info=True)
        error = ErrorResponse(
            error_code="SERVICE_UNAVAILABLE",
            message="Service temporarily unavailable. Please try again later",
            request_id=error_id
        )
        return _json(status.HTTP_503_SERVICE_UNAVAILABLE, error, {"Retry-After": "30"})

    @app.exception_handler(InternalError)
    async def internal_exception_handler(request: Request, exc: InternalError):
        error_id = ErrorLogger.log_error(exc, request, exc_info=True)
        error = ErrorResponse(
            error_code="INTERNAL_ERROR",
            message=str(exc) or "Internal server error",
            details=_stack(exc) if debug else None,
            request_id=error_id
        )
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, error)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions."""
        error_id = ErrorLogger.log_error(exc, request, exc_info=True)

        # Stack traces only leave the process in development mode
        error = ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="Internal server error",
            details=_stack(exc) if debug else None,
            request_id=error_id
        )
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, error)


def _stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
