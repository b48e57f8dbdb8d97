"""HTTP hardening headers and request logging."""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class SecurityConfig:
    """Security configuration constants."""

    SECURITY_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "0",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
    }

    # Swagger UI needs inline assets
    DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in SecurityConfig.SECURITY_HEADERS.items():
            if header == "Content-Security-Policy" and request.url.path.startswith(SecurityConfig.DOCS_PATHS):
                continue
            response.headers.setdefault(header, value)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration for each request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        logger.info(f"--> {request.method} {request.url.path}")
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start_time) * 1000
            logger.error(f"<-- {request.method} {request.url.path} failed ({elapsed:.1f}ms)")
            raise
        elapsed = (time.perf_counter() - start_time) * 1000
        logger.info(f"<-- {request.method} {request.url.path} {response.status_code} ({elapsed:.1f}ms)")
        return response
