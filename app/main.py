"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import (
    APP_TITLE, APP_DESCRIPTION, APP_VERSION,
    CORS_CREDENTIALS, CORS_METHODS, CORS_HEADERS,
    LOG_LEVEL, Settings, get_settings
)
from app.dependencies import initialize_app
from app.core.error_handling import setup_error_handlers
from app.core.security_middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.api import auth, health, trading

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; ``settings`` defaults to the environment."""
    settings = settings or get_settings()
    logging.getLogger("app").setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management."""
        logger.info(f"Starting {settings.service_name} ({settings.app_env})...")
        try:
            app.state.services = await initialize_app(settings)
        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            raise
        logger.info("Application initialized successfully")

        yield

        logger.info("Shutting down application...")
        await app.state.services.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Authentication", "description": "Signup, login and token refresh"},
            {"name": "Trading", "description": "Append-only trade ledger"},
            {"name": "Health", "description": "Service health"},
        ]
    )

    setup_error_handlers(app, debug=settings.is_development)

    # Last added runs first
    app.add_middleware(SecurityHeadersMiddleware)
    if settings.request_logging:
        app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=CORS_CREDENTIALS,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(trading.router)

    return app


app = create_app()
