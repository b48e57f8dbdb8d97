"""Application configuration settings."""
import os
import re
from datetime import timedelta
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator, model_validator

# Load environment variables
load_dotenv()

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: Union[str, int, timedelta]) -> timedelta:
    """Parse durations like ``"10m"``, ``"7d"`` or ``"30"`` (seconds)."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Environment
APP_ENV = os.getenv("APP_ENV", "production")
SERVICE_NAME = os.getenv("SERVICE_NAME", "Stock Trades API")

# Token settings
JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "change-me-access-secret")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "change-me-refresh-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ACCESS_EXPIRY = os.getenv("JWT_ACCESS_EXPIRY", "10m")
JWT_REFRESH_EXPIRY = os.getenv("JWT_REFRESH_EXPIRY", "7d")

# Password hashing settings (Argon2id, roughly 100-200ms per hash)
ARGON2_TIME_COST = int(os.getenv("ARGON2_TIME_COST", 3))
ARGON2_MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", 65536))
ARGON2_PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", 1))

# Storage settings
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "redis")
STORAGE_FALLBACK = _env_bool("STORAGE_FALLBACK", True)
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_USERNAME = os.getenv("REDIS_USERNAME", "") or None
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", "") or None
REDIS_SSL = _env_bool("REDIS_SSL", False)
REDIS_TIMEOUT = float(os.getenv("REDIS_TIMEOUT", 5))

# CORS settings
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
CORS_CREDENTIALS = True
CORS_METHODS = ["*"]
CORS_HEADERS = ["*"]

# Application metadata
APP_TITLE = "Stock Trades API"
APP_DESCRIPTION = "Append-only stock trade ledger with dual-token JWT authentication"
APP_VERSION = "1.0.0"

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
REQUEST_LOGGING = _env_bool("REQUEST_LOGGING", APP_ENV == "development")


class Settings(BaseModel):
    """Runtime settings; defaults come from the environment."""

    app_env: str = APP_ENV
    service_name: str = SERVICE_NAME

    jwt_access_secret: str = JWT_ACCESS_SECRET
    jwt_refresh_secret: str = JWT_REFRESH_SECRET
    jwt_algorithm: str = JWT_ALGORITHM
    access_token_expires: timedelta = parse_duration(JWT_ACCESS_EXPIRY)
    refresh_token_expires: timedelta = parse_duration(JWT_REFRESH_EXPIRY)

    argon2_time_cost: int = ARGON2_TIME_COST
    argon2_memory_cost: int = ARGON2_MEMORY_COST
    argon2_parallelism: int = ARGON2_PARALLELISM

    storage_backend: str = STORAGE_BACKEND
    storage_fallback: bool = STORAGE_FALLBACK
    redis_host: str = REDIS_HOST
    redis_port: int = REDIS_PORT
    redis_username: Optional[str] = REDIS_USERNAME
    redis_password: Optional[str] = REDIS_PASSWORD
    redis_ssl: bool = REDIS_SSL
    redis_timeout: float = REDIS_TIMEOUT

    cors_origins: List[str] = CORS_ORIGINS
    log_level: str = LOG_LEVEL
    request_logging: bool = REQUEST_LOGGING

    @field_validator("access_token_expires", "refresh_token_expires", mode="before")
    @classmethod
    def _parse_expiry(cls, v):
        return parse_duration(v)

    @field_validator("storage_backend")
    @classmethod
    def _check_backend(cls, v):
        if v not in ("redis", "memory"):
            raise ValueError("storage_backend must be 'redis' or 'memory'")
        return v

    @model_validator(mode="after")
    def _check_secrets(self):
        if not self.jwt_access_secret or not self.jwt_refresh_secret:
            raise ValueError("JWT secrets must not be empty")
        if self.jwt_access_secret == self.jwt_refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")
        return self

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
