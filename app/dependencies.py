"""Service construction and FastAPI dependency providers."""
import logging
from dataclasses import dataclass

from fastapi import Depends, Request

from app.config import Settings
from app.core.account_service import AccountService
from app.core.auth_gate import authenticate
from app.core.error_handling import ServiceUnavailableError
from app.core.password_manager import PasswordManager
from app.core.storage import StorageInterface, create_storage
from app.core.stores import TradeStore, UserStore
from app.core.tokens import TokenCodec
from app.core.trade_service import TradeService
from app.models.auth import AccessClaims

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler may need, built once per process."""
    settings: Settings
    storage: StorageInterface
    tokens: TokenCodec
    passwords: PasswordManager
    accounts: AccountService
    trades: TradeService

    async def close(self):
        await self.storage.close()
        logger.info("Storage closed")


async def initialize_app(settings: Settings) -> ServiceContainer:
    """Connect storage and wire the services together."""
    storage = await create_storage(
        settings.storage_backend,
        settings.redis_host,
        settings.redis_port,
        settings.redis_username,
        settings.redis_password,
        ssl=settings.redis_ssl,
        timeout=settings.redis_timeout,
        fallback=settings.storage_fallback,
    )
    logger.info("Storage initialized")

    tokens = TokenCodec(
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        access_expires=settings.access_token_expires,
        refresh_expires=settings.refresh_token_expires,
        algorithm=settings.jwt_algorithm,
    )
    passwords = PasswordManager(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )

    return ServiceContainer(
        settings=settings,
        storage=storage,
        tokens=tokens,
        passwords=passwords,
        accounts=AccountService(UserStore(storage), passwords, tokens),
        trades=TradeService(TradeStore(storage)),
    )


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServiceUnavailableError("Services not initialized")
    return services


def get_storage(services: ServiceContainer = Depends(get_services)) -> StorageInterface:
    return services.storage


def get_app_settings(services: ServiceContainer = Depends(get_services)) -> Settings:
    return services.settings


def get_token_codec(services: ServiceContainer = Depends(get_services)) -> TokenCodec:
    return services.tokens


def get_account_service(services: ServiceContainer = Depends(get_services)) -> AccountService:
    return services.accounts


def get_trade_service(services: ServiceContainer = Depends(get_services)) -> TradeService:
    return services.trades


async def get_current_user(request: Request, codec: TokenCodec = Depends(get_token_codec)) -> AccessClaims:
    """Auth gate dependency: returns the caller's claims or raises a terminal error."""
    claims = authenticate(request.headers.get("authorization"), codec)
    request.state.user = claims
    return claims
