"""Signup, login and token refresh."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from app.core.error_handling import (
    AuthenticationError, ConflictError, TokenVerificationError, ValidationFailedError
)
from app.core.password_manager import PasswordManager
from app.core.stores import DuplicateEmailError, UserStore
from app.core.tokens import TokenCodec, TokenError, TokenErrorKind
from app.models.user import UserRecord, UserResponse

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

ACCOUNT_EXISTS = "User with this email already exists"
INVALID_CREDENTIALS = "Invalid email or password"
REFRESH_TOKEN_REQUIRED = "Refresh token required"
REFRESH_TOKEN_EXPIRED = "Refresh token expired"
REFRESH_TOKEN_INVALID = "Invalid refresh token"
USER_NOT_FOUND = "User not found"


async def run_in_thread(func, *args):
    """Helper to run synchronous functions in thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


@dataclass
class AuthResult:
    user: UserResponse
    access_token: str
    refresh_token: str


class AccountService:
    """Account lifecycle on top of the user store and the token codec."""

    def __init__(self, users: UserStore, passwords: PasswordManager, tokens: TokenCodec):
        self.users = users
        self.passwords = passwords
        self.tokens = tokens

    def _issue_pair(self, user: UserRecord) -> AuthResult:
        return AuthResult(
            user=user.to_response(),
            access_token=self.tokens.issue_access_token(user.id, user.email),
            refresh_token=self.tokens.issue_refresh_token(user.id),
        )

    async def signup(self, email: str, password: str) -> AuthResult:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailedError(
                details=f"password: must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        if await self.users.find_by_email(email) is not None:
            raise ConflictError(ACCOUNT_EXISTS)

        password_hash = await run_in_thread(self.passwords.hash_password, password)
        try:
            user = await self.users.create(email, password_hash)
        except DuplicateEmailError as e:
            # Lost a race with a concurrent signup for the same email
            raise ConflictError(ACCOUNT_EXISTS) from e

        return self._issue_pair(user)

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self.users.find_by_email(email)
        if user is None:
            await run_in_thread(self.passwords.dummy_verify, password)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not await run_in_thread(self.passwords.verify_password, password, user.password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS)

        if self.passwords.needs_rehash(user.password_hash):
            new_hash = await run_in_thread(self.passwords.hash_password, password)
            await self.users.update_password_hash(user.id, new_hash)
            logger.info(f"Password rehashed for account {user.id}")

        return self._issue_pair(user)

    async def refresh(self, refresh_token: Optional[str]) -> str:
        """Mint a new access token; the refresh token itself is not rotated."""
        if not refresh_token:
            raise AuthenticationError(REFRESH_TOKEN_REQUIRED)

        try:
            claims = self.tokens.verify_refresh_token(refresh_token)
        except TokenError as e:
            if e.kind is TokenErrorKind.EXPIRED:
                raise AuthenticationError(REFRESH_TOKEN_EXPIRED) from e
            if e.kind is TokenErrorKind.INVALID_SIGNATURE:
                raise AuthenticationError(REFRESH_TOKEN_INVALID) from e
            raise TokenVerificationError("Token verification failed") from e

        # The account may have been removed after the token was issued
        user = await self.users.find_by_id(claims.user_id)
        if user is None:
            raise AuthenticationError(USER_NOT_FOUND)

        return self.tokens.issue_access_token(user.id, user.email)
