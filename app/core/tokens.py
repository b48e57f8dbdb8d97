"""Issuing and verifying access and refresh tokens."""
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from app.models.auth import AccessClaims, RefreshClaims

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenErrorKind(str, Enum):
    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid_signature"
    UNKNOWN = "unknown"


class TokenError(Exception):
    """Token could not be verified; ``kind`` says why."""

    def __init__(self, kind: TokenErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind


class TokenCodec:
    """Signs and verifies JWTs, with a separate secret per token kind."""

    def __init__(self,
                 access_secret: str,
                 refresh_secret: str,
                 access_expires: timedelta = timedelta(minutes=10),
                 refresh_expires: timedelta = timedelta(days=7),
                 algorithm: str = "HS256"):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires
        self.algorithm = algorithm

    def secret_for(self, kind: TokenKind) -> str:
        return self._secrets[kind]

    def _encode(self, claims: Dict[str, Any], kind: TokenKind, expires_delta: timedelta,
                issued_at: Optional[datetime]) -> str:
        now = issued_at or datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "iat": now,
            "exp": now + expires_delta,
            "token_type": kind.value,
        })
        return jwt.encode(to_encode, self.secret_for(kind), algorithm=self.algorithm)

    def issue_access_token(self, user_id: int, email: str,
                           issued_at: Optional[datetime] = None) -> str:
        """Create a short-lived access token carrying the account id and email."""
        return self._encode({"sub": str(user_id), "email": email},
                            TokenKind.ACCESS, self.access_expires, issued_at)

    def issue_refresh_token(self, user_id: int, issued_at: Optional[datetime] = None) -> str:
        """Create a long-lived refresh token carrying the account id only."""
        return self._encode({"sub": str(user_id)},
                            TokenKind.REFRESH, self.refresh_expires, issued_at)

    def decode(self, token: str, secret: str) -> Dict[str, Any]:
        """Verify signature and expiry against ``secret`` and return the raw claims."""
        try:
            return jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenError(TokenErrorKind.EXPIRED, "Token expired") from e
        except JWTError as e:
            raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "Invalid token") from e
        except Exception as e:
            logger.error(f"Unexpected token verification failure: {e!r}")
            raise TokenError(TokenErrorKind.UNKNOWN, "Token verification failed") from e

    def _verify(self, token: str, kind: TokenKind) -> Dict[str, Any]:
        payload = self.decode(token, self.secret_for(kind))
        if payload.get("token_type") != kind.value:
            raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "Invalid token type")
        return payload

    def verify_access_token(self, token: str) -> AccessClaims:
        payload = self._verify(token, TokenKind.ACCESS)
        try:
            return AccessClaims(user_id=payload.get("sub"), email=payload.get("email"))
        except ValidationError as e:
            raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "Malformed token claims") from e

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        payload = self._verify(token, TokenKind.REFRESH)
        try:
            return RefreshClaims(user_id=payload.get("sub"))
        except ValidationError as e:
            raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "Malformed token claims") from e
