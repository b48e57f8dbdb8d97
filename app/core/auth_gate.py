"""Bearer-token guard for protected routes."""
import logging
from typing import Optional

from fastapi.security.utils import get_authorization_scheme_param

from app.core.error_handling import AuthenticationError, TokenVerificationError
from app.core.tokens import TokenCodec, TokenError, TokenErrorKind
from app.models.auth import AccessClaims

logger = logging.getLogger(__name__)

TOKEN_REQUIRED = "Access token required"
TOKEN_EXPIRED = "Access token expired"
TOKEN_INVALID = "Invalid access token"


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not token or " " in token:
        raise AuthenticationError(TOKEN_REQUIRED)
    return token


def authenticate(authorization: Optional[str], codec: TokenCodec) -> AccessClaims:
    """Resolve the caller from the authorization header or raise.

    Expired and invalid tokens are authentication failures; any other
    verification problem is a server fault and surfaces as a 500.
    """
    token = extract_bearer_token(authorization)
    try:
        return codec.verify_access_token(token)
    except TokenError as e:
        if e.kind is TokenErrorKind.EXPIRED:
            raise AuthenticationError(TOKEN_EXPIRED) from e
        if e.kind is TokenErrorKind.INVALID_SIGNATURE:
            raise AuthenticationError(TOKEN_INVALID) from e
        logger.error(f"Access token verification failed unexpectedly: {e}")
        raise TokenVerificationError("Token verification failed") from e
