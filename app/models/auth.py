"""Authentication-related Pydantic models."""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.models.user import UserResponse

# Shape check only; deliverability is not verified.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignupRequest(BaseModel):
    """Signup request model."""
    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """Login request model."""
    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshTokenRequest(BaseModel):
    """Refresh token request model."""
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class AuthResponse(BaseModel):
    """Signup/login response: account summary plus a token pair."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    user: UserResponse
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class AccessTokenResponse(BaseModel):
    """Token refresh response."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")


class AccessClaims(BaseModel):
    """Decoded access token payload; identifies the caller."""
    user_id: int
    email: str


class RefreshClaims(BaseModel):
    """Decoded refresh token payload."""
    user_id: int
