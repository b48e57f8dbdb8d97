"""Authentication API routes."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from app.core.account_service import AccountService
from app.core.error_handling import AuthenticationError, ErrorLogger
from app.dependencies import get_account_service
from app.models.auth import (
    AccessTokenResponse, AuthResponse, LoginRequest, RefreshTokenRequest, SignupRequest
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    signup_request: SignupRequest,
    accounts: AccountService = Depends(get_account_service)
):
    """Create an account and return a fresh token pair."""
    result = await accounts.signup(signup_request.email, signup_request.password)
    logger.info(f"Signup completed for account {result.user.id}")
    return AuthResponse(
        message="User created successfully",
        user=result.user,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request,
    login_request: LoginRequest,
    accounts: AccountService = Depends(get_account_service)
):
    """Exchange email and password for a token pair."""
    try:
        result = await accounts.login(login_request.email, login_request.password)
    except AuthenticationError:
        ErrorLogger.log_security_event("LOGIN_FAILED", {"email": login_request.email}, request)
        raise

    return AuthResponse(
        message="Login successful",
        user=result.user,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post("/token/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    refresh_request: Optional[RefreshTokenRequest] = None,
    accounts: AccountService = Depends(get_account_service)
):
    """Mint a new access token from a refresh token."""
    token = refresh_request.refresh_token if refresh_request else None
    access_token = await accounts.refresh(token)
    return AccessTokenResponse(access_token=access_token)
