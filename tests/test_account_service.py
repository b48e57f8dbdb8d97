"""Tests for signup, login and refresh orchestration."""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.account_service import (
    ACCOUNT_EXISTS, INVALID_CREDENTIALS, REFRESH_TOKEN_EXPIRED, REFRESH_TOKEN_INVALID,
    REFRESH_TOKEN_REQUIRED, USER_NOT_FOUND, AccountService
)
from app.core.error_handling import AuthenticationError, ConflictError, ValidationFailedError
from app.core.password_manager import PasswordManager
from app.core.storage import InMemoryStorage
from app.core.stores import UserStore


@pytest.fixture
def accounts(user_store, passwords, codec):
    return AccountService(user_store, passwords, codec)


@pytest.mark.asyncio
async def test_signup_issues_tokens_for_new_account(accounts, codec):
    result = await accounts.signup("a@b.com", "secret1")

    assert result.user.email == "a@b.com"
    assert codec.verify_access_token(result.access_token).user_id == result.user.id
    assert codec.verify_refresh_token(result.refresh_token).user_id == result.user.id


@pytest.mark.asyncio
async def test_signup_stores_hash_not_password(accounts, user_store):
    result = await accounts.signup("a@b.com", "secret1")

    stored = await user_store.find_by_email("a@b.com")
    assert stored.password_hash != "secret1"
    assert set(result.user.model_dump()) == {"id", "email"}


@pytest.mark.asyncio
async def test_signup_duplicate_email_conflicts(accounts):
    await accounts.signup("a@b.com", "secret1")

    with pytest.raises(ConflictError, match=ACCOUNT_EXISTS):
        await accounts.signup("a@b.com", "another1")


@pytest.mark.asyncio
async def test_signup_short_password(accounts, user_store):
    with pytest.raises(ValidationFailedError):
        await accounts.signup("a@b.com", "12345")

    assert await user_store.find_by_email("a@b.com") is None


@pytest.mark.asyncio
async def test_login_success(accounts, codec):
    created = await accounts.signup("a@b.com", "secret1")

    result = await accounts.login("a@b.com", "secret1")

    assert result.user == created.user
    assert codec.verify_access_token(result.access_token).email == "a@b.com"


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(accounts):
    await accounts.signup("a@b.com", "secret1")

    with pytest.raises(AuthenticationError) as wrong_password:
        await accounts.login("a@b.com", "wrong-password")
    with pytest.raises(AuthenticationError) as unknown_email:
        await accounts.login("nobody@b.com", "secret1")

    assert str(wrong_password.value) == str(unknown_email.value) == INVALID_CREDENTIALS


@pytest.mark.asyncio
async def test_login_upgrades_outdated_hash(codec):
    user_store = UserStore(InMemoryStorage())
    weak = PasswordManager(time_cost=1, memory_cost=1024, parallelism=1)
    strong = PasswordManager(time_cost=2, memory_cost=1024, parallelism=1)
    await AccountService(user_store, weak, codec).signup("a@b.com", "secret1")
    old_hash = (await user_store.find_by_email("a@b.com")).password_hash

    await AccountService(user_store, strong, codec).login("a@b.com", "secret1")

    new_hash = (await user_store.find_by_email("a@b.com")).password_hash
    assert new_hash != old_hash
    assert strong.needs_rehash(new_hash) is False


@pytest.mark.asyncio
async def test_refresh_returns_new_access_token(accounts, codec):
    created = await accounts.signup("a@b.com", "secret1")

    access_token = await accounts.refresh(created.refresh_token)

    claims = codec.verify_access_token(access_token)
    assert (claims.user_id, claims.email) == (created.user.id, "a@b.com")


@pytest.mark.asyncio
async def test_refresh_requires_token(accounts):
    with pytest.raises(AuthenticationError, match=REFRESH_TOKEN_REQUIRED):
        await accounts.refresh(None)


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(accounts):
    created = await accounts.signup("a@b.com", "secret1")

    with pytest.raises(AuthenticationError, match=REFRESH_TOKEN_INVALID):
        await accounts.refresh(created.access_token)


@pytest.mark.asyncio
async def test_refresh_expired(accounts, codec):
    created = await accounts.signup("a@b.com", "secret1")
    stale = codec.issue_refresh_token(
        created.user.id, issued_at=datetime.now(timezone.utc) - timedelta(days=8)
    )

    with pytest.raises(AuthenticationError, match=REFRESH_TOKEN_EXPIRED):
        await accounts.refresh(stale)


@pytest.mark.asyncio
async def test_refresh_for_missing_account(accounts, codec):
    orphan = codec.issue_refresh_token(999)

    with pytest.raises(AuthenticationError, match=USER_NOT_FOUND):
        await accounts.refresh(orphan)
