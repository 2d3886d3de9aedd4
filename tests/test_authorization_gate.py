from __future__ import annotations

from dataclasses import replace

import pytest

from geoverse.application.ports.rate_limiter_port import RateLimitScope
from geoverse.application.services.authorization_gate import AuthorizationGate, parse_bearer
from geoverse.application.services.token_service import TokenService
from geoverse.domain.entities.account import AccountStatus
from geoverse.domain.exceptions import (
    AccountInactiveError,
    InvalidApiKeyError,
    InvalidCredentialError,
    MissingApiKeyError,
    MissingCredentialError,
    RateLimitedError,
    TokenExpiredError,
)
from geoverse.infrastructure.security.rate_limiter import RateLimitBudget, WindowRateLimiter


def _limiter(auth: str = "10/900", data: str = "100/900", global_: str = "1000/900") -> WindowRateLimiter:
    return WindowRateLimiter(
        budgets={
            RateLimitScope.GLOBAL: RateLimitBudget.parse(global_),
            RateLimitScope.DATA: RateLimitBudget.parse(data),
            RateLimitScope.AUTH: RateLimitBudget.parse(auth),
        }
    )


@pytest.fixture
def token_service(fake_codec, store, clock) -> TokenService:
    return TokenService(codec=fake_codec, store=store, clock=clock)


@pytest.fixture
def gate(token_service, store, clock) -> AuthorizationGate:
    return AuthorizationGate(
        rate_limiter=_limiter(),
        token_service=token_service,
        store=store,
        api_key="secret-key",
        activity_touch_interval_seconds=60,
        clock=clock,
    )


def test_eleventh_auth_attempt_is_rate_limited_before_credentials_are_checked(gate):
    for _ in range(10):
        with pytest.raises(MissingCredentialError):
            gate.authorize(caller_key="1.2.3.4", scope=RateLimitScope.AUTH, authorization=None)

    with pytest.raises(RateLimitedError) as exc_info:
        gate.authorize(caller_key="1.2.3.4", scope=RateLimitScope.AUTH, authorization=None)

    assert exc_info.value.scope == "auth"
    assert exc_info.value.retry_after_seconds >= 1


def test_rate_limit_budgets_are_per_caller(gate):
    for _ in range(10):
        gate.check_rate_limit(caller_key="1.2.3.4", scope=RateLimitScope.AUTH)

    gate.check_rate_limit(caller_key="5.6.7.8", scope=RateLimitScope.AUTH)


def test_expired_token_with_valid_key_is_expired(gate, token_service, store, clock):
    account = store.add_account("acct-1")
    pair = token_service.issue(account)
    clock.advance(minutes=20)

    with pytest.raises(TokenExpiredError):
        gate.authorize(
            caller_key="1.2.3.4",
            scope=RateLimitScope.DATA,
            authorization=f"Bearer {pair.access_token}",
            api_key="secret-key",
            require_api_key=True,
        )


def test_valid_token_without_key_is_missing_api_key(gate, token_service, store):
    account = store.add_account("acct-1")
    pair = token_service.issue(account)

    with pytest.raises(MissingApiKeyError):
        gate.authorize(
            caller_key="1.2.3.4",
            scope=RateLimitScope.DATA,
            authorization=f"Bearer {pair.access_token}",
            api_key=None,
            require_api_key=True,
        )


def test_wrong_api_key_is_invalid(gate):
    with pytest.raises(InvalidApiKeyError):
        gate.check_api_key("not-the-key")


def test_empty_configured_key_rejects_every_caller(token_service, store, clock):
    gate = AuthorizationGate(
        rate_limiter=_limiter(),
        token_service=token_service,
        store=store,
        api_key="",
        clock=clock,
    )

    with pytest.raises(InvalidApiKeyError):
        gate.check_api_key("anything")


def test_inactive_account_is_rejected_after_token_verifies(gate, token_service, store):
    account = store.add_account("acct-1")
    pair = token_service.issue(account)
    store.accounts[account.id] = replace(account, status=AccountStatus.INACTIVE)

    with pytest.raises(AccountInactiveError):
        gate.check_bearer(f"Bearer {pair.access_token}")


def test_token_for_unknown_account_is_invalid(gate, token_service, store):
    account = store.add_account("acct-1")
    pair = token_service.issue(account)
    store.delete_account(account_id=account.id)

    with pytest.raises(InvalidCredentialError):
        gate.check_bearer(f"Bearer {pair.access_token}")


def test_activity_stamp_is_throttled(gate, token_service, store, clock):
    account = store.add_account("acct-1")
    pair = token_service.issue(account)
    header = f"Bearer {pair.access_token}"

    clock.advance(seconds=30)
    gate.check_bearer(header)
    assert store.accounts[account.id].last_active_at == account.last_active_at

    clock.advance(seconds=40)
    gate.check_bearer(header)
    assert store.accounts[account.id].last_active_at == clock.now


@pytest.mark.parametrize(
    "header, error",
    [
        (None, MissingCredentialError),
        ("", MissingCredentialError),
        ("Bearer   ", MissingCredentialError),
        ("Basic abc", InvalidCredentialError),
    ],
)
def test_parse_bearer_rejects_malformed_headers(header, error):
    with pytest.raises(error):
        parse_bearer(header)


def test_parse_bearer_accepts_any_case_prefix():
    assert parse_bearer("bearer tok") == "tok"
    assert parse_bearer("BEARER tok") == "tok"
