from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.application.ports.rate_limiter_port import RateLimiterPort, RateLimitScope
from geoverse.application.services.token_service import TokenService
from geoverse.application.use_cases.auth_common import utcnow
from geoverse.domain.entities.account import Account
from geoverse.domain.exceptions import (
    AccountInactiveError,
    InvalidApiKeyError,
    InvalidCredentialError,
    MissingApiKeyError,
    MissingCredentialError,
    RateLimitedError,
)


logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


class AuthorizationGate:
    """Request-time checks, always in the same order.

    1. rate limit (global budget, then the endpoint's scope budget)
    2. shared secret, when the endpoint requires one
    3. bearer token, plus an ``active`` status check on the account

    The first failing stage raises and nothing after it runs.
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiterPort,
        token_service: TokenService,
        store: CredentialStorePort,
        api_key: str,
        activity_touch_interval_seconds: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._rate_limiter = rate_limiter
        self._token_service = token_service
        self._store = store
        self._api_key = api_key
        self._activity_touch_interval = timedelta(seconds=activity_touch_interval_seconds)
        self._clock = clock

    def authorize(
        self,
        *,
        caller_key: str,
        scope: RateLimitScope,
        authorization: str | None,
        api_key: str | None = None,
        require_api_key: bool = False,
    ) -> Account:
        self.check_rate_limit(caller_key=caller_key, scope=scope)
        if require_api_key:
            self.check_api_key(api_key)
        return self.check_bearer(authorization)

    def check_rate_limit(self, *, caller_key: str, scope: RateLimitScope) -> None:
        scopes = [RateLimitScope.GLOBAL]
        if scope is not RateLimitScope.GLOBAL:
            scopes.append(scope)
        for current in scopes:
            decision = self._rate_limiter.hit(scope=current, caller_key=caller_key)
            if not decision.allowed:
                logger.warning(
                    "authorization_gate: rate_limited caller=%s scope=%s",
                    caller_key,
                    current.value,
                )
                raise RateLimitedError(
                    "Too many requests, please try again later.",
                    scope=current.value,
                    retry_after_seconds=decision.retry_after_seconds,
                )

    def check_api_key(self, supplied: str | None) -> None:
        if not supplied:
            raise MissingApiKeyError("Please provide a valid x-api-key header.")
        if not self._api_key or not secrets.compare_digest(
            supplied.encode("utf-8"),
            self._api_key.encode("utf-8"),
        ):
            raise InvalidApiKeyError("The provided API key is not valid.")

    def check_bearer(self, authorization: str | None) -> Account:
        token = parse_bearer(authorization)
        claims = self._token_service.verify_access(token)

        account = self._store.get_account_by_id(account_id=claims.account_id)
        if account is None:
            raise InvalidCredentialError("User not found or inactive.")
        if not account.is_active:
            raise AccountInactiveError()

        now = self._clock()
        if now - account.last_active_at >= self._activity_touch_interval:
            self._store.touch_account_activity(account_id=account.id, now=now)
        return account


def parse_bearer(authorization: str | None) -> str:
    header = (authorization or "").strip()
    if not header:
        raise MissingCredentialError("Please provide a valid access token.")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        raise InvalidCredentialError("Invalid authorization header.")
    token = token.strip()
    if not token:
        raise MissingCredentialError("Please provide a valid access token.")
    return token
