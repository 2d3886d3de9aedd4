from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, Request

from geoverse.application.ports.identity_provider_port import IdentityProviderPort
from geoverse.application.ports.rate_limiter_port import RateLimiterPort, RateLimitScope
from geoverse.application.services.authorization_gate import AuthorizationGate
from geoverse.application.services.identity_resolver import IdentityResolver
from geoverse.application.services.token_service import TokenService
from geoverse.application.use_cases.delete_account import DeleteAccountUseCase
from geoverse.application.use_cases.external_login import ExternalLoginUseCase
from geoverse.application.use_cases.get_me import GetMeUseCase
from geoverse.application.use_cases.logout_session import LogoutSessionUseCase
from geoverse.application.use_cases.records import CreateRecordUseCase, ListRecordsUseCase
from geoverse.application.use_cases.refresh_session import RefreshSessionUseCase
from geoverse.application.use_cases.update_profile import UpdateProfileUseCase
from geoverse.domain.entities.account import Account
from geoverse.domain.exceptions import ExternalAuthError, StoreUnavailableError
from geoverse.infrastructure.clients.google_oidc_client import GoogleOidcClient
from geoverse.infrastructure.db.engine import get_engine
from geoverse.infrastructure.db.repositories.credential_store import SqlCredentialStore
from geoverse.infrastructure.security.jwt_token_codec import JwtTokenCodec
from geoverse.infrastructure.security.rate_limiter import RateLimitBudget, WindowRateLimiter
from geoverse.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.database_url:
        raise StoreUnavailableError("DATABASE_URL is required.")
    return get_engine(settings.database_url)


def get_credential_store() -> SqlCredentialStore:
    return SqlCredentialStore(_get_db_engine())


@lru_cache(maxsize=1)
def get_token_codec() -> JwtTokenCodec:
    return JwtTokenCodec.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiterPort:
    settings = get_settings()
    return WindowRateLimiter(
        budgets={
            RateLimitScope.GLOBAL: RateLimitBudget.parse(settings.rate_limit_global),
            RateLimitScope.DATA: RateLimitBudget.parse(settings.rate_limit_data),
            RateLimitScope.AUTH: RateLimitBudget.parse(settings.rate_limit_auth),
        },
        storage_uri=settings.rate_limit_storage_uri,
    )


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProviderPort:
    settings = get_settings()
    if not settings.google_client_id:
        raise ExternalAuthError("GOOGLE_CLIENT_ID is not configured.")
    return GoogleOidcClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        timeout_seconds=settings.google_timeout_seconds,
    )


def get_token_service(
    store: SqlCredentialStore = Depends(get_credential_store),
    codec: JwtTokenCodec = Depends(get_token_codec),
) -> TokenService:
    return TokenService(codec=codec, store=store)


def get_authorization_gate(
    store: SqlCredentialStore = Depends(get_credential_store),
    token_service: TokenService = Depends(get_token_service),
    rate_limiter: RateLimiterPort = Depends(get_rate_limiter),
) -> AuthorizationGate:
    settings = get_settings()
    return AuthorizationGate(
        rate_limiter=rate_limiter,
        token_service=token_service,
        store=store,
        api_key=settings.api_key,
        activity_touch_interval_seconds=settings.activity_touch_interval_seconds,
    )


def caller_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def enforce_auth_rate_limit(
    request: Request,
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> None:
    gate.check_rate_limit(caller_key=caller_key(request), scope=RateLimitScope.AUTH)


def get_current_account(
    request: Request,
    authorization: str | None = Header(default=None),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> Account:
    return gate.authorize(
        caller_key=caller_key(request),
        scope=RateLimitScope.GLOBAL,
        authorization=authorization,
    )


def require_protected_access(
    request: Request,
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> Account:
    return gate.authorize(
        caller_key=caller_key(request),
        scope=RateLimitScope.DATA,
        authorization=authorization,
        api_key=x_api_key,
        require_api_key=True,
    )


def get_external_login_use_case(
    store: SqlCredentialStore = Depends(get_credential_store),
    token_service: TokenService = Depends(get_token_service),
) -> ExternalLoginUseCase:
    return ExternalLoginUseCase(
        store=store,
        resolver=IdentityResolver(store=store),
        token_service=token_service,
    )


def get_refresh_session_use_case(
    token_service: TokenService = Depends(get_token_service),
) -> RefreshSessionUseCase:
    return RefreshSessionUseCase(token_service=token_service)


def get_logout_session_use_case(
    token_service: TokenService = Depends(get_token_service),
) -> LogoutSessionUseCase:
    return LogoutSessionUseCase(token_service=token_service)


def get_get_me_use_case(store: SqlCredentialStore = Depends(get_credential_store)) -> GetMeUseCase:
    return GetMeUseCase(store=store, records_port=store)


def get_update_profile_use_case(
    store: SqlCredentialStore = Depends(get_credential_store),
) -> UpdateProfileUseCase:
    return UpdateProfileUseCase(store=store)


def get_delete_account_use_case(
    store: SqlCredentialStore = Depends(get_credential_store),
) -> DeleteAccountUseCase:
    return DeleteAccountUseCase(store=store)


def get_create_record_use_case(
    store: SqlCredentialStore = Depends(get_credential_store),
) -> CreateRecordUseCase:
    return CreateRecordUseCase(records_port=store)


def get_list_records_use_case(
    store: SqlCredentialStore = Depends(get_credential_store),
) -> ListRecordsUseCase:
    return ListRecordsUseCase(records_port=store)
