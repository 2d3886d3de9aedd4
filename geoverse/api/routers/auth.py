from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Cookie, Depends, Header, Request
from fastapi.responses import RedirectResponse

from geoverse.api.deps import (
    caller_key,
    enforce_auth_rate_limit,
    get_current_account,
    get_external_login_use_case,
    get_identity_provider,
    get_logout_session_use_case,
    get_refresh_session_use_case,
)
from geoverse.api.schemas.account import AccountSummaryResponse
from geoverse.api.schemas.auth import (
    AccessTokenResponse,
    AuthTokenResponse,
    GoogleLoginRequest,
    LogoutRequest,
    LogoutResponse,
    RefreshRequest,
)
from geoverse.application.dto.auth import (
    ExternalLoginInput,
    LoginOutput,
    LogoutInput,
    RefreshSessionInput,
)
from geoverse.application.ports.identity_provider_port import IdentityProviderPort
from geoverse.application.use_cases.external_login import ExternalLoginUseCase
from geoverse.application.use_cases.logout_session import LogoutSessionUseCase
from geoverse.application.use_cases.refresh_session import RefreshSessionUseCase
from geoverse.domain.entities.account import Account
from geoverse.domain.exceptions import AccountInactiveError, DomainError
from geoverse.shared.config import get_settings


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")

STATE_COOKIE_NAME = "oauth_state"
STATE_COOKIE_MAX_AGE_SECONDS = 600


def _login_response(output: LoginOutput) -> AuthTokenResponse:
    return AuthTokenResponse(
        access_token=output.tokens.access_token,
        refresh_token=output.tokens.refresh_token,
        access_expires_at=output.tokens.access_expires_at,
        refresh_expires_at=output.tokens.refresh_expires_at,
        is_new_user=output.is_new_account,
        user=AccountSummaryResponse.from_output(output.account),
    )


def _error_redirect(code: str) -> RedirectResponse:
    frontend_url = get_settings().frontend_url
    response = RedirectResponse(url=f"{frontend_url}/auth/error?{urlencode({'code': code})}")
    response.delete_cookie(key=STATE_COOKIE_NAME, path="/auth")
    return response


@router.get("/google", dependencies=[Depends(enforce_auth_rate_limit)])
def google_redirect(
    provider: IdentityProviderPort = Depends(get_identity_provider),
):
    state = secrets.token_urlsafe(32)
    response = RedirectResponse(url=provider.authorization_url(state=state))
    response.set_cookie(
        key=STATE_COOKIE_NAME,
        value=state,
        max_age=STATE_COOKIE_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
        path="/auth",
    )
    return response


@router.get("/google/callback", dependencies=[Depends(enforce_auth_rate_limit)])
def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    state_cookie: str | None = Cookie(default=None, alias=STATE_COOKIE_NAME),
    user_agent: str | None = Header(default=None),
    provider: IdentityProviderPort = Depends(get_identity_provider),
    use_case: ExternalLoginUseCase = Depends(get_external_login_use_case),
):
    if error or not code:
        logger.info("auth: google_callback_rejected reason=%s", error or "missing_code")
        return _error_redirect("AUTH_FAILED")
    if not state or not state_cookie or not secrets.compare_digest(state, state_cookie):
        logger.warning("auth: google_callback_state_mismatch caller=%s", caller_key(request))
        return _error_redirect("AUTH_FAILED")

    try:
        identity = provider.exchange_code(code=code)
        output = use_case.execute(
            ExternalLoginInput(identity=identity, user_agent=user_agent, ip=caller_key(request))
        )
    except AccountInactiveError:
        return _error_redirect("ACCOUNT_INACTIVE")
    except DomainError as exc:
        logger.warning("auth: google_callback_failed code=%s", exc.code)
        return _error_redirect("AUTH_FAILED")

    fragment = urlencode(
        {
            "access_token": output.tokens.access_token,
            "refresh_token": output.tokens.refresh_token,
            "is_new_user": str(output.is_new_account).lower(),
        }
    )
    response = RedirectResponse(url=f"{get_settings().frontend_url}/auth/callback#{fragment}")
    response.delete_cookie(key=STATE_COOKIE_NAME, path="/auth")
    return response


@router.post("/google", response_model=AuthTokenResponse, dependencies=[Depends(enforce_auth_rate_limit)])
def google_login(
    req: GoogleLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    provider: IdentityProviderPort = Depends(get_identity_provider),
    use_case: ExternalLoginUseCase = Depends(get_external_login_use_case),
):
    identity = provider.verify_id_token(id_token=req.id_token)
    output = use_case.execute(
        ExternalLoginInput(identity=identity, user_agent=user_agent, ip=caller_key(request))
    )
    return _login_response(output)


@router.post("/refresh", response_model=AccessTokenResponse, dependencies=[Depends(enforce_auth_rate_limit)])
def refresh_auth(
    req: RefreshRequest | None = None,
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    grant = use_case.execute(RefreshSessionInput(refresh_token=req.refresh_token if req else None))
    return AccessTokenResponse(
        access_token=grant.access_token,
        access_expires_at=grant.access_expires_at,
    )


@router.post("/logout", response_model=LogoutResponse)
def logout_auth(
    req: LogoutRequest | None = None,
    account: Account = Depends(get_current_account),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    output = use_case.execute(
        LogoutInput(account_id=account.id, refresh_token=req.refresh_token if req else None)
    )
    return LogoutResponse(revoked=output.revoked)
