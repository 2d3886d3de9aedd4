from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests
from google.oauth2 import id_token

from geoverse.application.dto.auth import ExternalIdentity
from geoverse.application.ports.identity_provider_port import IdentityProviderPort
from geoverse.domain.entities.account import AuthProvider
from geoverse.domain.exceptions import ExternalAuthError


logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = "openid email profile"


class GoogleOidcClient(IdentityProviderPort):
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str = "",
        redirect_uri: str = "",
        timeout_seconds: float = 10.0,
        http_client: httpx.Client | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    def authorization_url(self, *, state: str) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, *, code: str) -> ExternalIdentity:
        if not code:
            raise ExternalAuthError("Missing authorization code.")
        data = {
            "code": code,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "redirect_uri": self._redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            if self._http_client is not None:
                response = self._http_client.post(GOOGLE_TOKEN_URL, data=data, timeout=self._timeout_seconds)
            else:
                with httpx.Client(timeout=self._timeout_seconds) as client:
                    response = client.post(GOOGLE_TOKEN_URL, data=data)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("google_oidc: code_exchange_failed error=%s", exc.__class__.__name__)
            raise ExternalAuthError("Google code exchange failed.") from exc

        raw_id_token = payload.get("id_token")
        if not raw_id_token:
            raise ExternalAuthError("Google token response missing id_token.")
        return self.verify_id_token(id_token=raw_id_token)

    def verify_id_token(self, *, id_token: str) -> ExternalIdentity:
        try:
            payload = id_token_verify(token=id_token, audience=self._client_id)
        except (ValueError, google_exceptions.GoogleAuthError) as exc:
            logger.warning("google_oidc: id_token_rejected reason=%s", exc)
            raise ExternalAuthError("Invalid Google id_token.") from exc

        email = payload.get("email")
        subject = payload.get("sub")
        if not email or not subject:
            raise ExternalAuthError("Google id_token missing required claims.")

        email_verified_raw = payload.get("email_verified", False)
        email_verified = bool(email_verified_raw)
        if isinstance(email_verified_raw, str):
            email_verified = email_verified_raw.lower() == "true"

        name = payload.get("name") if isinstance(payload.get("name"), str) else None
        picture = payload.get("picture") if isinstance(payload.get("picture"), str) else None
        return ExternalIdentity(
            provider=AuthProvider.GOOGLE,
            subject=str(subject),
            email=str(email),
            email_verified=email_verified,
            name=name,
            picture=picture,
        )


def id_token_verify(*, token: str, audience: str) -> dict:
    request = requests.Request()
    return id_token.verify_oauth2_token(token, request, audience)
