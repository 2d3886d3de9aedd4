from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt

from geoverse.application.dto.auth import AccessClaims
from geoverse.application.ports.token_codec_port import TokenCodecPort
from geoverse.domain.entities.credential import CredentialKind
from geoverse.domain.exceptions import (
    InvalidCredentialError,
    InvalidRefreshTokenError,
    RefreshTokenExpiredError,
    TokenExpiredError,
)


ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "typ", "iat", "exp", "jti", "iss"]


class JwtTokenCodec(TokenCodecPort):
    """HS256 access/refresh tokens signed with two distinct secrets.

    Expiry is compared against the caller's ``now`` instead of the wall clock,
    so verification follows whatever clock the token service runs on.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        access_ttl_minutes: int,
        refresh_ttl_days: int,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("JWT access and refresh secrets must be configured.")
        if access_secret == refresh_secret:
            raise ValueError("JWT access and refresh secrets must differ.")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._issuer = issuer
        self._access_ttl = timedelta(minutes=access_ttl_minutes)
        self._refresh_ttl = timedelta(days=refresh_ttl_days)

    @classmethod
    def from_settings(cls, settings) -> JwtTokenCodec:
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            issuer=settings.jwt_issuer,
            access_ttl_minutes=settings.jwt_access_ttl_minutes,
            refresh_ttl_days=settings.jwt_refresh_ttl_days,
        )

    def encode_access_token(self, *, account_id: str, now: datetime) -> tuple[str, datetime]:
        return self._encode(
            account_id=account_id,
            kind=CredentialKind.ACCESS,
            secret=self._access_secret,
            now=now,
            ttl=self._access_ttl,
        )

    def encode_refresh_token(self, *, account_id: str, now: datetime) -> tuple[str, datetime]:
        return self._encode(
            account_id=account_id,
            kind=CredentialKind.REFRESH,
            secret=self._refresh_secret,
            now=now,
            ttl=self._refresh_ttl,
        )

    def decode_access_token(self, *, token: str, now: datetime) -> AccessClaims:
        try:
            return self._decode(token, kind=CredentialKind.ACCESS, secret=self._access_secret, now=now)
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Access token has expired.") from exc
        except (jwt.PyJWTError, ValueError) as exc:
            raise InvalidCredentialError("Token verification failed.") from exc

    def decode_refresh_token(self, *, token: str, now: datetime) -> AccessClaims:
        try:
            return self._decode(token, kind=CredentialKind.REFRESH, secret=self._refresh_secret, now=now)
        except jwt.ExpiredSignatureError as exc:
            raise RefreshTokenExpiredError("Refresh token has expired.") from exc
        except (jwt.PyJWTError, ValueError) as exc:
            raise InvalidRefreshTokenError("Refresh token is invalid.") from exc

    def hash_token(self, *, token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def _encode(
        self,
        *,
        account_id: str,
        kind: CredentialKind,
        secret: str,
        now: datetime,
        ttl: timedelta,
    ) -> tuple[str, datetime]:
        exp = now + ttl
        payload = {
            "sub": account_id,
            "typ": kind.value,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "jti": uuid4().hex,
            "iss": self._issuer,
        }
        token = jwt.encode(payload, secret, algorithm=ALGORITHM)
        return token, exp

    def _decode(self, token: str, *, kind: CredentialKind, secret: str, now: datetime) -> AccessClaims:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            issuer=self._issuer,
            options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
        )
        if payload.get("typ") != kind.value:
            raise ValueError("Invalid token type.")

        account_id = payload.get("sub")
        if not account_id or not isinstance(account_id, str):
            raise ValueError("Invalid token subject.")

        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        if expires_at <= now:
            raise jwt.ExpiredSignatureError("Signature has expired.")

        return AccessClaims(
            account_id=account_id,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=expires_at,
            token_id=str(payload["jti"]),
        )
