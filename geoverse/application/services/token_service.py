from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import uuid4

from geoverse.application.dto.auth import AccessClaims, AccessGrant, TokenPair
from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.application.ports.token_codec_port import TokenCodecPort
from geoverse.application.use_cases.auth_common import utcnow
from geoverse.domain.entities.account import Account
from geoverse.domain.entities.credential import CredentialKind
from geoverse.domain.exceptions import (
    AccountInactiveError,
    InvalidRefreshTokenError,
    MissingRefreshTokenError,
    RefreshTokenExpiredError,
    TokenRevokedError,
)


logger = logging.getLogger(__name__)


class TokenService:
    """Issues, verifies, refreshes and revokes bearer credentials.

    Access tokens are stateless and checked by signature and expiry only, so a
    revoked session keeps a working access token until it expires. Refresh
    tokens must additionally be present in the store, which is what makes
    revocation possible.
    """

    def __init__(
        self,
        *,
        codec: TokenCodecPort,
        store: CredentialStorePort,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._codec = codec
        self._store = store
        self._clock = clock

    def bind(self, store: CredentialStorePort) -> TokenService:
        return TokenService(codec=self._codec, store=store, clock=self._clock)

    def issue(
        self,
        account: Account,
        *,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> TokenPair:
        now = self._clock()
        access_token, access_expires_at = self._codec.encode_access_token(account_id=account.id, now=now)
        refresh_token, refresh_expires_at = self._codec.encode_refresh_token(account_id=account.id, now=now)
        self._store.create_credential(
            credential_id=str(uuid4()),
            account_id=account.id,
            kind=CredentialKind.REFRESH,
            token_hash=self._codec.hash_token(token=refresh_token),
            issued_at=now,
            expires_at=refresh_expires_at,
            user_agent=user_agent,
            ip=ip,
        )
        logger.info("token_service: tokens_issued account_id=%s", account.id)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    def verify_access(self, token: str) -> AccessClaims:
        return self._codec.decode_access_token(token=token, now=self._clock())

    def refresh(self, refresh_token: str | None) -> AccessGrant:
        token = (refresh_token or "").strip()
        if not token:
            raise MissingRefreshTokenError()

        now = self._clock()
        claims = self._codec.decode_refresh_token(token=token, now=now)

        record = self._store.get_credential_by_hash(token_hash=self._codec.hash_token(token=token))
        if record is None or record.kind is not CredentialKind.REFRESH:
            raise TokenRevokedError()
        if record.account_id != claims.account_id:
            raise InvalidRefreshTokenError()
        if record.is_expired(now):
            raise RefreshTokenExpiredError()

        account = self._store.get_account_by_id(account_id=claims.account_id)
        if account is None:
            raise TokenRevokedError()
        if not account.is_active:
            raise AccountInactiveError()

        access_token, access_expires_at = self._codec.encode_access_token(account_id=account.id, now=now)
        self._store.touch_account_activity(account_id=account.id, now=now)
        logger.info("token_service: token_refreshed account_id=%s", account.id)
        return AccessGrant(access_token=access_token, access_expires_at=access_expires_at)

    def revoke(self, account_id: str, refresh_token: str | None = None) -> int:
        """Delete one refresh credential, or all of them when no token is given."""
        if refresh_token:
            revoked = self._store.delete_credential(
                account_id=account_id,
                token_hash=self._codec.hash_token(token=refresh_token),
            )
        else:
            revoked = self._store.delete_credentials_for_account(
                account_id=account_id,
                kind=CredentialKind.REFRESH,
            )
        logger.info(
            "token_service: tokens_revoked account_id=%s scope=%s count=%s",
            account_id,
            "one" if refresh_token else "all",
            revoked,
        )
        return revoked

    def purge_expired(self) -> int:
        purged = self._store.delete_expired_credentials(now=self._clock())
        logger.info("token_service: expired_credentials_purged count=%s", purged)
        return purged
