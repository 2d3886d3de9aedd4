from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from geoverse.application.dto.account import AccountSummaryOutput
from geoverse.domain.entities.account import Account, AuthProvider


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity assertion vouched for by an external provider."""

    provider: AuthProvider
    subject: str
    email: str
    email_verified: bool
    name: str | None
    picture: str | None


@dataclass(frozen=True)
class ResolvedAccount:
    account: Account
    is_new_account: bool


@dataclass(frozen=True)
class AccessClaims:
    account_id: str
    issued_at: datetime
    expires_at: datetime
    token_id: str


@dataclass(frozen=True)
class AccessGrant:
    access_token: str
    access_expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class ExternalLoginInput:
    identity: ExternalIdentity
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class LoginOutput:
    account: AccountSummaryOutput
    tokens: TokenPair
    is_new_account: bool


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str | None


@dataclass(frozen=True)
class LogoutInput:
    account_id: str
    refresh_token: str | None


@dataclass(frozen=True)
class LogoutOutput:
    revoked: int
