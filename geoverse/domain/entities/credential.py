from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class CredentialKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class CredentialRecord:
    """Persisted bearer credential. Only refresh tokens are stored, by hash."""

    id: str
    account_id: str
    kind: CredentialKind
    token_hash: str
    issued_at: datetime
    expires_at: datetime
    user_agent: str | None
    ip: str | None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
