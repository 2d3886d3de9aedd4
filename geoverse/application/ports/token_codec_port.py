from __future__ import annotations

from datetime import datetime
from typing import Protocol

from geoverse.application.dto.auth import AccessClaims


class TokenCodecPort(Protocol):
    def encode_access_token(self, *, account_id: str, now: datetime) -> tuple[str, datetime]:
        ...

    def encode_refresh_token(self, *, account_id: str, now: datetime) -> tuple[str, datetime]:
        ...

    def decode_access_token(self, *, token: str, now: datetime) -> AccessClaims:
        ...

    def decode_refresh_token(self, *, token: str, now: datetime) -> AccessClaims:
        ...

    def hash_token(self, *, token: str) -> str:
        ...
