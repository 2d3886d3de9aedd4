from __future__ import annotations

from typing import Protocol

from geoverse.application.dto.auth import ExternalIdentity


class IdentityProviderPort(Protocol):
    def authorization_url(self, *, state: str) -> str:
        ...

    def exchange_code(self, *, code: str) -> ExternalIdentity:
        ...

    def verify_id_token(self, *, id_token: str) -> ExternalIdentity:
        ...
