from __future__ import annotations

from geoverse.application.dto.auth import AccessGrant, RefreshSessionInput
from geoverse.application.services.token_service import TokenService


class RefreshSessionUseCase:
    def __init__(self, *, token_service: TokenService):
        self._token_service = token_service

    def execute(self, command: RefreshSessionInput) -> AccessGrant:
        return self._token_service.refresh(command.refresh_token)
