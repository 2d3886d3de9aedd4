from __future__ import annotations

from geoverse.application.dto.auth import LogoutInput, LogoutOutput
from geoverse.application.services.token_service import TokenService


class LogoutSessionUseCase:
    def __init__(self, *, token_service: TokenService):
        self._token_service = token_service

    def execute(self, command: LogoutInput) -> LogoutOutput:
        refresh_token = command.refresh_token.strip() if command.refresh_token else None
        revoked = self._token_service.revoke(command.account_id, refresh_token or None)
        return LogoutOutput(revoked=revoked)
