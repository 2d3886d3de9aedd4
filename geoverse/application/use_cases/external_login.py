from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from geoverse.application.dto.auth import ExternalLoginInput, LoginOutput
from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.application.services.identity_resolver import IdentityResolver
from geoverse.application.services.token_service import TokenService
from geoverse.domain.exceptions import AccountInactiveError

from .auth_common import build_account_summary, utcnow


logger = logging.getLogger(__name__)


class ExternalLoginUseCase:
    """One-time exchange of a successful provider login for a token pair.

    Resolution (create, link or re-authenticate), refresh credential creation
    and the activity stamp share one store transaction, so a failure at any
    step leaves no account-side mutation behind.
    """

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        resolver: IdentityResolver,
        token_service: TokenService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._resolver = resolver
        self._token_service = token_service
        self._clock = clock

    def execute(self, command: ExternalLoginInput) -> LoginOutput:
        def _tx(store: CredentialStorePort) -> LoginOutput:
            resolved = self._resolver.bind(store).resolve(command.identity)
            account = resolved.account
            if not account.is_active:
                raise AccountInactiveError("User is inactive.")

            tokens = self._token_service.bind(store).issue(
                account,
                user_agent=command.user_agent,
                ip=command.ip,
            )
            now = self._clock()
            store.touch_account_activity(account_id=account.id, now=now)
            links = store.list_identity_links(account_id=account.id)
            return LoginOutput(
                account=build_account_summary(account, now=now, links=links),
                tokens=tokens,
                is_new_account=resolved.is_new_account,
            )

        output = self._store.execute_in_transaction(_tx)
        logger.info(
            "external_login: login account_id=%s provider=%s new_account=%s",
            output.account.id,
            command.identity.provider.value,
            output.is_new_account,
        )
        return output
