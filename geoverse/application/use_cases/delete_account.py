from __future__ import annotations

import logging

from geoverse.application.dto.account import DeleteAccountInput
from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.domain.exceptions import AccountNotFoundError, InputValidationError


logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE"


class DeleteAccountUseCase:
    def __init__(self, *, store: CredentialStorePort):
        self._store = store

    def execute(self, command: DeleteAccountInput) -> None:
        if command.confirmation != DELETE_CONFIRMATION:
            raise InputValidationError('Confirmation must be exactly "DELETE".')

        deleted = self._store.delete_account(account_id=command.account_id)
        if not deleted:
            raise AccountNotFoundError()
        logger.info("delete_account: account_deleted account_id=%s", command.account_id)
