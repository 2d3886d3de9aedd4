from __future__ import annotations

from datetime import datetime
from typing import Callable

from geoverse.application.dto.account import MeOutput
from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.application.ports.records_port import RecordsPort
from geoverse.domain.entities.account import Account

from .auth_common import build_account_summary, utcnow


RECENT_RECORDS_LIMIT = 5


class GetMeUseCase:
    def __init__(
        self,
        *,
        store: CredentialStorePort,
        records_port: RecordsPort,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._records_port = records_port
        self._clock = clock

    def execute(self, *, account: Account) -> MeOutput:
        links = self._store.list_identity_links(account_id=account.id)
        recent = self._records_port.list_records(account_id=account.id, limit=RECENT_RECORDS_LIMIT)
        return MeOutput(
            account=build_account_summary(account, now=self._clock(), links=links),
            recent_records=tuple(recent),
        )
