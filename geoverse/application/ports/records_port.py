from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Protocol, TypeVar

from geoverse.domain.entities.account import AccountStats
from geoverse.domain.entities.record import DataRecord


TRecordsResult = TypeVar("TRecordsResult")


class RecordsPort(Protocol):
    def execute_in_transaction(self, fn: Callable[[RecordsPort], TRecordsResult]) -> TRecordsResult:
        ...

    def create_record(
        self,
        *,
        record_id: str,
        account_id: str,
        city: str,
        country: str,
        recorded_at: datetime,
        payload: dict[str, Any],
        now: datetime,
    ) -> DataRecord:
        ...

    def refresh_account_stats(self, *, account_id: str, now: datetime) -> AccountStats:
        ...

    def list_records(
        self,
        *,
        account_id: str,
        limit: int,
        offset: int = 0,
        city: str | None = None,
        country: str | None = None,
    ) -> list[DataRecord]:
        """Newest first; ``city`` and ``country`` match case-insensitive substrings."""
        ...
