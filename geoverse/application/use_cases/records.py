from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import uuid4

from geoverse.application.dto.records import CreateRecordInput, ListRecordsInput
from geoverse.application.ports.records_port import RecordsPort
from geoverse.domain.entities.record import DataRecord
from geoverse.domain.exceptions import InputValidationError

from .auth_common import utcnow


logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100


class CreateRecordUseCase:
    """Stores a record for the caller and refreshes the account's denormalized stats."""

    def __init__(self, *, records_port: RecordsPort, clock: Callable[[], datetime] = utcnow):
        self._records_port = records_port
        self._clock = clock

    def execute(self, command: CreateRecordInput) -> DataRecord:
        city = command.city.strip()
        country = command.country.strip()
        if not city or not country:
            raise InputValidationError("city and country are required.")

        now = self._clock()

        def _tx(records_port: RecordsPort) -> DataRecord:
            record = records_port.create_record(
                record_id=str(uuid4()),
                account_id=command.account_id,
                city=city,
                country=country,
                recorded_at=command.recorded_at or now,
                payload=command.payload,
                now=now,
            )
            records_port.refresh_account_stats(account_id=command.account_id, now=now)
            return record

        record = self._records_port.execute_in_transaction(_tx)
        logger.info(
            "records: record_created account_id=%s record_id=%s",
            command.account_id,
            record.id,
        )
        return record


class ListRecordsUseCase:
    def __init__(self, *, records_port: RecordsPort):
        self._records_port = records_port

    def execute(self, command: ListRecordsInput) -> list[DataRecord]:
        if command.limit <= 0:
            raise InputValidationError("limit must be a positive integer.")
        return self._records_port.list_records(
            account_id=command.account_id,
            limit=min(command.limit, MAX_LIST_LIMIT),
            offset=max(command.offset, 0),
            city=_filter_value(command.city),
            country=_filter_value(command.country),
        )


def _filter_value(raw: str | None) -> str | None:
    value = raw.strip() if raw else ""
    return value or None
