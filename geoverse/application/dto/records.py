from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CreateRecordInput:
    account_id: str
    city: str
    country: str
    recorded_at: datetime | None
    payload: dict[str, Any]


@dataclass(frozen=True)
class ListRecordsInput:
    account_id: str
    limit: int
    offset: int = 0
    city: str | None = None
    country: str | None = None
