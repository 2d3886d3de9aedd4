from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class DataRecord:
    id: str
    account_id: str
    city: str
    country: str
    recorded_at: datetime
    payload: dict[str, Any]
    created_at: datetime
