from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from geoverse.domain.entities.record import DataRecord


class CreateRecordRequest(BaseModel):
    city: str = Field(..., min_length=1, max_length=120)
    country: str = Field(..., min_length=1, max_length=120)
    recorded_at: datetime | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class RecordResponse(BaseModel):
    id: str
    city: str
    country: str
    recorded_at: datetime
    payload: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_entity(cls, record: DataRecord) -> RecordResponse:
        return cls(
            id=record.id,
            city=record.city,
            country=record.country,
            recorded_at=record.recorded_at,
            payload=record.payload,
            created_at=record.created_at,
        )


class RecordCreatedResponse(BaseModel):
    success: bool = True
    record: RecordResponse


class RecordListResponse(BaseModel):
    success: bool = True
    records: list[RecordResponse]
