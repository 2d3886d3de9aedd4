from __future__ import annotations

from fastapi import APIRouter, Depends

from geoverse.api.deps import get_create_record_use_case, get_list_records_use_case, require_protected_access
from geoverse.api.schemas.records import (
    CreateRecordRequest,
    RecordCreatedResponse,
    RecordListResponse,
    RecordResponse,
)
from geoverse.application.dto.records import CreateRecordInput, ListRecordsInput
from geoverse.application.use_cases.records import CreateRecordUseCase, ListRecordsUseCase
from geoverse.domain.entities.account import Account


router = APIRouter(prefix="/api/records")


@router.post("", response_model=RecordCreatedResponse, status_code=201)
def create_record(
    req: CreateRecordRequest,
    account: Account = Depends(require_protected_access),
    use_case: CreateRecordUseCase = Depends(get_create_record_use_case),
):
    record = use_case.execute(
        CreateRecordInput(
            account_id=account.id,
            city=req.city,
            country=req.country,
            recorded_at=req.recorded_at,
            payload=req.payload,
        )
    )
    return RecordCreatedResponse(record=RecordResponse.from_entity(record))


@router.get("", response_model=RecordListResponse)
def list_records(
    limit: int = 20,
    offset: int = 0,
    city: str | None = None,
    country: str | None = None,
    account: Account = Depends(require_protected_access),
    use_case: ListRecordsUseCase = Depends(get_list_records_use_case),
):
    records = use_case.execute(
        ListRecordsInput(account_id=account.id, limit=limit, offset=offset, city=city, country=country)
    )
    return RecordListResponse(records=[RecordResponse.from_entity(record) for record in records])
