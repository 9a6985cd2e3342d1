from fastapi import APIRouter, Depends, Response, status
from controller.controller_dependencies import get_store_service, limit_writes
from model.api import (
    AddRecordRequest,
    AddRecordResponse,
    ListRecordsResponse,
    RecordResponse,
    StoreInfoResponse,
)
from service.store_service import StoreService
from util.constants import InternalURIs
from util.enums import InclusionStatus

store_router = APIRouter()


@store_router.post(
    InternalURIs.RECORDS,
    response_model=AddRecordResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_writes)],
)
async def add_record(
    payload: AddRecordRequest,
    response: Response,
    service: StoreService = Depends(get_store_service),
) -> AddRecordResponse:
    result = await service.add(payload.key, payload.value)
    if result.status == InclusionStatus.PENDING:
        response.status_code = status.HTTP_202_ACCEPTED
    return AddRecordResponse(
        record=RecordResponse.of(result.record),
        height=result.height,
        status=result.status,
        metadataHeight=result.metadata_height,
    )


@store_router.get(InternalURIs.RECORDS, response_model=ListRecordsResponse)
async def list_records(
    service: StoreService = Depends(get_store_service),
) -> ListRecordsResponse:
    records = await service.list()
    return ListRecordsResponse(
        count=len(records), records=[RecordResponse.of(r) for r in records]
    )


@store_router.get(InternalURIs.RECORDS + "/{key}", response_model=RecordResponse)
async def get_record(
    key: str,
    service: StoreService = Depends(get_store_service),
) -> RecordResponse:
    return RecordResponse.of(await service.get(key))


@store_router.get(InternalURIs.STORE, response_model=StoreInfoResponse)
async def store_info(
    service: StoreService = Depends(get_store_service),
) -> StoreInfoResponse:
    return await service.describe()
