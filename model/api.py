from datetime import datetime
from pydantic import BaseModel, Field
from model.record import Record
from util.enums import BootstrapOutcome, InclusionStatus


class AddRecordRequest(BaseModel):
    key: str = Field(min_length=1)
    value: str


class RecordResponse(BaseModel):
    key: str
    value: str
    id: str
    createdAt: datetime

    @classmethod
    def of(cls, record: Record) -> "RecordResponse":
        return cls(key=record.key, value=record.value, id=record.id, createdAt=record.created_at)


class AddRecordResponse(BaseModel):
    record: RecordResponse
    height: int
    status: InclusionStatus
    metadataHeight: int | None = None


class ListRecordsResponse(BaseModel):
    count: int
    records: list[RecordResponse]


class StoreInfoResponse(BaseModel):
    label: str
    namespace: str
    startHeight: int
    tip: int
    recordCount: int
    outcome: BootstrapOutcome
    updatedAt: datetime
