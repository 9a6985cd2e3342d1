import time
from datetime import datetime, timezone
from typing import Final, Union
from uuid import uuid4
from pydantic import TypeAdapter, ValidationError
from core.errors import DecodeError
from model.record import LedgerItem, Metadata, Record

_ITEM: Final[TypeAdapter] = TypeAdapter(LedgerItem)
_last_seq: int = 0


def next_seq() -> int:
    """
    Strictly increasing nanosecond stamp for this process.
    Used to order same-height writes for one key.
    """
    global _last_seq
    now = time.time_ns()
    _last_seq = now if now > _last_seq else _last_seq + 1
    return _last_seq


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record(key: str, value: str) -> Record:
    return Record(key=key, value=value, created_at=utcnow(), id=str(uuid4()), seq=next_seq())


def new_metadata(namespace: bytes, start_height: int, record_count: int = 0) -> Metadata:
    return Metadata(
        namespace=namespace.hex(),
        start_height=start_height,
        record_count=record_count,
        updated_at=utcnow(),
        seq=next_seq(),
    )


def encode_record(record: Record) -> bytes:
    return record.model_dump_json().encode("utf-8")


def encode_metadata(metadata: Metadata) -> bytes:
    return metadata.model_dump_json().encode("utf-8")


def decode_entry(payload: bytes) -> Union[Record, Metadata]:
    """Parse a blob payload; anything that is not one of ours raises DecodeError."""
    try:
        return _ITEM.validate_json(payload)
    except ValidationError as e:
        raise DecodeError(
            f"undecodable payload ({e.error_count()} errors)",
            data={"size": len(payload)},
        ) from e
