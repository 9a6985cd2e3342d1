import logging
from core.codec import decode_entry, encode_metadata, encode_record
from core.errors import DecodeError, FetchError
from core.ledger import LedgerAdapter
from core.retry import RetryPolicy
from model.record import Metadata, Record
from util.enums import InclusionStatus

logger = logging.getLogger(__name__)

# Celestia blocks land roughly every 6s.
DEFAULT_INCLUSION = RetryPolicy(max_attempts=6, base_delay=1.0)


class RecordRepository:
    """
    Flow:
    - Append records and metadata as blobs under the store namespace.
    - After a submit, poll the returned height until the blob shows up
      (or the inclusion policy runs out and the write is reported pending).
    - Nothing is ever rolled back; the ledger has already accepted the blob.
    """

    def __init__(
        self,
        ledger: LedgerAdapter,
        namespace: bytes,
        *,
        inclusion: RetryPolicy = DEFAULT_INCLUSION,
    ) -> None:
        self._ledger = ledger
        self._namespace = namespace
        self._inclusion = inclusion

    @property
    def namespace(self) -> bytes:
        return self._namespace

    @property
    def inclusion(self) -> RetryPolicy:
        return self._inclusion

    async def tip(self) -> int:
        return await self._ledger.current_tip()

    async def append_record(self, record: Record) -> int:
        height = await self._ledger.submit(self._namespace, encode_record(record))
        logger.info("record.submit key=%s id=%s height=%d", record.key, record.id, height)
        return height

    async def append_metadata(self, metadata: Metadata) -> int:
        height = await self._ledger.submit(self._namespace, encode_metadata(metadata))
        logger.info(
            "metadata.submit start=%d count=%d height=%d",
            metadata.start_height,
            metadata.record_count,
            height,
        )
        return height

    async def confirm(self, record: Record, height: int) -> InclusionStatus:
        attempts = max(1, self._inclusion.max_attempts)
        for attempt in range(attempts):
            await self._inclusion.sleep(attempt)
            try:
                payloads = await self._ledger.fetch(self._namespace, height)
            except FetchError as e:
                logger.warning(
                    "record.confirm.fetch_error id=%s height=%d attempt=%d err=%s",
                    record.id,
                    height,
                    attempt + 1,
                    e,
                )
                continue
            if self._contains(payloads, record.id):
                logger.info(
                    "record.confirm.ok id=%s height=%d attempts=%d",
                    record.id,
                    height,
                    attempt + 1,
                )
                return InclusionStatus.CONFIRMED

        logger.warning(
            "record.confirm.pending id=%s height=%d attempts=%d", record.id, height, attempts
        )
        return InclusionStatus.PENDING

    @staticmethod
    def _contains(payloads: list[bytes], record_id: str) -> bool:
        for payload in payloads:
            try:
                item = decode_entry(payload)
            except DecodeError:
                continue
            if isinstance(item, Record) and item.id == record_id:
                return True
        return False
