import asyncio
import logging
from typing import List, Optional, Set
from core import namespace as ns_codec
from core.bootstrap import bootstrap
from core.codec import new_metadata, new_record
from core.consolidation import ConsolidationEngine
from core.entities import AddResult, BootstrapResult, StoreSession
from core.errors import InvalidRecord, SubmissionError
from core.ledger import LedgerAdapter
from core.retry import RetryPolicy
from model.api import StoreInfoResponse
from model.record import Metadata, Record
from repository.record_repository import DEFAULT_INCLUSION, RecordRepository
from util.enums import BootstrapOutcome, InclusionStatus

logger = logging.getLogger(__name__)

# Per queued write, on top of the inclusion polling budget.
DRAIN_SLACK_SECONDS = 5.0


class StoreService:
    """
    add/get/list over one namespace of a blob ledger.

    One instance is one session: a single scan window and a single writer.
    Writes are serialized; reads re-scan the window on every call.
    """

    def __init__(
        self,
        ledger: LedgerAdapter,
        repo: RecordRepository,
        engine: ConsolidationEngine,
        boot: BootstrapResult,
    ) -> None:
        self._ledger = ledger
        self._repo = repo
        self._engine = engine
        self._session = boot.session
        self._metadata = boot.metadata
        self._outcome = boot.outcome
        self._write_lock = asyncio.Lock()
        self._inflight: Set["asyncio.Task[AddResult]"] = set()

    @classmethod
    async def open(
        cls,
        ledger: LedgerAdapter,
        *,
        label: str,
        width: int = 10,
        start_height: Optional[int] = None,
        search_limit: Optional[int] = None,
        concurrency: int = 8,
        inclusion: Optional[RetryPolicy] = None,
    ) -> "StoreService":
        namespace = ns_codec.encode(label, width)
        repo = RecordRepository(ledger, namespace, inclusion=inclusion or DEFAULT_INCLUSION)
        engine = ConsolidationEngine(ledger, concurrency=concurrency)
        boot = await bootstrap(
            repo, engine, label=label, start_height=start_height, search_limit=search_limit
        )
        logger.info(
            "store.open label=%s ns=%s start=%d outcome=%s",
            label,
            namespace.hex(),
            boot.session.start_height,
            boot.outcome.value,
        )
        return cls(ledger, repo, engine, boot)

    @property
    def session(self) -> StoreSession:
        return self._session

    @property
    def metadata(self) -> Metadata:
        return self._metadata

    @property
    def outcome(self) -> BootstrapOutcome:
        return self._outcome

    async def _refresh(self) -> StoreSession:
        tip = await self._ledger.current_tip()
        self._session = self._session.advance(tip)
        return self._session

    # ---------------- Writes ----------------

    async def add(self, key: str, value: str) -> AddResult:
        if not key or not key.strip():
            raise InvalidRecord("key must be a non-empty string")
        # An interrupted caller must not drop a write the ledger may already hold.
        task = asyncio.ensure_future(self._locked_add(key, value))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def aclose(self, timeout: Optional[float] = None) -> None:
        """
        Let writes already started run to the end before the ledger goes away.

        The wait is bounded by the inclusion policy, once per queued write.
        Whatever is still running after that is logged as pending and left
        behind.
        """
        pending = set(self._inflight)
        if not pending:
            return
        if timeout is None:
            per_write = self._repo.inclusion.total_delay() + DRAIN_SLACK_SECONDS
            timeout = per_write * len(pending)
        logger.info("store.drain writes=%d timeout=%.1f", len(pending), timeout)

        done, unfinished = await asyncio.wait(pending, timeout=timeout)
        for task in done:
            if task.cancelled():
                logger.warning("store.drain.cancelled")
                continue
            exc = task.exception()
            if exc is not None:
                logger.error("store.drain.error err=%s", exc)
                continue
            result = task.result()
            logger.info(
                "store.drain.done key=%s height=%d status=%s",
                result.record.key,
                result.height,
                result.status.value,
            )
        for _ in unfinished:
            logger.warning("store.drain.pending timeout=%.1f", timeout)

    async def _locked_add(self, key: str, value: str) -> AddResult:
        async with self._write_lock:
            record = new_record(key, value)
            height = await self._repo.append_record(record)
            status = await self._repo.confirm(record, height)
            if status == InclusionStatus.CONFIRMED:
                self._session = self._session.advance(height)

            metadata = new_metadata(
                self._repo.namespace,
                start_height=self._session.start_height,
                record_count=self._metadata.record_count + 1,
            )
            self._metadata = metadata
            try:
                metadata_height: Optional[int] = await self._repo.append_metadata(metadata)
            except SubmissionError as e:
                # Record is on the ledger already; a stale count is recoverable.
                logger.error("store.add.metadata.error key=%s err=%s", key, e)
                metadata_height = None

            logger.info(
                "store.add.ok key=%s height=%d status=%s", key, height, status.value
            )
            return AddResult(
                record=record, height=height, status=status, metadata_height=metadata_height
            )

    # ---------------- Reads ----------------

    async def get(self, key: str) -> Record:
        session = await self._refresh()
        return await self._engine.get(session, key)

    async def list(self) -> List[Record]:
        session = await self._refresh()
        result = await self._engine.scan(session)
        latest = result.metadata
        if latest is not None and latest.item.record_count > self._metadata.record_count:
            self._metadata = latest.item
        return result.current()

    async def describe(self) -> StoreInfoResponse:
        session = await self._refresh()
        return StoreInfoResponse(
            label=session.label,
            namespace=session.namespace.hex(),
            startHeight=session.start_height,
            tip=session.tip,
            recordCount=self._metadata.record_count,
            outcome=self._outcome,
            updatedAt=self._metadata.updated_at,
        )
