import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple
from core.codec import decode_entry
from core.entities import LedgerEntry, ScanResult, StoreSession, T
from core.errors import DecodeError, NotFound
from core.ledger import LedgerAdapter
from model.record import Metadata, Record
from util.timing import timed

logger = logging.getLogger(__name__)

METADATA_KEY = "__metadata__"


def fold_latest(
    entries: Iterable[LedgerEntry[T]],
    key: Callable[[T], str],
    into: Optional[Dict[str, LedgerEntry[T]]] = None,
) -> Dict[str, LedgerEntry[T]]:
    """
    Latest-write-wins merge used for both records and metadata.

    Highest (height, seq) wins per key; on a full tie the entry observed
    later replaces the earlier one.
    """
    latest = into if into is not None else {}
    for entry in entries:
        k = key(entry.item)
        current = latest.get(k)
        if current is None or entry.rank >= current.rank:
            latest[k] = entry
    return latest


async def iter_heights(
    ledger: LedgerAdapter,
    namespace: bytes,
    lo: int,
    hi: int,
    *,
    concurrency: int = 8,
) -> AsyncIterator[Tuple[int, List[bytes]]]:
    """
    Yield (height, payloads) for every height in [lo, hi], ascending.
    Heights are fetched concurrently in batches; output order never depends
    on which fetch finished first.
    """
    step = max(1, concurrency)

    async def _one(height: int) -> Tuple[int, List[bytes]]:
        return height, await ledger.fetch(namespace, height)

    for batch_lo in range(lo, hi + 1, step):
        batch_hi = min(hi, batch_lo + step - 1)
        results = await asyncio.gather(*(_one(h) for h in range(batch_lo, batch_hi + 1)))
        for height, payloads in results:
            yield height, payloads


class ConsolidationEngine:
    """
    Rebuilds current state from [session.start_height, session.tip].
    Every call re-scans the full window; nothing is cached between calls.
    """

    def __init__(self, ledger: LedgerAdapter, *, concurrency: int = 8) -> None:
        self._ledger = ledger
        self._concurrency = max(1, concurrency)

    async def scan(
        self,
        session: StoreSession,
        *,
        key: Optional[str] = None,
        include_records: bool = True,
    ) -> ScanResult:
        lo, hi = session.window
        ns_hex = session.namespace.hex()
        result = ScanResult()
        meta: Dict[str, LedgerEntry[Metadata]] = {}
        if hi < lo:
            return result

        with timed(logger, "scan", lo=lo, hi=hi, key=key or "*"):
            async for height, payloads in iter_heights(
                self._ledger, session.namespace, lo, hi, concurrency=self._concurrency
            ):
                result.heights_scanned += 1
                records: List[LedgerEntry[Record]] = []
                for position, payload in enumerate(payloads):
                    try:
                        item = decode_entry(payload)
                    except DecodeError as e:
                        result.skipped += 1
                        logger.debug("scan.skip height=%d pos=%d err=%s", height, position, e)
                        continue

                    if isinstance(item, Metadata):
                        if item.namespace is not None and item.namespace != ns_hex:
                            result.skipped += 1
                            continue
                        entry = LedgerEntry(height, position, item)
                        if result.anchor is None:
                            result.anchor = entry
                        fold_latest([entry], lambda _m: METADATA_KEY, into=meta)
                    elif include_records and (key is None or item.key == key):
                        records.append(LedgerEntry(height, position, item))

                fold_latest(records, lambda r: r.key, into=result.records)

        result.metadata = meta.get(METADATA_KEY)
        logger.info(
            "scan.result lo=%d hi=%d keys=%d skipped=%d",
            lo,
            hi,
            len(result.records),
            result.skipped,
        )
        return result

    async def get(self, session: StoreSession, key: str) -> Record:
        result = await self.scan(session, key=key)
        entry = result.records.get(key)
        if entry is None:
            raise NotFound(key)
        return entry.item

    async def list(self, session: StoreSession) -> List[Record]:
        result = await self.scan(session)
        return result.current()
