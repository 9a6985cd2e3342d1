import logging
from typing import Final, Optional
from core.codec import new_metadata
from core.consolidation import ConsolidationEngine
from core.entities import BootstrapResult, StoreSession
from repository.record_repository import RecordRepository
from util.enums import BootstrapOutcome
from util.timing import timed

DEFAULT_SEARCH_LIMIT: Final[int] = 1000

logger = logging.getLogger(__name__)


async def bootstrap(
    repo: RecordRepository,
    engine: ConsolidationEngine,
    *,
    label: str,
    start_height: Optional[int] = None,
    search_limit: Optional[int] = None,
) -> BootstrapResult:
    """
    Find or create the store anchor for `repo.namespace`.

    1) explicit start_height: adopt it verbatim; reuse metadata found at that
       height, otherwise append fresh metadata anchored there.
    2) otherwise scan [max(0, tip - search_limit), tip] ascending. The lowest
       metadata entry names the anchor; the newest one gives current counts.
       Nothing found means a new store anchored at tip.

    A limit too small to reach an existing anchor creates a second, disjoint
    store under the same namespace. That is accepted, only logged.
    """
    namespace = repo.namespace
    tip = await repo.tip()

    with timed(logger, "bootstrap", label=label, tip=tip):
        if start_height is not None:
            return await _pinned(repo, engine, label, namespace, start_height, tip)

        limit = DEFAULT_SEARCH_LIMIT if search_limit is None else max(0, search_limit)
        lo = max(0, tip - limit)
        logger.info("bootstrap.search label=%s window=[%d,%d]", label, lo, tip)

        probe = StoreSession(label=label, namespace=namespace, start_height=lo, tip=tip)
        found = await engine.scan(probe, include_records=False)

        if found.anchor is not None and found.metadata is not None:
            anchor = found.anchor.item.start_height
            logger.info(
                "bootstrap.resumed label=%s start=%d found_at=%d count=%d",
                label,
                anchor,
                found.anchor.height,
                found.metadata.item.record_count,
            )
            return BootstrapResult(
                session=StoreSession(label, namespace, anchor, tip),
                metadata=found.metadata.item,
                outcome=BootstrapOutcome.RESUMED,
                anchor_height=found.anchor.height,
            )

        metadata = new_metadata(namespace, start_height=tip)
        height = await repo.append_metadata(metadata)
        logger.warning(
            "bootstrap.created label=%s start=%d submitted_at=%d (no anchor in last %d blocks)",
            label,
            tip,
            height,
            limit,
        )
        return BootstrapResult(
            session=StoreSession(label, namespace, tip, tip),
            metadata=metadata,
            outcome=BootstrapOutcome.CREATED,
            anchor_height=height,
        )


async def _pinned(
    repo: RecordRepository,
    engine: ConsolidationEngine,
    label: str,
    namespace: bytes,
    start_height: int,
    tip: int,
) -> BootstrapResult:
    logger.info("bootstrap.pinned label=%s height=%d", label, start_height)
    probe = StoreSession(label, namespace, start_height, start_height)
    found = await engine.scan(probe, include_records=False)
    session = StoreSession(label, namespace, start_height, tip)

    if found.metadata is not None:
        logger.info("bootstrap.resumed label=%s start=%d", label, start_height)
        return BootstrapResult(
            session=session,
            metadata=found.metadata.item,
            outcome=BootstrapOutcome.RESUMED,
            anchor_height=start_height,
        )

    metadata = new_metadata(namespace, start_height=start_height)
    height = await repo.append_metadata(metadata)
    logger.info(
        "bootstrap.created label=%s start=%d submitted_at=%d", label, start_height, height
    )
    return BootstrapResult(
        session=session,
        metadata=metadata,
        outcome=BootstrapOutcome.CREATED,
        anchor_height=height,
    )
