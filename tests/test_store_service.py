"""
Store facade tests: add/get/list semantics over the in-memory ledger.
"""

import asyncio

import pytest

from core.errors import FetchError, InvalidRecord, NotFound, SubmissionError
from core.memory_ledger import MemoryLedger
from core.retry import RetryPolicy
from repository.record_repository import DEFAULT_INCLUSION
from service.store_service import StoreService
from util.enums import BootstrapOutcome, InclusionStatus


async def test_testdb_scenario(store):
    result = await store.add("user1", '{"name":"John"}')
    assert result.status == InclusionStatus.CONFIRMED

    record = await store.get("user1")
    assert record.value == '{"name":"John"}'
    assert record.id == result.record.id

    records = await store.list()
    assert [r.key for r in records] == ["user1"]


async def test_later_add_wins(store):
    first = await store.add("k", "v1")
    second = await store.add("k", "v2")
    assert second.height > first.height
    assert (await store.get("k")).value == "v2"


async def test_list_counts(store):
    for i in range(5):
        await store.add(f"key{i}", str(i))
    for v in ("a", "b", "c"):
        await store.add("same", v)

    records = {r.key: r.value for r in await store.list()}
    assert len(records) == 6
    assert records["same"] == "c"


async def test_get_unwritten_key_raises_not_found(store):
    with pytest.raises(NotFound):
        await store.get("ghost")


async def test_list_empty_store(store):
    assert await store.list() == []


async def test_empty_key_rejected(store, ledger):
    before = ledger.submit_calls
    with pytest.raises(InvalidRecord):
        await store.add("  ", "v")
    assert ledger.submit_calls == before


async def test_add_appends_metadata_with_running_count(store, ledger):
    await store.add("a", "1")
    result = await store.add("b", "2")
    assert result.metadata_height is not None
    assert store.metadata.record_count == 2
    assert store.metadata.start_height == store.session.start_height


async def test_restart_resumes_records(ledger, fast_policy):
    first = await StoreService.open(ledger, label="testdb", search_limit=50, inclusion=fast_policy)
    await first.add("user1", "hello")
    ledger.mine(10)

    second = await StoreService.open(ledger, label="testdb", search_limit=50, inclusion=fast_policy)
    assert second.outcome == BootstrapOutcome.RESUMED
    assert second.session.start_height == first.session.start_height
    assert second.metadata.record_count == 1
    assert (await second.get("user1")).value == "hello"


async def test_pending_when_inclusion_lags_past_policy(fast_policy):
    ledger = MemoryLedger(tip=10, inclusion_lag=5)
    store = await StoreService.open(ledger, label="laggy", search_limit=5, inclusion=fast_policy)

    result = await store.add("k", "v")

    assert result.status == InclusionStatus.PENDING
    assert result.height == 12  # metadata at 11, record at 12


async def test_confirmed_when_inclusion_lag_within_policy():
    ledger = MemoryLedger(tip=10, inclusion_lag=2)
    policy = RetryPolicy(max_attempts=3, base_delay=0.0)
    store = await StoreService.open(ledger, label="laggy", search_limit=5, inclusion=policy)

    result = await store.add("k", "v")

    assert result.status == InclusionStatus.CONFIRMED


async def test_same_block_writes_tie_break_on_seq(fast_policy):
    ledger = MemoryLedger(tip=10, auto_mine=False)
    store = await StoreService.open(ledger, label="batch", search_limit=5, inclusion=fast_policy)

    a = await store.add("k", "first")
    b = await store.add("k", "second")
    assert a.height == b.height == 11

    assert (await store.get("k")).value == "second"


async def test_concurrent_adds_are_serialized(store):
    results = await asyncio.gather(*(store.add(f"k{i}", "v") for i in range(5)))
    heights = [r.height for r in results]
    assert len(set(heights)) == 5
    assert store.metadata.record_count == 5


async def test_describe(store):
    await store.add("a", "1")
    info = await store.describe()
    assert info.label == "testdb"
    assert info.namespace == b"testdb\x00\x00\x00\x00".hex()
    assert info.startHeight == 100
    assert info.tip >= 101
    assert info.recordCount == 1
    assert info.outcome == BootstrapOutcome.CREATED


class _BrokenLedger(MemoryLedger):
    def __init__(self, **kw):
        super().__init__(**kw)
        self.fail_fetch = False
        self.reject_submit = False

    async def fetch(self, namespace, height):
        if self.fail_fetch:
            raise FetchError("node down")
        return await super().fetch(namespace, height)

    async def submit(self, namespace, payload):
        if self.reject_submit:
            raise SubmissionError("rejected")
        return await super().submit(namespace, payload)


async def test_transport_errors_surface_distinctly_from_not_found(fast_policy):
    ledger = _BrokenLedger(tip=10)
    store = await StoreService.open(ledger, label="broken", search_limit=5, inclusion=fast_policy)
    ledger.fail_fetch = True

    with pytest.raises(FetchError):
        await store.get("k")


async def test_submission_error_propagates(fast_policy):
    ledger = _BrokenLedger(tip=10)
    store = await StoreService.open(ledger, label="broken", search_limit=5, inclusion=fast_policy)
    ledger.reject_submit = True

    with pytest.raises(SubmissionError):
        await store.add("k", "v")


async def test_fetch_errors_while_confirming_end_pending(fast_policy):
    ledger = _BrokenLedger(tip=10)
    store = await StoreService.open(ledger, label="broken", search_limit=5, inclusion=fast_policy)
    ledger.fail_fetch = True

    result = await store.add("k", "v")

    assert result.status == InclusionStatus.PENDING


async def test_default_inclusion_matches_block_time():
    store = await StoreService.open(MemoryLedger(tip=10), label="defaults", search_limit=5)
    assert store._repo.inclusion == DEFAULT_INCLUSION
    assert DEFAULT_INCLUSION.max_attempts == 6
    assert DEFAULT_INCLUSION.base_delay == 1.0


async def test_cancelled_add_completes_when_store_closes():
    ledger = MemoryLedger(tip=10, inclusion_lag=2)
    policy = RetryPolicy(max_attempts=3, base_delay=0.05)
    store = await StoreService.open(ledger, label="interrupted", search_limit=5, inclusion=policy)
    assert ledger.submit_calls == 1

    caller = asyncio.ensure_future(store.add("k", "v"))
    await asyncio.sleep(0.02)  # record submitted, confirm still polling
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    await store.aclose()

    assert ledger.submit_calls == 3  # anchor, record, metadata update
    assert store.metadata.record_count == 1
    assert (await store.get("k")).value == "v"


def test_interrupted_run_drains_before_loop_shutdown():
    ledger = MemoryLedger(tip=10, inclusion_lag=2)
    policy = RetryPolicy(max_attempts=3, base_delay=0.05)

    async def session():
        store = await StoreService.open(ledger, label="interrupted", search_limit=5, inclusion=policy)
        try:
            await store.add("k", "v")
        finally:
            await store.aclose()

    async def main():
        task = asyncio.ensure_future(session())
        asyncio.get_running_loop().call_later(0.02, task.cancel)
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(main())

    assert ledger.submit_calls == 3


async def test_close_gives_up_after_timeout(fast_policy):
    ledger = MemoryLedger(tip=10)
    store = await StoreService.open(ledger, label="stuck", search_limit=5, inclusion=fast_policy)
    release = asyncio.Event()

    async def never_lands(namespace, payload):
        await release.wait()
        return 0

    ledger.submit = never_lands
    caller = asyncio.ensure_future(store.add("k", "v"))
    await asyncio.sleep(0)
    caller.cancel()

    await store.aclose(timeout=0.01)
    assert len(store._inflight) == 1

    release.set()
    await asyncio.sleep(0.01)
    assert not store._inflight


async def test_close_without_writes_is_a_no_op(store, ledger):
    before = ledger.submit_calls
    await store.aclose()
    assert ledger.submit_calls == before
