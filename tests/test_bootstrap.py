"""
Metadata bootstrap tests.
"""

from core.bootstrap import DEFAULT_SEARCH_LIMIT, bootstrap
from core.codec import encode_metadata, new_metadata
from core.consolidation import ConsolidationEngine
from core.memory_ledger import MemoryLedger
from core.namespace import encode
from repository.record_repository import RecordRepository
from util.enums import BootstrapOutcome

NS = encode("newdb")


def _parts(ledger, fast_policy):
    return RecordRepository(ledger, NS, inclusion=fast_policy), ConsolidationEngine(ledger, concurrency=16)


async def test_creates_anchor_at_tip_when_window_is_empty(fast_policy):
    ledger = MemoryLedger(tip=500)
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb", search_limit=100)

    assert result.outcome == BootstrapOutcome.CREATED
    assert result.session.start_height == 500
    assert result.metadata.record_count == 0
    assert ledger.submit_calls == 1
    assert result.anchor_height == 501


async def test_restart_with_wide_window_resumes_same_store(fast_policy):
    ledger = MemoryLedger(tip=125000)
    repo, engine = _parts(ledger, fast_policy)
    first = await bootstrap(repo, engine, label="newdb", search_limit=1000)
    assert first.outcome == BootstrapOutcome.CREATED
    assert first.session.start_height == 125000

    ledger.mine(999)  # tip 126000
    second = await bootstrap(repo, engine, label="newdb", search_limit=1000)

    assert second.outcome == BootstrapOutcome.RESUMED
    assert second.session.start_height == first.session.start_height
    assert second.session.tip == 126000
    assert ledger.submit_calls == 1


async def test_oldest_anchor_in_window_wins(fast_policy):
    ledger = MemoryLedger(tip=300)
    ledger.put(NS, 210, encode_metadata(new_metadata(NS, start_height=209)))
    ledger.put(NS, 250, encode_metadata(new_metadata(NS, start_height=249)))
    ledger.put(NS, 260, encode_metadata(new_metadata(NS, start_height=209, record_count=4)))
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb", search_limit=200)

    assert result.outcome == BootstrapOutcome.RESUMED
    assert result.session.start_height == 209
    assert result.anchor_height == 210
    assert result.metadata.record_count == 4


async def test_metadata_update_inside_window_points_back_to_anchor(fast_policy):
    ledger = MemoryLedger(tip=5000)
    # anchor itself is out of reach, a later update is not
    ledger.put(NS, 1000, encode_metadata(new_metadata(NS, start_height=999)))
    ledger.put(NS, 4800, encode_metadata(new_metadata(NS, start_height=999, record_count=7)))
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb", search_limit=500)

    assert result.outcome == BootstrapOutcome.RESUMED
    assert result.session.start_height == 999
    assert result.metadata.record_count == 7


async def test_short_window_creates_disjoint_store(fast_policy):
    ledger = MemoryLedger(tip=5000)
    ledger.put(NS, 1000, encode_metadata(new_metadata(NS, start_height=999)))
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb", search_limit=10)

    assert result.outcome == BootstrapOutcome.CREATED
    assert result.session.start_height == 5000


async def test_explicit_start_height_is_adopted_verbatim(fast_policy):
    ledger = MemoryLedger(tip=800)
    ledger.put(NS, 700, encode_metadata(new_metadata(NS, start_height=650, record_count=2)))
    repo, engine = _parts(ledger, fast_policy)

    resumed = await bootstrap(repo, engine, label="newdb", start_height=700, search_limit=1)
    assert resumed.outcome == BootstrapOutcome.RESUMED
    assert resumed.session.start_height == 700
    assert resumed.metadata.record_count == 2

    created = await bootstrap(repo, engine, label="newdb", start_height=123, search_limit=5000)
    assert created.outcome == BootstrapOutcome.CREATED
    assert created.session.start_height == 123
    assert created.metadata.start_height == 123


async def test_default_search_limit(fast_policy):
    ledger = MemoryLedger(tip=DEFAULT_SEARCH_LIMIT + 50)
    ledger.put(NS, 50, encode_metadata(new_metadata(NS, start_height=50)))
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb")

    assert result.outcome == BootstrapOutcome.RESUMED
    assert result.session.start_height == 50


async def test_other_namespaces_are_invisible(fast_policy):
    ledger = MemoryLedger(tip=100)
    other = encode("otherdb")
    ledger.put(other, 90, encode_metadata(new_metadata(other, start_height=90)))
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb", search_limit=50)

    assert result.outcome == BootstrapOutcome.CREATED


async def test_resumes_store_written_without_kind_tags(fast_policy):
    ledger = MemoryLedger(tip=400)
    ledger.put(
        NS, 320, b'{"record_count": 0, "last_updated": "2024-01-01T00:00:00Z", "start_height": 319}'
    )
    ledger.put(
        NS,
        330,
        b'{"key": "user1", "value": "hello", "created_at": "2024-01-01T00:01:00Z", '
        b'"updated_at": null, "id": "r-1"}',
    )
    ledger.put(
        NS, 331, b'{"record_count": 1, "last_updated": "2024-01-01T00:01:00Z", "start_height": 319}'
    )
    repo, engine = _parts(ledger, fast_policy)

    result = await bootstrap(repo, engine, label="newdb", search_limit=200)

    assert result.outcome == BootstrapOutcome.RESUMED
    assert result.session.start_height == 319
    assert result.metadata.record_count == 1
    assert ledger.submit_calls == 0
    assert (await engine.get(result.session, "user1")).value == "hello"
