"""
Pytest configuration and fixtures for the blob-ledger store tests.

Environment is pinned before any project module builds its settings:
in-process ledger, no Redis, no .env lookup.
"""

import logging
import os

os.environ["APP_ENV"] = "prod"
os.environ["LEDGER_BACKEND"] = "memory"
os.environ.pop("REDIS_URL", None)
for _name in ("START_HEIGHT", "NAMESPACE_LABEL", "NAMESPACE_WIDTH"):
    os.environ.pop(_name, None)

import pytest

from core.memory_ledger import MemoryLedger
from core.retry import RetryPolicy
from service.store_service import StoreService

# Keep handlers off the per-test captured streams.
logging.getLogger()._blobkv_inited = True  # type: ignore[attr-defined]


@pytest.fixture
def fast_policy():
    """Retry policy that never sleeps."""
    return RetryPolicy(max_attempts=3, base_delay=0.0)


@pytest.fixture
def ledger():
    return MemoryLedger(tip=100)


@pytest.fixture
async def store(ledger, fast_policy):
    return await StoreService.open(
        ledger, label="testdb", search_limit=50, concurrency=4, inclusion=fast_policy
    )
