from typing import Optional
from config.settings import settings
from core.celestia_client import CelestiaLedger
from core.errors import ConfigurationError
from core.ledger import LedgerAdapter
from core.memory_ledger import MemoryLedger
from core.retry import RetryPolicy
from util.enums import LedgerBackend

_client: Optional[LedgerAdapter] = None


def transport_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.TRANSPORT_MAX_ATTEMPTS,
        base_delay=settings.TRANSPORT_BACKOFF_BASE,
        max_delay=settings.BACKOFF_MAX_SECONDS,
        jitter=0.1,
    )


def inclusion_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.INCLUSION_MAX_ATTEMPTS,
        base_delay=settings.INCLUSION_BACKOFF_BASE,
        max_delay=settings.BACKOFF_MAX_SECONDS,
    )


def build_ledger(backend: LedgerBackend | str | None = None) -> LedgerAdapter:
    try:
        backend = LedgerBackend(backend or settings.LEDGER_BACKEND)
    except ValueError as e:
        raise ConfigurationError(f"unknown ledger backend {backend!r}") from e

    if backend == LedgerBackend.MEMORY:
        return MemoryLedger()
    return CelestiaLedger(
        settings.LEDGER_RPC_URL,
        auth_token=settings.CELESTIA_NODE_AUTH_TOKEN,
        timeout=settings.LEDGER_TIMEOUT_SECONDS,
        retry=transport_policy(),
    )


async def get_ledger() -> LedgerAdapter:
    global _client
    if _client is None:
        _client = build_ledger()
        # Fail fast on startup if the node is unreachable.
        await _client.current_tip()
    return _client


async def close_ledger() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
