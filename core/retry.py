import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff with a capped attempt count.

    attempt 0 runs immediately; before attempt n (n >= 1) we sleep
    base * factor^(n-1), clamped to max_delay, plus up to `jitter` of that.
    """

    max_attempts: int = 3
    base_delay: float = 0.25
    factor: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.0

    def delay(self, attempt: int) -> float:
        if attempt <= 0:
            return 0.0
        d = min(self.max_delay, self.base_delay * (self.factor ** (attempt - 1)))
        if self.jitter:
            d += random.uniform(0, d * self.jitter)
        return d

    def total_delay(self) -> float:
        """Upper bound on the time spent sleeping across all attempts."""
        return sum(
            min(self.max_delay, self.base_delay * (self.factor ** (a - 1))) * (1 + self.jitter)
            for a in range(1, max(1, self.max_attempts))
        )

    async def sleep(self, attempt: int) -> None:
        d = self.delay(attempt)
        if d > 0:
            await asyncio.sleep(d)

    async def run(
        self,
        op: Callable[[], Awaitable[T]],
        *,
        retry_on: Tuple[Type[BaseException], ...],
        name: str = "op",
    ) -> T:
        """Run `op`, retrying on `retry_on`; the last failure is re-raised."""
        attempts = max(1, self.max_attempts)
        for attempt in range(attempts):
            await self.sleep(attempt)
            try:
                return await op()
            except retry_on as e:
                if attempt + 1 >= attempts:
                    logger.warning(
                        "%s.retry.exhausted attempts=%d err=%s", name, attempts, e
                    )
                    raise
                logger.info("%s.retry attempt=%d err=%s", name, attempt + 1, e)
        raise AssertionError("unreachable")


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0)
