from collections import defaultdict
from typing import DefaultDict, Dict, List, Tuple
from core.ledger import LedgerAdapter


class MemoryLedger(LedgerAdapter):
    """
    In-process blob chain for local runs and tests.

    - Each submit lands in the next block and, with `auto_mine`, moves the tip.
      With `auto_mine=False` submissions pile into tip+1 until `mine()`.
    - `inclusion_lag` hides a freshly submitted blob from the first N fetches
      of its height, mimicking a node that has not caught up yet.
    """

    def __init__(self, *, tip: int = 1, inclusion_lag: int = 0, auto_mine: bool = True) -> None:
        self._tip = tip
        self._lag = inclusion_lag
        self.auto_mine = auto_mine
        self._blocks: DefaultDict[int, List[Tuple[bytes, bytes]]] = defaultdict(list)
        # (height, index) -> fetches still hidden
        self._hidden: Dict[Tuple[int, int], int] = {}
        self.fetch_calls = 0
        self.submit_calls = 0

    @property
    def tip(self) -> int:
        return self._tip

    def mine(self, blocks: int = 1) -> int:
        self._tip += blocks
        return self._tip

    def put(self, namespace: bytes, height: int, payload: bytes) -> None:
        """Place a blob directly, bypassing lag; handy for foreign payloads."""
        self._blocks[height].append((namespace, payload))

    async def submit(self, namespace: bytes, payload: bytes) -> int:
        self.submit_calls += 1
        height = self._tip + 1
        if self.auto_mine:
            self._tip = height
        block = self._blocks[height]
        block.append((namespace, payload))
        if self._lag:
            self._hidden[(height, len(block) - 1)] = self._lag
        return height

    async def fetch(self, namespace: bytes, height: int) -> List[bytes]:
        self.fetch_calls += 1
        out: List[bytes] = []
        for idx, (ns, payload) in enumerate(self._blocks.get(height, [])):
            left = self._hidden.get((height, idx), 0)
            if left:
                self._hidden[(height, idx)] = left - 1
                continue
            if ns == namespace:
                out.append(payload)
        return out

    async def current_tip(self) -> int:
        return self._tip
