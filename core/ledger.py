from abc import ABC, abstractmethod
from typing import List


class LedgerAdapter(ABC):
    """
    Everything the store needs from a blob chain.

    - submit: append bytes under a namespace, returns the inclusion height.
      A returned height does not promise the blob is fetchable yet.
    - fetch: blobs under a namespace at one height, in ledger order;
      an empty list when the height has none.
    - current_tip: latest height the node knows about.
    """

    @abstractmethod
    async def submit(self, namespace: bytes, payload: bytes) -> int: ...

    @abstractmethod
    async def fetch(self, namespace: bytes, height: int) -> List[bytes]: ...

    @abstractmethod
    async def current_tip(self) -> int: ...

    async def aclose(self) -> None:
        return None
