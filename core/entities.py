from dataclasses import dataclass, field, replace
from typing import Dict, Generic, List, Optional, Tuple, TypeVar
from model.record import Metadata, Record
from util.enums import BootstrapOutcome, InclusionStatus

T = TypeVar("T", Record, Metadata)


@dataclass(frozen=True)
class LedgerEntry(Generic[T]):
    """A decoded item plus where it was observed."""

    height: int
    position: int  # index in the adapter's return order for this height
    item: T

    @property
    def rank(self) -> Tuple[int, int]:
        return self.height, self.item.seq


@dataclass(frozen=True)
class StoreSession:
    """
    Immutable per-store scan state. The tip only moves forward;
    `advance` hands back a new session instead of mutating this one.
    """

    label: str
    namespace: bytes
    start_height: int
    tip: int

    def advance(self, tip: int) -> "StoreSession":
        if tip <= self.tip:
            return self
        return replace(self, tip=tip)

    @property
    def window(self) -> Tuple[int, int]:
        return self.start_height, self.tip


@dataclass
class ScanResult:
    records: Dict[str, LedgerEntry[Record]] = field(default_factory=dict)
    metadata: Optional[LedgerEntry[Metadata]] = None  # newest metadata entry
    anchor: Optional[LedgerEntry[Metadata]] = None  # lowest-height metadata entry
    heights_scanned: int = 0
    skipped: int = 0

    def current(self) -> List[Record]:
        return [self.records[k].item for k in sorted(self.records)]


@dataclass(frozen=True)
class BootstrapResult:
    session: StoreSession
    metadata: Metadata
    outcome: BootstrapOutcome
    anchor_height: Optional[int]  # height the adopted metadata entry was found at


@dataclass(frozen=True)
class AddResult:
    record: Record
    height: int
    status: InclusionStatus
    metadata_height: Optional[int] = None
