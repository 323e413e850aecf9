"""
Design (models.py)
- Purpose: Define simple, typed data structures for domain entities (Location, Observation)
           and the status/result vocabularies shared by reconciler, ranking and menu.
- Inputs: Field values.
- Outputs: Dataclass / enum instances.
- Side effects: None.
- Thread-safety: All types are immutable; safe to share between worker threads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


@dataclass(frozen=True)
class Location:
    """
    Design (Location)
    - Purpose: One relay location (point of presence) from the discovery feed.
    - Fields:
        code: short POP code, unique key for the session.
        name: human label (may be empty).
        addresses: candidate IPv4 addresses in feed order; never empty once in a Registry.
    """
    code: str
    name: str
    addresses: Tuple[str, ...]

    @property
    def first_address(self) -> str | None:
        return self.addresses[0] if self.addresses else None


class ObservationKind(str, Enum):
    MS = "ms"
    TIMEOUT = "timeout"
    NO_DATA = "no-data"


@dataclass(frozen=True)
class Observation:
    """
    Design (Observation)
    - Purpose: Latency of one location, or one of two sentinel states.
    - Fields:
        kind: ObservationKind
        latency_ms: rounded average RTT; only set when kind is MS.
    """
    kind: ObservationKind
    latency_ms: int | None = None

    @classmethod
    def of(cls, latency_ms: int) -> "Observation":
        return cls(ObservationKind.MS, latency_ms)

    @classmethod
    def timeout(cls) -> "Observation":
        return cls(ObservationKind.TIMEOUT)

    @classmethod
    def no_data(cls) -> "Observation":
        return cls(ObservationKind.NO_DATA)

    def sort_key(self) -> Tuple[int, int]:
        """Numeric latencies first (ascending), then timeout, then no-data."""
        if self.kind is ObservationKind.MS:
            return (0, self.latency_ms or 0)
        if self.kind is ObservationKind.TIMEOUT:
            return (1, 0)
        return (2, 0)

    def __str__(self) -> str:
        if self.kind is ObservationKind.MS:
            return f"{self.latency_ms}ms"
        if self.kind is ObservationKind.TIMEOUT:
            return "TIMEOUT"
        return "N/A"


class BlockStatus(str, Enum):
    BLOCKED = "BLOCKED"
    UNBLOCKED = "UNBLOCKED"
    UNKNOWN = "UNKNOWN"


class BlockResult(str, Enum):
    ALREADY_BLOCKED = "already-blocked"
    BLOCKED_NOW = "blocked-now"
    FAILED = "failed"
    SKIPPED = "skipped"      # malformed address
    REFUSED = "refused"      # private / loopback / link-local


class UnblockResult(str, Enum):
    NOT_BLOCKED = "not-blocked"
    UNBLOCKED_NOW = "unblocked-now"
    FAILED = "failed"
    SKIPPED = "skipped"      # malformed address
