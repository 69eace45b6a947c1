r"""
Protocol definitions for the pluggable seams of rank-bench.

The refiner only needs arms that produce trial samples, the timing code only
needs a clock, and persistence goes through a store, a serializer and a
cache backend.

    from rank_bench.protocols import Arm

    class ConstantArm:
        def sample(self, round_seed: str) -> float:
            return 1.0
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from rank_bench.types import EstimateState

__all__ = [
    "Clock",
    "Arm",
    "EstimateStore",
    "Serializer",
    "CacheBackend",
]


@runtime_checkable
class Clock(Protocol):
    """Monotonic clock reporting wall time and GC pause time separately."""

    def now_ns(self) -> int:
        """Monotonic wall time in nanoseconds."""
        ...

    def gc_ns(self) -> int:
        """Total garbage-collection pause time observed so far, in nanoseconds."""
        ...


@runtime_checkable
class Arm(Protocol):
    """One candidate as seen by the refiner."""

    @property
    def name(self) -> str:
        """Candidate name."""
        ...

    def sample(self, round_seed: str) -> float:
        """Draw one trial sample using the round's shared random seed."""
        ...


@runtime_checkable
class EstimateStore(Protocol):
    """Loads and saves per-candidate estimates keyed by session identity."""

    def load(self, session: str) -> dict[str, EstimateState] | None:
        """Return persisted estimates, or None if the session is unknown."""
        ...

    def save(self, session: str, states: Mapping[str, EstimateState]) -> None:
        """Persist estimates for the session, replacing earlier ones."""
        ...


@runtime_checkable
class Serializer(Protocol):
    """Converts cached values to and from bytes."""

    @property
    def suffix(self) -> str:
        """File suffix for directory-backed caches (e.g. ".json")."""
        ...

    def dumps(self, value: Any) -> bytes:
        ...

    def loads(self, data: bytes) -> Any:
        ...


@runtime_checkable
class CacheBackend(Protocol):
    """Raw byte storage addressed by (session, field, suffix)."""

    def read(self, session: str, field: str, suffix: str) -> bytes | None:
        """Return stored bytes, or None if absent."""
        ...

    def write(self, session: str, field: str, suffix: str, data: bytes) -> None:
        ...

    def delete(self, session: str, field: str, suffix: str) -> bool:
        """Remove an entry; return True if one existed."""
        ...
