r"""
Core types for adaptive ranking benchmarks.

    from rank_bench.types import BenchmarkReport, Status

    report = benchmark(candidates, repeat_count=50)
    if report.ok:
        print(report.ranking)
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import Any

__all__ = [
    "Status",
    "EstimateState",
    "RefineConfig",
    "CandidateResult",
    "BenchmarkReport",
]


class Status(IntEnum):
    """Benchmark outcome status."""

    CONVERGED = auto()
    UNSTABLE = auto()
    # Ranking separated, but some mean missed the precision target
    IMPRECISE = auto()


@dataclass(frozen=True, slots=True)
class EstimateState:
    """Persistable state of one online estimate.

    Attributes:
        observation_count: Number of trial samples folded in.
        running_mean: Mean of the samples.
        running_variance: Sample variance (n - 1 denominator).
    """

    observation_count: int
    running_mean: float
    running_variance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "observation_count": self.observation_count,
            "running_mean": self.running_mean,
            "running_variance": self.running_variance,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EstimateState":
        return cls(
            observation_count=int(data["observation_count"]),
            running_mean=float(data["running_mean"]),
            running_variance=float(data["running_variance"]),
        )


@dataclass(frozen=True, slots=True)
class RefineConfig:
    """Stopping-rule configuration for the adaptive refiner.

    Attributes:
        name: Preset name.
        n_min: Rounds before any stopping check is made.
        n_max: Hard cap on observations per candidate.
        rtol: Target relative half-width for every candidate.
        tail_probability: One-sided tail probability of the intervals.
        zero_mean_epsilon: Denominator substituted when a mean is exactly zero.
    """

    name: str
    n_min: int = 10
    n_max: int = 100
    rtol: float = 0.01
    tail_probability: float = 0.01
    zero_mean_epsilon: float = 1e-12

    def __post_init__(self) -> None:
        if self.n_min < 1:
            msg = f"n_min must be >= 1, got {self.n_min}"
            raise ValueError(msg)
        if self.n_max < self.n_min:
            msg = f"n_max ({self.n_max}) must be >= n_min ({self.n_min})"
            raise ValueError(msg)
        if self.rtol <= 0:
            msg = f"rtol must be positive, got {self.rtol}"
            raise ValueError(msg)
        if not 0.0 < self.tail_probability < 0.5:
            msg = f"tail_probability must be in (0, 0.5), got {self.tail_probability}"
            raise ValueError(msg)
        if self.zero_mean_epsilon <= 0:
            msg = f"zero_mean_epsilon must be positive, got {self.zero_mean_epsilon}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class CandidateResult:
    """Final estimate for one candidate.

    Attributes:
        name: Candidate name.
        mean: Mean seconds per call.
        half_width: Confidence-interval half-width in seconds.
        relative_half_width: half_width / |mean| (inf when mean is zero).
        observation_count: Trial samples collected, including resumed ones.
        stable: True if the whole ranking was separated at the end.
        rank: Position in the ranking by mean (0 = fastest).
    """

    name: str
    mean: float
    half_width: float
    relative_half_width: float
    observation_count: int
    stable: bool
    rank: int

    @property
    def lower_bound(self) -> float:
        return self.mean - self.half_width

    @property
    def upper_bound(self) -> float:
        return self.mean + self.half_width

    @property
    def mean_ms(self) -> float:
        """Mean time per call in milliseconds."""
        return self.mean * 1_000

    @property
    def calls_per_second(self) -> float:
        if self.mean == 0:
            return float("inf")
        return 1.0 / self.mean


@dataclass(frozen=True, slots=True)
class BenchmarkReport(Mapping[str, CandidateResult]):
    """Result record of one orchestrated benchmark session.

    Behaves as a read-only mapping from candidate name to its result.

    Attributes:
        results: Per-candidate results keyed by name.
        status: CONVERGED, UNSTABLE or IMPRECISE.
        rounds: Total rounds reached (resumed rounds included).
        repeat_count: Calls per trial sample.
        config: Refinement configuration used.
        session: Session identity, if persistence was configured.
        metadata: Static tags supplied by the caller.
    """

    results: dict[str, CandidateResult]
    status: Status
    rounds: int
    repeat_count: int
    config: RefineConfig
    session: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> CandidateResult:
        return self.results[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        """True if the ranking converged."""
        return self.status == Status.CONVERGED

    @property
    def stable(self) -> bool:
        return all(r.stable for r in self.results.values())

    @property
    def ranking(self) -> list[str]:
        """Candidate names, fastest first."""
        return [r.name for r in sorted(self.results.values(), key=lambda r: r.rank)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.name.lower(),
            "rounds": self.rounds,
            "repeat_count": self.repeat_count,
            "session": self.session,
            "config": {
                "name": self.config.name,
                "n_min": self.config.n_min,
                "n_max": self.config.n_max,
                "rtol": self.config.rtol,
                "tail_probability": self.config.tail_probability,
            },
            "metadata": dict(self.metadata),
            "results": {
                name: {
                    "mean": r.mean,
                    "half_width": r.half_width,
                    "relative_half_width": r.relative_half_width,
                    "observation_count": r.observation_count,
                    "stable": r.stable,
                    "rank": r.rank,
                }
                for name, r in self.results.items()
            },
        }
