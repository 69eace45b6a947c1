r"""
Online mean/variance estimation with normal confidence intervals.

Samples are folded in one at a time with Welford's update, so the estimator
never keeps the raw samples and can be persisted as three numbers.

    from rank_bench.stats import OnlineEstimator

    est = OnlineEstimator(tail_probability=0.01)
    est.extend([1.02, 0.98, 1.01])
    print(est.mean, est.half_width)
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from statistics import NormalDist

from rank_bench.errors import DivisionUndefined
from rank_bench.types import EstimateState

__all__ = ["OnlineEstimator", "rank", "is_stable"]

DEFAULT_TAIL_PROBABILITY = 0.01


class OnlineEstimator:
    """Running mean and sample variance of a stream of trial samples.

    The interval is mean +/- z * standard_error with
    z = inverse-normal-CDF(1 - tail_probability), fixed at construction.

    Two estimators compare with ``<`` only when their intervals are
    disjoint, so ``a < b`` and ``b < a`` can both be False.
    """

    __slots__ = ("_count", "_mean", "_m2", "_tail_probability", "_z")

    def __init__(self, tail_probability: float = DEFAULT_TAIL_PROBABILITY) -> None:
        if not 0.0 < tail_probability < 0.5:
            msg = f"tail_probability must be in (0, 0.5), got {tail_probability}"
            raise ValueError(msg)
        self._tail_probability = tail_probability
        self._z = NormalDist().inv_cdf(1.0 - tail_probability)
        self._count = 0
        self._mean = 0.0
        self._m2 = 0.0

    @classmethod
    def from_state(
        cls,
        state: EstimateState,
        tail_probability: float = DEFAULT_TAIL_PROBABILITY,
    ) -> OnlineEstimator:
        """Rebuild an estimator from persisted state."""
        if state.observation_count < 0:
            msg = f"observation_count must be >= 0, got {state.observation_count}"
            raise ValueError(msg)
        est = cls(tail_probability)
        est._count = state.observation_count
        est._mean = state.running_mean if state.observation_count else 0.0
        est._m2 = state.running_variance * (state.observation_count - 1) if state.observation_count > 1 else 0.0
        return est

    def state(self) -> EstimateState:
        """Snapshot of the persistable fields."""
        return EstimateState(
            observation_count=self._count,
            running_mean=self._mean,
            running_variance=self.variance,
        )

    def add(self, sample: float) -> None:
        """Fold one trial sample into the estimate."""
        self._count += 1
        delta = sample - self._mean
        self._mean += delta / self._count
        self._m2 += delta * (sample - self._mean)

    def extend(self, samples: Iterable[float]) -> None:
        for sample in samples:
            self.add(sample)

    def merge(self, other: OnlineEstimator) -> None:
        """Fold in the observations summarized by another estimator.

        Uses the pairwise combination of Chan, Golub and LeVeque.
        """
        if other._count == 0:
            return
        if self._count == 0:
            self._count, self._mean, self._m2 = other._count, other._mean, other._m2
            return
        count = self._count + other._count
        delta = other._mean - self._mean
        self._mean += delta * other._count / count
        self._m2 += other._m2 + delta * delta * self._count * other._count / count
        self._count = count

    @property
    def tail_probability(self) -> float:
        return self._tail_probability

    @property
    def z(self) -> float:
        """Interval multiplier."""
        return self._z

    @property
    def observation_count(self) -> int:
        return self._count

    @property
    def mean(self) -> float:
        return self._mean

    @property
    def variance(self) -> float:
        """Sample variance; 0.0 until two observations exist."""
        if self._count < 2:
            return 0.0
        # m2 can drift a hair below zero on constant streams
        return max(self._m2, 0.0) / (self._count - 1)

    @property
    def standard_error(self) -> float:
        """Standard error of the mean; infinite until two observations exist."""
        if self._count < 2:
            return math.inf
        return math.sqrt(self.variance / self._count)

    @property
    def half_width(self) -> float:
        return self._z * self.standard_error

    @property
    def relative_half_width(self) -> float:
        """Half-width relative to |mean|.

        Raises:
            DivisionUndefined: If the mean is exactly zero.
        """
        if self._mean == 0:
            msg = "relative half-width is undefined for a zero mean"
            raise DivisionUndefined(msg)
        return self.half_width / abs(self._mean)

    @property
    def lower_bound(self) -> float:
        return self._mean - self.half_width

    @property
    def upper_bound(self) -> float:
        return self._mean + self.half_width

    def __lt__(self, other: OnlineEstimator) -> bool:
        if not isinstance(other, OnlineEstimator):
            return NotImplemented
        return self.upper_bound < other.lower_bound

    def __gt__(self, other: OnlineEstimator) -> bool:
        if not isinstance(other, OnlineEstimator):
            return NotImplemented
        return other.upper_bound < self.lower_bound

    def separated(self, other: OnlineEstimator) -> bool:
        """True if the two intervals are disjoint."""
        return self < other or other < self

    def __repr__(self) -> str:
        return (
            f"OnlineEstimator(n={self._count}, mean={self._mean:.6g}, "
            f"half_width={self.half_width:.3g})"
        )


def rank(estimators: Sequence[OnlineEstimator]) -> list[int]:
    """Indices of the estimators sorted by mean, ties in input order."""
    return sorted(range(len(estimators)), key=lambda i: estimators[i].mean)


def is_stable(estimators: Sequence[OnlineEstimator], order: Sequence[int] | None = None) -> bool:
    """True if every adjacent pair in the ranking has disjoint intervals.

    Only neighbours in mean order are compared, not every pair.

    Args:
        estimators: Estimators to check.
        order: Ranking to check (None = rank by mean).
    """
    if order is None:
        order = rank(estimators)
    return all(estimators[a] < estimators[b] for a, b in zip(order, order[1:]))
