r"""
Error and warning taxonomy.

    from rank_bench.errors import DivisionUndefined

    try:
        precision = estimator.relative_half_width
    except DivisionUndefined:
        precision = estimator.half_width / epsilon
"""

__all__ = [
    "RankBenchError",
    "DivisionUndefined",
    "RankBenchWarning",
    "BudgetExhaustedImmediately",
    "NonStabilizingRanking",
]


class RankBenchError(Exception):
    """Base class for rank-bench errors."""


class DivisionUndefined(RankBenchError, ZeroDivisionError):
    """Relative half-width requested for an estimate whose mean is exactly zero."""


class RankBenchWarning(UserWarning):
    """Base class for non-fatal rank-bench conditions."""


class BudgetExhaustedImmediately(RankBenchWarning):
    """The mandatory warm-up calls alone used up the tuning budget.

    tune() returns 0; callers should use a repeat count of 1 and accept
    the overshoot.
    """


class NonStabilizingRanking(RankBenchWarning):
    """The round cap was reached before the ranking separated."""
