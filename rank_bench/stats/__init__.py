r"""
Online statistics for trial samples.

    from rank_bench.stats import OnlineEstimator, is_stable, rank
"""

from rank_bench.stats.estimator import OnlineEstimator, is_stable, rank

__all__ = ["OnlineEstimator", "is_stable", "rank"]
