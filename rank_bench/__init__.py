r"""
rank-bench: adaptive benchmarking that ranks competing implementations.

Samples every candidate once per round with common random numbers and stops
as soon as each mean is precise and the ranking is statistically separated.

    from rank_bench import benchmark, tune, DEFAULT_BUDGET_NS

    repeat = tune(grad_jax, DEFAULT_BUDGET_NS)
    report = benchmark({"jax": grad_jax, "torch": grad_torch}, repeat)
    print(report.ranking, report.stable)
"""

from rank_bench.config import DEFAULT_BUDGET_NS, DEFAULT_PRESET, PRESETS, get_preset
from rank_bench.errors import (
    BudgetExhaustedImmediately,
    DivisionUndefined,
    NonStabilizingRanking,
    RankBenchError,
    RankBenchWarning,
)
from rank_bench.runner import BenchmarkOrchestrator, Candidate, OrchestratorConfig, benchmark, tune
from rank_bench.stats import OnlineEstimator
from rank_bench.types import BenchmarkReport, CandidateResult, EstimateState, RefineConfig, Status

__all__ = [
    "BenchmarkOrchestrator",
    "BenchmarkReport",
    "BudgetExhaustedImmediately",
    "Candidate",
    "CandidateResult",
    "DEFAULT_BUDGET_NS",
    "DEFAULT_PRESET",
    "DivisionUndefined",
    "EstimateState",
    "NonStabilizingRanking",
    "OnlineEstimator",
    "OrchestratorConfig",
    "PRESETS",
    "RankBenchError",
    "RankBenchWarning",
    "RefineConfig",
    "Status",
    "benchmark",
    "get_preset",
    "tune",
]

__version__ = "0.1.0"
