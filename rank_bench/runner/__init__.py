r"""
Benchmark runner and orchestration.

Coordinates timed trials, repeat-count tuning and the adaptive
refinement loop across a set of candidates.

    from rank_bench.runner import BenchmarkOrchestrator

    orchestrator = BenchmarkOrchestrator()
    report = orchestrator.run(candidates, repeat_count=50)
"""

from rank_bench.runner.orchestrator import BenchmarkOrchestrator, OrchestratorConfig, benchmark
from rank_bench.runner.refiner import AdaptiveRefiner, EventKind, RefineEvent, RefineOutcome
from rank_bench.runner.timing import Candidate, GCClock, Timer, TrialRunner, measure_time, tune

__all__ = [
    "AdaptiveRefiner",
    "BenchmarkOrchestrator",
    "Candidate",
    "EventKind",
    "GCClock",
    "OrchestratorConfig",
    "RefineEvent",
    "RefineOutcome",
    "Timer",
    "TrialRunner",
    "benchmark",
    "measure_time",
    "tune",
]
