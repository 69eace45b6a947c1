r"""
Benchmark orchestrator for comparing candidates.

    from rank_bench.runner import BenchmarkOrchestrator

    orchestrator = BenchmarkOrchestrator()
    report = orchestrator.run({"numpy": grad_numpy, "jax": grad_jax}, repeat_count=40)
"""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from rank_bench.config import DEFAULT_PRESET, DEFAULT_SEED, config_from_env, get_preset
from rank_bench.errors import DivisionUndefined
from rank_bench.protocols import EstimateStore
from rank_bench.runner.refiner import AdaptiveRefiner, EventKind, RefineCallback, RefineEvent
from rank_bench.runner.timing import Candidate, GCClock, TrialRunner
from rank_bench.stats.estimator import OnlineEstimator
from rank_bench.types import BenchmarkReport, CandidateResult, EstimateState, RefineConfig

__all__ = ["BenchmarkOrchestrator", "OrchestratorConfig", "benchmark"]

logger = logging.getLogger(__name__)

CandidateSpec = Mapping[str, Callable[..., Any] | Candidate] | Sequence[Candidate]


@dataclass
class OrchestratorConfig:
    """Configuration for benchmark orchestration.

    Attributes:
        preset: Refinement preset name or explicit configuration. Named
            presets pick up RANK_BENCH_* environment overrides.
        seed: Seed of every candidate's private random source.
        store: Where to persist estimates after each round (None = nowhere).
        session: Session identity used with ``store``.
        metadata: Static tags merged into every report.
    """

    preset: str | RefineConfig = DEFAULT_PRESET
    seed: int = DEFAULT_SEED
    store: EstimateStore | None = None
    session: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BenchmarkOrchestrator:
    """Runs one refinement session over a named set of candidates."""

    def __init__(self, *, config: OrchestratorConfig | None = None) -> None:
        self._config = config or OrchestratorConfig()
        self._progress_callback: RefineCallback | None = None

    def set_progress_callback(self, callback: RefineCallback) -> None:
        """Set callback for refinement events."""
        self._progress_callback = callback

    def _resolve_config(self) -> RefineConfig:
        """Resolve refinement configuration."""
        preset = self._config.preset
        if isinstance(preset, str):
            return config_from_env(get_preset(preset))
        return preset

    def _resolve_candidates(self, candidates: CandidateSpec) -> list[Candidate]:
        """Normalize the candidate mapping/sequence into Candidates."""
        if isinstance(candidates, Mapping):
            resolved = []
            for name, spec in candidates.items():
                if isinstance(spec, Candidate):
                    if spec.name != name:
                        msg = f"Candidate '{spec.name}' registered under name '{name}'"
                        raise ValueError(msg)
                    resolved.append(spec)
                else:
                    resolved.append(Candidate(name=name, func=spec))
        else:
            resolved = list(candidates)

        if not resolved:
            msg = "At least one candidate is required"
            raise ValueError(msg)
        names = [c.name for c in resolved]
        if len(set(names)) != len(names):
            msg = f"Duplicate candidate names: {names}"
            raise ValueError(msg)
        return resolved

    def _resolve_estimates(
        self,
        candidates: list[Candidate],
        resume_from: Mapping[str, EstimateState] | None,
        config: RefineConfig,
    ) -> list[OnlineEstimator] | None:
        """Turn persisted states into estimators aligned with the candidates."""
        if not resume_from:
            return None
        missing = [c.name for c in candidates if c.name not in resume_from]
        if missing:
            msg = f"No resumed estimate for candidates: {', '.join(missing)}"
            raise ValueError(msg)
        return [OnlineEstimator.from_state(resume_from[c.name], config.tail_probability) for c in candidates]

    def _make_callback(self, session: str | None) -> RefineCallback:
        store = self._config.store

        def on_event(event: RefineEvent) -> None:
            if event.kind == EventKind.ROUND_COMPLETE and store is not None and session is not None:
                store.save(session, {name: est.state() for name, est in zip(event.names, event.estimators)})
            if self._progress_callback:
                self._progress_callback(event)

        return on_event

    def run(
        self,
        candidates: CandidateSpec,
        repeat_count: int,
        *,
        resume_from: Mapping[str, EstimateState] | None = None,
        metadata: Mapping[str, Any] | None = None,
        session: str | None = None,
    ) -> BenchmarkReport:
        """Benchmark the candidates until their ranking is settled.

        Args:
            candidates: Mapping of name to callable/Candidate, or Candidates.
            repeat_count: Calls per trial sample (0 from tune() means 1).
            resume_from: Persisted estimates keyed by candidate name
                (None = load from the configured store, if any).
            metadata: Static tags merged into the report.
            session: Session identity (None = use config).

        Returns:
            BenchmarkReport mapping candidate names to their final estimates.

        Raises:
            ValueError: On bad candidates, repeat count or resumed state.
        """
        if repeat_count < 0:
            msg = f"repeat_count must be >= 0, got {repeat_count}"
            raise ValueError(msg)
        if repeat_count == 0:
            logger.info("Repeat count 0 promoted to 1")
        repeat = max(repeat_count, 1)

        config = self._resolve_config()
        resolved = self._resolve_candidates(candidates)
        session_id = session or self._config.session

        if resume_from is None and self._config.store is not None and session_id is not None:
            resume_from = self._config.store.load(session_id)
        estimates = self._resolve_estimates(resolved, resume_from, config)

        started = time.perf_counter()
        with GCClock() as clock:
            runners = [TrialRunner(c, repeat=repeat, clock=clock, seed=self._config.seed) for c in resolved]
            refiner = AdaptiveRefiner(config, seed=self._config.seed, callback=self._make_callback(session_id))
            outcome = refiner.refine(runners, estimates)
        logger.info(
            "Benchmarked %d candidates in %d rounds (%.1fs): %s",
            len(resolved),
            outcome.final_round,
            time.perf_counter() - started,
            outcome.status.name.lower(),
        )

        positions = {idx: pos for pos, idx in enumerate(outcome.order)}
        results: dict[str, CandidateResult] = {}
        for idx, (candidate, est) in enumerate(zip(resolved, outcome.estimators)):
            try:
                relative = est.relative_half_width
            except DivisionUndefined:
                relative = float("inf")
            results[candidate.name] = CandidateResult(
                name=candidate.name,
                mean=est.mean,
                half_width=est.half_width,
                relative_half_width=relative,
                observation_count=est.observation_count,
                stable=outcome.stable,
                rank=positions[idx],
            )

        return BenchmarkReport(
            results=results,
            status=outcome.status,
            rounds=outcome.final_round,
            repeat_count=repeat,
            config=config,
            session=session_id,
            metadata={**self._config.metadata, **(metadata or {})},
        )


def benchmark(
    named_callables: CandidateSpec,
    repeat_count: int,
    resume_from: Mapping[str, EstimateState] | None = None,
    *,
    config: OrchestratorConfig | None = None,
    metadata: Mapping[str, Any] | None = None,
    session: str | None = None,
) -> BenchmarkReport:
    """Benchmark named callables with a fresh orchestrator.

        report = benchmark({"a": impl_a, "b": impl_b}, tune(impl_a, DEFAULT_BUDGET_NS))
        print(report.ranking, report.stable)
    """
    orchestrator = BenchmarkOrchestrator(config=config)
    return orchestrator.run(
        named_callables,
        repeat_count,
        resume_from=resume_from,
        metadata=metadata,
        session=session,
    )
