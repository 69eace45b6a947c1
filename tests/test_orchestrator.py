r"""
Tests for rank_bench.runner.orchestrator module.
"""

import pytest

from rank_bench.config import DEFAULT_PRESET, DEFAULT_SEED
from rank_bench.runner import BenchmarkOrchestrator, Candidate, EventKind, OrchestratorConfig, benchmark
from rank_bench.storage import CachedEstimateStore, ResultCache
from rank_bench.types import BenchmarkReport, EstimateState, RefineConfig, Status

IGNORE_UNSTABLE = pytest.mark.filterwarnings("ignore::rank_bench.errors.NonStabilizingRanking")


def small_work(rng):
    return sum(rng.random() for _ in range(20))


def large_work(rng):
    return sum(rng.random() for _ in range(2_000))


class TestOrchestratorConfig:
    def test_default_config(self):
        config = OrchestratorConfig()
        assert config.preset == DEFAULT_PRESET
        assert config.seed == DEFAULT_SEED
        assert config.store is None
        assert config.session is None
        assert config.metadata == {}

    def test_custom_config(self, tiny_config):
        config = OrchestratorConfig(preset=tiny_config, seed=7, session="s1", metadata={"backend": "jax"})
        assert config.preset is tiny_config
        assert config.seed == 7
        assert config.session == "s1"


@IGNORE_UNSTABLE
class TestBenchmarkOrchestrator:
    def test_report_shape(self, tiny_config):
        orchestrator = BenchmarkOrchestrator(config=OrchestratorConfig(preset=tiny_config))
        report = orchestrator.run({"small": small_work, "large": large_work}, 2)

        assert isinstance(report, BenchmarkReport)
        assert set(report) == {"small", "large"}
        assert report.rounds == 3
        assert report.repeat_count == 2
        assert report.config is tiny_config
        assert report.status in (Status.CONVERGED, Status.UNSTABLE, Status.IMPRECISE)
        for result in report.values():
            assert result.observation_count == 3
            assert result.mean > 0
            assert result.half_width >= 0
            assert result.relative_half_width >= 0
        assert sorted(r.rank for r in report.values()) == [0, 1]
        assert sorted(report.ranking) == ["large", "small"]

    def test_repeat_zero_promoted(self, tiny_config):
        report = benchmark({"a": small_work}, 0, config=OrchestratorConfig(preset=tiny_config))
        assert report.repeat_count == 1

    def test_negative_repeat_rejected(self, tiny_config):
        with pytest.raises(ValueError, match="repeat_count"):
            benchmark({"a": small_work}, -1, config=OrchestratorConfig(preset=tiny_config))

    def test_metadata_merged(self, tiny_config):
        config = OrchestratorConfig(preset=tiny_config, metadata={"host": "ci", "backend": "old"})
        report = benchmark({"a": small_work}, 1, config=config, metadata={"backend": "jax-0.4"})
        assert report.metadata == {"host": "ci", "backend": "jax-0.4"}

    def test_candidates_share_random_inputs(self, tiny_config):
        draws_a: list[float] = []
        draws_b: list[float] = []

        def record(rng, scratch):
            scratch.append(rng.random())

        candidates = [
            Candidate("a", record, setup=lambda: draws_a),
            Candidate("b", record, setup=lambda: draws_b),
        ]
        benchmark(candidates, 2, config=OrchestratorConfig(preset=tiny_config))

        # one warm-up call plus 3 rounds of 2 calls
        assert len(draws_a) == 7
        assert draws_a == draws_b

    def test_candidate_instances_in_mapping(self, tiny_config):
        report = benchmark({"a": Candidate("a", small_work)}, 1, config=OrchestratorConfig(preset=tiny_config))
        assert "a" in report

    def test_candidate_name_mismatch(self, tiny_config):
        with pytest.raises(ValueError, match="registered under"):
            benchmark({"a": Candidate("b", small_work)}, 1, config=OrchestratorConfig(preset=tiny_config))

    def test_duplicate_names(self, tiny_config):
        candidates = [Candidate("a", small_work), Candidate("a", large_work)]
        with pytest.raises(ValueError, match="Duplicate"):
            benchmark(candidates, 1, config=OrchestratorConfig(preset=tiny_config))

    def test_no_candidates(self, tiny_config):
        with pytest.raises(ValueError, match="At least one candidate"):
            benchmark({}, 1, config=OrchestratorConfig(preset=tiny_config))

    def test_candidate_error_propagates(self, tiny_config):
        def broken(rng):
            raise ZeroDivisionError("bad kernel")

        with pytest.raises(ZeroDivisionError, match="bad kernel"):
            benchmark({"ok": small_work, "broken": broken}, 1, config=OrchestratorConfig(preset=tiny_config))

    def test_progress_callback(self, tiny_config):
        events = []
        orchestrator = BenchmarkOrchestrator(config=OrchestratorConfig(preset=tiny_config))
        orchestrator.set_progress_callback(events.append)
        orchestrator.run({"a": small_work, "b": large_work}, 1)

        rounds = [e.round_index for e in events if e.kind == EventKind.ROUND_COMPLETE]
        assert rounds == [1, 2, 3]

    def test_named_preset_with_env_override(self, monkeypatch):
        monkeypatch.setenv("RANK_BENCH_N_MIN", "2")
        monkeypatch.setenv("RANK_BENCH_N_MAX", "2")
        report = benchmark({"a": small_work}, 1, config=OrchestratorConfig(preset="quick"))
        assert report.rounds == 2
        assert report.config.n_max == 2


@IGNORE_UNSTABLE
class TestResume:
    def test_resume_from_states(self, tiny_config):
        config = RefineConfig(name="more", n_min=3, n_max=5, rtol=1e-9)
        resume_from = {
            "a": EstimateState(observation_count=3, running_mean=1e-6, running_variance=1e-14),
            "b": EstimateState(observation_count=3, running_mean=2e-6, running_variance=1e-14),
        }
        report = benchmark(
            {"a": small_work, "b": large_work},
            1,
            resume_from,
            config=OrchestratorConfig(preset=config),
        )
        assert report.rounds == 5
        assert all(r.observation_count == 5 for r in report.values())

    def test_missing_resumed_candidate(self, tiny_config):
        resume_from = {"a": EstimateState(3, 1.0, 0.0)}
        with pytest.raises(ValueError, match="No resumed estimate"):
            benchmark({"a": small_work, "b": large_work}, 1, resume_from, config=OrchestratorConfig(preset=tiny_config))

    def test_store_persists_every_round_and_resumes(self, tiny_config):
        store = CachedEstimateStore(ResultCache())
        saved_rounds = []

        first = BenchmarkOrchestrator(config=OrchestratorConfig(preset=tiny_config, store=store, session="s1"))
        first.set_progress_callback(
            lambda e: saved_rounds.append(store.load("s1")["a"].observation_count)
            if e.kind == EventKind.ROUND_COMPLETE
            else None
        )
        first.run({"a": small_work, "b": large_work}, 1)
        assert saved_rounds == [1, 2, 3]

        longer = RefineConfig(name="longer", n_min=3, n_max=6, rtol=1e-9)
        second = BenchmarkOrchestrator(config=OrchestratorConfig(preset=longer, store=store, session="s1"))
        report = second.run({"a": small_work, "b": large_work}, 1)

        assert report.session == "s1"
        assert report.rounds == 6
        assert store.load("s1")["b"].observation_count == 6

    def test_crashed_round_keeps_earlier_rounds(self, tiny_config):
        store = CachedEstimateStore()
        calls = {"n": 0}

        def flaky(rng):
            calls["n"] += 1
            if calls["n"] > 3:
                raise RuntimeError("device lost")

        config = OrchestratorConfig(preset=tiny_config, store=store, session="crash")
        with pytest.raises(RuntimeError):
            benchmark({"ok": small_work, "flaky": flaky}, 1, config=config)

        # warm-up + rounds 1 and 2 completed before the crash
        assert store.load("crash")["ok"].observation_count == 2
