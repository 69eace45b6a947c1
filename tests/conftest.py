r"""
Shared pytest fixtures for rank-bench tests.
"""

import random

import pytest

from rank_bench.types import RefineConfig


class FakeClock:
    """Manually advanced clock for deterministic timing tests."""

    def __init__(self) -> None:
        self.now = 0
        self.gc = 0

    def now_ns(self) -> int:
        return self.now

    def gc_ns(self) -> int:
        return self.gc

    def advance(self, ns: int, *, gc_ns: int = 0) -> None:
        self.now += ns + gc_ns
        self.gc += gc_ns


class ConstantArm:
    """Arm whose every trial sample is the same value."""

    def __init__(self, name: str, value: float) -> None:
        self.name = name
        self.value = value
        self.seeds: list[str] = []

    def sample(self, round_seed: str) -> float:
        self.seeds.append(round_seed)
        return self.value


class NoisyArm:
    """Arm drawing normal samples determined by the round seed."""

    def __init__(self, name: str, mean: float, sigma: float) -> None:
        self.name = name
        self.mean = mean
        self.sigma = sigma

    def sample(self, round_seed: str) -> float:
        return random.Random(f"{round_seed}/{self.name}").gauss(self.mean, self.sigma)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tiny_config() -> RefineConfig:
    """Fixed three-round sessions for fast unit tests."""
    return RefineConfig(name="tiny", n_min=3, n_max=3, rtol=0.5, tail_probability=0.05)


@pytest.fixture
def standard_config() -> RefineConfig:
    return RefineConfig(name="test", n_min=10, n_max=100, rtol=0.01, tail_probability=0.01)
