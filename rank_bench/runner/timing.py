r"""
Timing utilities: GC-aware clock, timed trials and repeat-count tuning.

    from rank_bench.runner.timing import Candidate, GCClock, TrialRunner, tune

    repeat = tune(lambda rng: work(rng.random()), 50_000_000)
    with GCClock() as clock:
        runner = TrialRunner(Candidate("work", work), repeat=repeat, clock=clock)
        seconds_per_call = runner.sample("round-1")
"""

import gc
import logging
import random
import time
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from rank_bench.config import DEFAULT_SEED
from rank_bench.errors import BudgetExhaustedImmediately
from rank_bench.protocols import Clock

__all__ = [
    "Candidate",
    "GCClock",
    "PerfCounterClock",
    "Timer",
    "TimerResult",
    "TrialRunner",
    "measure_time",
    "tune",
]

logger = logging.getLogger(__name__)

WARMUP_CALLS = 2


class GCClock:
    """Monotonic clock that also accounts for garbage-collection pauses.

    Pause time is collected through ``gc.callbacks`` while installed.

        with GCClock() as clock:
            start, gc_start = clock.now_ns(), clock.gc_ns()
            ...
    """

    def __init__(self) -> None:
        self._gc_total: int = 0
        self._gc_started: int | None = None
        self._installed = False

    def _on_gc(self, phase: str, info: dict[str, Any]) -> None:
        if phase == "start":
            self._gc_started = time.perf_counter_ns()
        elif phase == "stop" and self._gc_started is not None:
            self._gc_total += time.perf_counter_ns() - self._gc_started
            self._gc_started = None

    def install(self) -> None:
        """Start tracking collector pauses."""
        if not self._installed:
            gc.callbacks.append(self._on_gc)
            self._installed = True

    def uninstall(self) -> None:
        if self._installed:
            gc.callbacks.remove(self._on_gc)
            self._installed = False
            self._gc_started = None

    @property
    def installed(self) -> bool:
        return self._installed

    def __enter__(self) -> "GCClock":
        self.install()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.uninstall()

    def now_ns(self) -> int:
        return time.perf_counter_ns()

    def gc_ns(self) -> int:
        return self._gc_total


class PerfCounterClock:
    """Plain perf_counter reader; reports no GC pauses."""

    def now_ns(self) -> int:
        return time.perf_counter_ns()

    def gc_ns(self) -> int:
        return 0


class Timer:
    """Context manager timing a block on a clock, net of GC pauses.

        with Timer(clock) as t:
            do_something()
        print(f"Elapsed: {t.net_ns}ns ({t.gc_pause_ns}ns in GC)")
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or PerfCounterClock()
        self._start: int = 0
        self._end: int = 0
        self._gc_start: int = 0
        self._gc_end: int = 0

    def __enter__(self) -> "Timer":
        self._gc_start = self._clock.gc_ns()
        self._start = self._clock.now_ns()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self._end = self._clock.now_ns()
        self._gc_end = self._clock.gc_ns()

    @property
    def elapsed_ns(self) -> int:
        """Wall time in nanoseconds, GC pauses included."""
        return self._end - self._start

    @property
    def gc_pause_ns(self) -> int:
        """GC pause time observed inside the block."""
        return self._gc_end - self._gc_start

    @property
    def net_ns(self) -> int:
        """Wall time minus GC pauses, never negative."""
        return max(self.elapsed_ns - self.gc_pause_ns, 0)

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed_ns / 1_000_000_000


@dataclass
class TimerResult:
    """Result from a timing measurement.

    Attributes:
        elapsed_ns: Wall time in nanoseconds, GC pauses included.
        gc_pause_ns: GC pause time inside the call.
        result: Return value from the timed function.
    """

    elapsed_ns: int
    gc_pause_ns: int = 0
    result: Any = None

    @property
    def net_ns(self) -> int:
        """Wall time minus GC pauses, never negative."""
        return max(self.elapsed_ns - self.gc_pause_ns, 0)

    @property
    def net_seconds(self) -> float:
        return self.net_ns / 1_000_000_000


def measure_time(func: Callable[..., Any], *args: Any, clock: Clock | None = None, **kwargs: Any) -> TimerResult:
    """Measure one call of a function, net of GC pauses.

    Args:
        func: Function to call.
        *args: Positional arguments.
        clock: Clock to read (None = perf_counter, no GC accounting).
        **kwargs: Keyword arguments.

    Returns:
        TimerResult with elapsed and GC time and the function result.
    """
    with Timer(clock) as t:
        result = func(*args, **kwargs)
    return TimerResult(elapsed_ns=t.elapsed_ns, gc_pause_ns=t.gc_pause_ns, result=result)


@dataclass
class Candidate:
    """A named implementation under comparison.

    Attributes:
        name: Candidate name.
        func: Callable receiving a ``random.Random`` (and the scratch object
            when ``setup`` is given).
        setup: Optional factory for private scratch buffers, called once
            per session.
    """

    name: str
    func: Callable[..., Any]
    setup: Callable[[], Any] | None = None


class TrialRunner:
    """Produces trial samples for one candidate.

    Each sample is the time of ``repeat`` consecutive calls divided by
    ``repeat``, in seconds, net of GC pauses. The candidate's random source
    is reseeded with the round seed before each sample so every candidate
    of a round sees the same random inputs.
    """

    def __init__(
        self,
        candidate: Candidate,
        *,
        repeat: int,
        clock: Clock | None = None,
        seed: int = DEFAULT_SEED,
    ) -> None:
        if repeat < 1:
            msg = f"repeat must be >= 1, got {repeat}"
            raise ValueError(msg)
        self.candidate = candidate
        self.repeat = repeat
        self.rng = random.Random(seed)
        self.scratch = candidate.setup() if candidate.setup is not None else None
        self.last_result: Any = None
        self._clock = clock or PerfCounterClock()
        self._warmed = False

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def warmed(self) -> bool:
        return self._warmed

    def _bind(self) -> Callable[[], Any]:
        func, rng, scratch = self.candidate.func, self.rng, self.scratch
        if self.candidate.setup is None:
            return lambda: func(rng)
        return lambda: func(rng, scratch)

    def sample(self, round_seed: str) -> float:
        """Time one trial with the round's shared seed.

        The first call on a runner is preceded by one untimed warm-up call.
        Exceptions from the candidate propagate.
        """
        call = self._bind()
        if not self._warmed:
            self.rng.seed(round_seed)
            self.last_result = call()
            self._warmed = True
            logger.debug("Warmed up %s", self.name)

        self.rng.seed(round_seed)
        result = None
        with Timer(self._clock) as t:
            for _ in range(self.repeat):
                result = call()
        self.last_result = result
        return t.net_ns / self.repeat / 1_000_000_000


def tune(
    func: Callable[[random.Random], Any],
    target_budget_ns: int,
    *,
    rng: random.Random | None = None,
    clock: Clock | None = None,
) -> int:
    """Count how many calls fit in a wall-time budget.

    Makes two untimed warm-up calls, then calls ``func`` until the time
    since the first warm-up reaches the budget. The warm-ups count against
    the budget. Feed the result to TrialRunner as ``repeat``.

    Args:
        func: Callable receiving a random source; its result is discarded.
        target_budget_ns: Wall time one trial sample should cost.
        rng: Random source (None = seeded with DEFAULT_SEED).
        clock: Clock to read (None = perf_counter).

    Returns:
        Completed call count; 0 if the warm-ups alone used the budget.

    Raises:
        ValueError: If the budget is negative.
    """
    if target_budget_ns < 0:
        msg = f"target_budget_ns must be >= 0, got {target_budget_ns}"
        raise ValueError(msg)
    if rng is None:
        rng = random.Random(DEFAULT_SEED)
    if clock is None:
        clock = PerfCounterClock()

    start = clock.now_ns()
    for _ in range(WARMUP_CALLS):
        func(rng)

    count = 0
    while clock.now_ns() - start < target_budget_ns:
        func(rng)
        count += 1

    if count == 0:
        logger.warning("Warm-up calls exceeded tuning budget of %dns", target_budget_ns)
        warnings.warn(
            f"warm-up calls alone exceeded the budget of {target_budget_ns}ns; use a repeat count of 1",
            BudgetExhaustedImmediately,
            stacklevel=2,
        )
    else:
        logger.debug("Tuned repeat count to %d for budget %dns", count, target_budget_ns)
    return count
