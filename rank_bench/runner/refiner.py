r"""
Adaptive multi-arm refiner.

Drives one estimator per arm in lockstep, one sample per arm per round,
until every mean is precise and the ranking by mean is separated, or the
round cap is reached.

    from rank_bench.runner.refiner import AdaptiveRefiner

    refiner = AdaptiveRefiner(get_preset("standard"))
    outcome = refiner.refine(arms)
    if outcome.status == Status.CONVERGED:
        ...
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from rank_bench.config import DEFAULT_SEED
from rank_bench.errors import DivisionUndefined, NonStabilizingRanking
from rank_bench.protocols import Arm
from rank_bench.stats.estimator import OnlineEstimator, is_stable, rank
from rank_bench.types import RefineConfig, Status

__all__ = [
    "AdaptiveRefiner",
    "EventKind",
    "RefineCallback",
    "RefineEvent",
    "RefineOutcome",
    "round_seed",
]

logger = logging.getLogger(__name__)


class EventKind(StrEnum):
    """Points in a refinement session where the callback fires."""

    RESUMED = "resumed"
    ROUND_COMPLETE = "round_complete"
    STOPPED_EARLY = "stopped_early"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class RefineEvent:
    """Notification passed to the refiner callback.

    Attributes:
        kind: What happened.
        round_index: Round the event refers to (observation count).
        names: Arm names, aligned with ``estimators``.
        estimators: Live estimators; read them, do not mutate them.
    """

    kind: EventKind
    round_index: int
    names: tuple[str, ...]
    estimators: tuple[OnlineEstimator, ...]


RefineCallback = Callable[[RefineEvent], None]


@dataclass
class RefineOutcome:
    """Result of one refinement session.

    Attributes:
        estimators: Final estimators, aligned with the arms.
        start_round: Observation count the session resumed from.
        final_round: Observation count reached.
        precise: Every relative half-width below rtol.
        stable: Every adjacent pair in the ranking separated.
        stopped_early: The session stopped before n_max.
        order: Arm indices sorted by mean.
    """

    estimators: list[OnlineEstimator]
    start_round: int
    final_round: int
    precise: bool
    stable: bool
    stopped_early: bool
    order: list[int] = field(default_factory=list)

    @property
    def rounds_run(self) -> int:
        """Rounds sampled in this session."""
        return self.final_round - self.start_round

    @property
    def status(self) -> Status:
        if not self.stable:
            return Status.UNSTABLE
        if not self.precise:
            return Status.IMPRECISE
        return Status.CONVERGED


def round_seed(seed: int, round_index: int) -> str:
    """Seed shared by every arm in a round.

    Depends only on the base seed and the round index, so a resumed session
    replays the same random inputs as an uninterrupted one.
    """
    return f"{seed}:{round_index}"


class AdaptiveRefiner:
    """Sequential stopping rule over several arms."""

    def __init__(
        self,
        config: RefineConfig,
        *,
        seed: int = DEFAULT_SEED,
        callback: RefineCallback | None = None,
    ) -> None:
        self._config = config
        self._seed = seed
        self._callback = callback

    @property
    def config(self) -> RefineConfig:
        return self._config

    def set_callback(self, callback: RefineCallback | None) -> None:
        """Set callback for session events."""
        self._callback = callback

    def _emit(self, kind: EventKind, round_index: int, arms: Sequence[Arm], estimators: Sequence[OnlineEstimator]) -> None:
        if self._callback:
            self._callback(RefineEvent(kind, round_index, tuple(a.name for a in arms), tuple(estimators)))

    def _relative_half_width(self, est: OnlineEstimator) -> float:
        try:
            return est.relative_half_width
        except DivisionUndefined:
            return est.half_width / self._config.zero_mean_epsilon

    def is_precise(self, estimators: Sequence[OnlineEstimator]) -> bool:
        """True if every relative half-width is below rtol."""
        return all(self._relative_half_width(est) < self._config.rtol for est in estimators)

    def _resolve_estimates(
        self,
        arms: Sequence[Arm],
        estimates: Sequence[OnlineEstimator] | None,
    ) -> list[OnlineEstimator]:
        """Validate resumed estimates or create fresh ones."""
        if estimates is None:
            return [OnlineEstimator(self._config.tail_probability) for _ in arms]

        if len(estimates) != len(arms):
            msg = f"Got {len(estimates)} estimates for {len(arms)} arms"
            raise ValueError(msg)
        counts = {est.observation_count for est in estimates}
        if len(counts) > 1:
            msg = f"Resumed estimates must share one observation count, got {sorted(counts)}"
            raise ValueError(msg)
        return list(estimates)

    def refine(
        self,
        arms: Sequence[Arm],
        estimates: Sequence[OnlineEstimator] | None = None,
    ) -> RefineOutcome:
        """Sample the arms round by round until the stopping rule holds.

        Args:
            arms: Candidates, sampled in this order every round.
            estimates: Resumed estimators aligned with ``arms`` (None = fresh).
                They are updated in place.

        Returns:
            RefineOutcome with the final estimators and stop flags.

        Raises:
            ValueError: If the arms are empty or the estimates do not line up.
        """
        if not arms:
            msg = "At least one arm is required"
            raise ValueError(msg)

        config = self._config
        ests = self._resolve_estimates(arms, estimates)
        start = ests[0].observation_count

        if start > 0:
            logger.info("Resuming at round %d of %d", start + 1, config.n_max)
            self._emit(EventKind.RESUMED, start, arms, ests)

        precise = stable = False
        order: list[int] = rank(ests)
        round_index = start

        for round_index in range(start + 1, config.n_max + 1):
            seed = round_seed(self._seed, round_index)
            for arm, est in zip(arms, ests):
                est.add(arm.sample(seed))
            self._emit(EventKind.ROUND_COMPLETE, round_index, arms, ests)

            if round_index < config.n_min:
                continue

            precise = self.is_precise(ests)
            if not precise:
                logger.debug("Round %d: not yet precise", round_index)
                continue

            order = rank(ests)
            stable = is_stable(ests, order)
            if stable:
                if round_index < config.n_max:
                    logger.info("Stopping early at round %d of %d", round_index, config.n_max)
                    self._emit(EventKind.STOPPED_EARLY, round_index, arms, ests)
                return RefineOutcome(
                    estimators=ests,
                    start_round=start,
                    final_round=round_index,
                    precise=True,
                    stable=True,
                    stopped_early=round_index < config.n_max,
                    order=order,
                )
            logger.debug("Round %d: precise but ranking not separated", round_index)

        # Cap reached (or resumed at/after it); report the final state
        final_round = max(start, round_index)
        order = rank(ests)
        if final_round >= config.n_min:
            precise = self.is_precise(ests)
            stable = is_stable(ests, order)

        outcome = RefineOutcome(
            estimators=ests,
            start_round=start,
            final_round=final_round,
            precise=precise,
            stable=stable,
            stopped_early=False,
            order=order,
        )
        self._emit(EventKind.EXHAUSTED, final_round, arms, ests)
        if outcome.status == Status.IMPRECISE:
            logger.warning("Ranking separated but means not within rtol=%g after %d rounds", config.rtol, final_round)
        elif not stable:
            logger.warning("Ranking did not stabilize within %d rounds", config.n_max)
            warnings.warn(
                f"ranking did not stabilize within {config.n_max} rounds",
                NonStabilizingRanking,
                stacklevel=2,
            )
        return outcome
