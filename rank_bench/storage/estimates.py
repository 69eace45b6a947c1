r"""
Persisted estimates for resuming refinement sessions.

    from rank_bench.storage import CachedEstimateStore, DirectoryBackend, ResultCache

    store = CachedEstimateStore(ResultCache(DirectoryBackend("./.rank-bench")))
    previous = store.load(session)
"""

from collections.abc import Mapping

from rank_bench.storage.cache import ResultCache
from rank_bench.types import EstimateState

__all__ = ["CachedEstimateStore"]


class CachedEstimateStore:
    """EstimateStore kept in a ResultCache under one field per session."""

    def __init__(self, cache: ResultCache | None = None, *, field: str = "estimates") -> None:
        self.cache = cache if cache is not None else ResultCache()
        self.field = field

    def load(self, session: str) -> dict[str, EstimateState] | None:
        data = self.cache.get(session, self.field)
        if data is None:
            return None
        return {name: EstimateState.from_dict(state) for name, state in data.items()}

    def save(self, session: str, states: Mapping[str, EstimateState]) -> None:
        self.cache.put(session, self.field, {name: state.to_dict() for name, state in states.items()})

    def clear(self, session: str) -> bool:
        return self.cache.invalidate(session, self.field)
