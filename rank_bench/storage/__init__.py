r"""
Persistence for benchmark outputs and resumable estimates.

    from rank_bench.storage import CachedEstimateStore, DirectoryBackend, ResultCache

    store = CachedEstimateStore(ResultCache(DirectoryBackend("./.rank-bench")))
"""

from rank_bench.storage.cache import (
    DirectoryBackend,
    JsonSerializer,
    MemoryBackend,
    PickleSerializer,
    ResultCache,
    session_key,
)
from rank_bench.storage.estimates import CachedEstimateStore

__all__ = [
    "CachedEstimateStore",
    "DirectoryBackend",
    "JsonSerializer",
    "MemoryBackend",
    "PickleSerializer",
    "ResultCache",
    "session_key",
]
