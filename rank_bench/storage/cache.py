r"""
Key-value cache for benchmark outputs.

Values are addressed by (session identity, field name) and computed at most
once: the first ``get_or_compute`` stores the value, later calls load it.

    from rank_bench.storage.cache import DirectoryBackend, JsonSerializer, ResultCache

    cache = ResultCache(DirectoryBackend("./.rank-bench"), JsonSerializer())
    repeat = cache.get_or_compute(session, "repeat_count", lambda: tune(f, budget))
"""

import hashlib
import json
import logging
import pickle
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from rank_bench.protocols import CacheBackend, Serializer

__all__ = [
    "BaseSerializer",
    "JsonSerializer",
    "PickleSerializer",
    "MemoryBackend",
    "DirectoryBackend",
    "ResultCache",
    "session_key",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.\-]+$")


def session_key(*parts: Any) -> str:
    """Derive a stable opaque session identity from its defining parts.

        session_key("matmul", "jax-0.4.30", 1024)
    """
    raw = "\x1f".join(repr(p) for p in parts)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


class BaseSerializer(ABC):
    """Base class for cache serializers."""

    suffix: str = ""

    @abstractmethod
    def dumps(self, value: Any) -> bytes:
        ...

    @abstractmethod
    def loads(self, data: bytes) -> Any:
        ...


class JsonSerializer(BaseSerializer):
    """Serialize values as UTF-8 JSON."""

    suffix = ".json"

    def __init__(self, *, indent: int | None = 2) -> None:
        self._indent = indent

    def dumps(self, value: Any) -> bytes:
        return json.dumps(value, indent=self._indent).encode("utf-8")

    def loads(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class PickleSerializer(BaseSerializer):
    """Serialize arbitrary Python values with pickle.

    Only load caches you wrote yourself.
    """

    suffix = ".pkl"

    def __init__(self, *, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self._protocol = protocol

    def dumps(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self._protocol)

    def loads(self, data: bytes) -> Any:
        return pickle.loads(data)


class MemoryBackend:
    """In-process backend, lost on exit."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str, str], bytes] = {}

    def read(self, session: str, field: str, suffix: str) -> bytes | None:
        return self._entries.get((session, field, suffix))

    def write(self, session: str, field: str, suffix: str, data: bytes) -> None:
        self._entries[(session, field, suffix)] = data

    def delete(self, session: str, field: str, suffix: str) -> bool:
        return self._entries.pop((session, field, suffix), None) is not None

    def __len__(self) -> int:
        return len(self._entries)


class DirectoryBackend:
    """Stores each entry as ``<root>/<session>/<field><suffix>``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, session: str, field: str, suffix: str) -> Path:
        for part in (session, field):
            if not _SAFE_NAME.match(part) or part in (".", ".."):
                msg = f"Unsafe cache key component: {part!r}"
                raise ValueError(msg)
        return self.root / session / f"{field}{suffix}"

    def read(self, session: str, field: str, suffix: str) -> bytes | None:
        path = self._path(session, field, suffix)
        if not path.exists():
            return None
        return path.read_bytes()

    def write(self, session: str, field: str, suffix: str, data: bytes) -> None:
        path = self._path(session, field, suffix)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write then rename so an interrupted run never leaves a torn entry
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)

    def delete(self, session: str, field: str, suffix: str) -> bool:
        path = self._path(session, field, suffix)
        if not path.exists():
            return False
        path.unlink()
        return True


class ResultCache:
    """Compute-once cache keyed by (session, field)."""

    def __init__(
        self,
        backend: CacheBackend | None = None,
        serializer: Serializer | None = None,
    ) -> None:
        self.backend = backend if backend is not None else MemoryBackend()
        self.serializer = serializer if serializer is not None else JsonSerializer()

    def contains(self, session: str, field: str) -> bool:
        return self.backend.read(session, field, self.serializer.suffix) is not None

    def get(self, session: str, field: str, default: Any = None) -> Any:
        """Load a stored value, or return default."""
        data = self.backend.read(session, field, self.serializer.suffix)
        if data is None:
            return default
        return self.serializer.loads(data)

    def put(self, session: str, field: str, value: Any) -> None:
        self.backend.write(session, field, self.serializer.suffix, self.serializer.dumps(value))

    def invalidate(self, session: str, field: str) -> bool:
        """Drop a stored value; return True if one existed."""
        return self.backend.delete(session, field, self.serializer.suffix)

    def get_or_compute(self, session: str, field: str, compute: Callable[[], T]) -> T:
        """Load the stored value, computing and storing it on first use."""
        data = self.backend.read(session, field, self.serializer.suffix)
        if data is not None:
            logger.debug("Cache hit for %s/%s", session, field)
            return self.serializer.loads(data)

        logger.debug("Cache miss for %s/%s, computing", session, field)
        value = compute()
        self.put(session, field, value)
        return value
