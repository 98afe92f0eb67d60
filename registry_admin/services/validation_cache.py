import logging
import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300.0  # 5 minutes
DEFAULT_MAX_ENTRIES = 512


class ValidationCache(Generic[T]):
    """
    Time-bounded in-memory cache for validation results.

    Entries expire a fixed number of seconds after they were stored. A hit
    is served as-is until it expires; nothing invalidates an entry early.
    When the cache is full, the oldest entry is evicted.

    The clock is injectable so expiry can be driven deterministically.
    Instances are owned by the application lifespan (see ``main.lifespan``)
    rather than living at module level.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, T]]" = OrderedDict()

    def get(self, key: str) -> Optional[T]:
        """
        Return the cached value for ``key``, or None on a miss or expired entry.

        Expired entries are dropped as they are found.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Validation cache miss for {key}")
            return None

        stored_at, value = entry
        age = self._clock() - stored_at
        if age >= self.ttl_seconds:
            logger.debug(f"Validation cache entry expired for {key} (age: {age:.1f}s)")
            del self._entries[key]
            return None

        logger.debug(f"Validation cache hit for {key} (age: {age:.1f}s)")
        return value

    def set(self, key: str, value: T) -> None:
        """Store ``value`` under ``key``, evicting the oldest entry when full."""
        if key in self._entries:
            del self._entries[key]

        while len(self._entries) >= self.max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Validation cache full, evicted {evicted_key}")

        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
