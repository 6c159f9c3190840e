"""In-memory memoization of engine results.

Results are a pure function of the input record, so a cached result never
goes stale; the time-to-live only bounds memory use. Entries are keyed by the
SHA-256 digest of the input's canonical JSON encoding and handed out as deep
copies, so a caller mutating its result cannot affect later hits.
"""

from __future__ import annotations

import copy
import hashlib
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from .config import Settings
from .data_models import CalculationResult, LoanInput
from .engine import calculate
from .serialization import canonical_json

logger = logging.getLogger(__name__)


def cache_key(loan: LoanInput) -> str:
    return hashlib.sha256(canonical_json(loan).encode("utf-8")).hexdigest()


class CalculationCache:
    """Thread-safe TTL cache in front of :func:`mortgage_calc.engine.calculate`."""

    def __init__(
        self,
        ttl_seconds: float = 300,
        *,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, CalculationResult]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0 and self._max_entries > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, loan: LoanInput) -> Optional[CalculationResult]:
        if not self.enabled:
            return None
        key = cache_key(loan)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            stored_at, result = entry
            if now - stored_at >= self._ttl:
                del self._entries[key]
                self.misses += 1
                logger.debug("Cache entry %s expired", key[:12])
                return None
            self.hits += 1
        logger.debug("Cache hit for %s", key[:12])
        return copy.deepcopy(result)

    def put(self, loan: LoanInput, result: CalculationResult) -> None:
        if not self.enabled:
            return
        key = cache_key(loan)
        stored = copy.deepcopy(result)
        with self._lock:
            self._entries[key] = (self._clock(), stored)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted[:12])

    def get_or_calculate(self, loan: LoanInput) -> CalculationResult:
        """Return the cached result for ``loan`` or calculate and store it."""
        cached = self.get(loan)
        if cached is not None:
            return cached
        result = calculate(loan)
        self.put(loan, result)
        return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def create_cache_from_env(settings: Optional[Settings] = None) -> CalculationCache:
    settings = settings or Settings.from_env()
    return CalculationCache(settings.cache_ttl_seconds, max_entries=settings.cache_max_entries)
