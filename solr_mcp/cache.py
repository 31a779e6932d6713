"""In-memory schema cache with a shared time-to-live."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .models import FieldCatalog

__all__ = ["SchemaCache"]


class SchemaCache:
    """Maps collection name -> (FieldCatalog, last fetch time).

    An entry is valid while ``now - last_fetch < ttl``; a TTL of zero disables caching.
    The lock guards single map accesses only and is never held across network I/O.
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        self._ttl = float(ttl)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[FieldCatalog, float]] = {}

    @property
    def ttl(self) -> float:
        with self._lock:
            return self._ttl

    @ttl.setter
    def ttl(self, value: float) -> None:
        if value < 0:
            raise ValueError("ttl must be >= 0")
        with self._lock:
            self._ttl = float(value)

    def get(self, collection: str) -> FieldCatalog | None:
        """Return the cached catalog if present and still within the TTL."""
        with self._lock:
            entry = self._entries.get(collection)
            if entry is None:
                return None
            catalog, fetched_at = entry
            if self._clock() - fetched_at >= self._ttl:
                return None
            return catalog

    def set(self, collection: str, catalog: FieldCatalog) -> None:
        """Store a freshly fetched catalog, replacing only this collection's entry."""
        with self._lock:
            self._entries[collection] = (catalog, self._clock())
