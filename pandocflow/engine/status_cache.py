"""Short-lived memoisation of engine status snapshots.

Responsibilities:
- Serve repeated status reads from one snapshot within a small freshness window.
- Drop the snapshot synchronously whenever engine state is about to change.
- Track basic cache telemetry (hits/misses) for diagnostics.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import time

from ..models.datatypes import EngineStatus

DEFAULT_STATUS_TTL_SECONDS = 0.05


@dataclass(slots=True)
class StatusCache:
    """In-memory status snapshot cache keyed only by freshness.

    A `ttl_seconds` of zero disables memoisation: every read recomputes.
    """

    source: Callable[[], EngineStatus]
    ttl_seconds: float = DEFAULT_STATUS_TTL_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic)
    hits: int = 0
    misses: int = 0
    invalidations: int = 0
    _snapshot: EngineStatus | None = field(default=None, init=False, repr=False)
    _taken_at: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.ttl_seconds < 0.0:
            raise ValueError("`ttl_seconds` must be non-negative.")

    def read_status(self) -> EngineStatus:
        """Return the memoised snapshot when fresh, else recompute it."""

        now = self.clock()
        if (
            self._snapshot is not None
            and self.ttl_seconds > 0.0
            and now - self._taken_at < self.ttl_seconds
        ):
            self.hits += 1
            return self._snapshot

        self.misses += 1
        snapshot = self.source()
        self._snapshot = snapshot
        self._taken_at = now
        return snapshot

    def invalidate(self) -> None:
        """Discard the memoised snapshot so the next read recomputes."""

        self._snapshot = None
        self.invalidations += 1

    def hit_rate(self) -> float:
        """Return cache hit rate for the current cache lifecycle."""

        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)
