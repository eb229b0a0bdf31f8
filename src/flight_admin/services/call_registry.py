"""
Active-call registry for the request lifecycle manager.

Tracks the single in-flight call allowed per call key, the admission history
used for telemetry, and duplicate-suppression events. One registry belongs to
one manager; nothing here is module-global, so independent managers (and
tests) never share state.
"""

import itertools
import time
import structlog
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from ..config import config
from ..types import CallRecord, RequestStats
from ..cancellation import CancellationToken


@dataclass
class InFlightCall:
    """A call currently executing for a key"""
    key: str
    started_at: float
    cancel_token: CancellationToken
    call_id: int
    attempt: int = 1

    def age_ms(self, now: float) -> float:
        return (now - self.started_at) * 1000


class CallRegistry:
    """
    Registry of in-flight calls keyed by call key.

    Accessed only from the event loop thread; mutual exclusion per key is
    structural, no locks are taken.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        stats_window_seconds: Optional[float] = None,
        history_retention_seconds: Optional[float] = None
    ):
        self.clock = clock
        self.stats_window_seconds = (
            stats_window_seconds
            if stats_window_seconds is not None
            else config.request_lifecycle.stats_window_seconds
        )
        self.history_retention_seconds = (
            history_retention_seconds
            if history_retention_seconds is not None
            else config.request_lifecycle.history_retention_seconds
        )
        self.logger = structlog.get_logger("call_registry")

        self._active: Dict[str, InFlightCall] = {}
        self._history: Deque[CallRecord] = deque()
        self._suppressed: Deque[float] = deque()
        self._total_calls = 0
        self._ids = itertools.count(1)

    def now(self) -> float:
        return self.clock()

    def get(self, key: str) -> Optional[InFlightCall]:
        return self._active.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._active

    def __len__(self) -> int:
        return len(self._active)

    def register(self, key: str, cancel_token: CancellationToken) -> InFlightCall:
        """
        Register a newly admitted call, replacing any entry for the key.

        Callers decide beforehand whether the existing entry is a duplicate or
        is being superseded; the registry only guarantees one entry per key.
        """
        now = self.now()
        call = InFlightCall(
            key=key,
            started_at=now,
            cancel_token=cancel_token,
            call_id=next(self._ids)
        )

        self._active[key] = call
        self._history.append(CallRecord(key=key, started_at=now))
        self._total_calls += 1
        self.cleanup(now)

        self.logger.debug("Call registered", key=key, call_id=call.call_id)
        return call

    def release(self, call: InFlightCall) -> bool:
        """
        Remove ``call`` if it is still the registered call for its key.

        A superseded call releasing late must not evict its successor.

        Returns:
            True if the entry was removed
        """
        current = self._active.get(call.key)
        if current is None or current.call_id != call.call_id:
            return False

        del self._active[call.key]
        self.logger.debug("Call released", key=call.key, call_id=call.call_id)
        return True

    def record_duplicate(self, key: str) -> None:
        self._suppressed.append(self.now())
        self.logger.warning("Duplicate call suppressed", key=key)

    def cleanup(self, now: Optional[float] = None) -> int:
        """
        Drop history older than the retention window.

        Returns:
            Number of history entries removed
        """
        now = self.now() if now is None else now
        horizon = now - self.history_retention_seconds
        removed = 0

        while self._history and self._history[0].started_at < horizon:
            self._history.popleft()
            removed += 1
        while self._suppressed and self._suppressed[0] < horizon:
            self._suppressed.popleft()

        return removed

    def get_stats(self) -> RequestStats:
        """Snapshot of in-flight, cumulative and recent-window counts"""
        now = self.now()
        horizon = now - self.stats_window_seconds

        return RequestStats(
            active_calls=len(self._active),
            total_calls=self._total_calls,
            recent_duplicates=sum(1 for ts in self._suppressed if ts >= horizon),
            recent_calls=sum(1 for record in self._history if record.started_at >= horizon)
        )
