"""Score sources: the two backends the engine can aggregate over."""
from __future__ import annotations

import logging
import threading
from typing import Mapping

from leaderboard_node.entities.leaderboard import ScoreEvent
from leaderboard_node.services.aggregation import aggregate
from leaderboard_node.services.interfaces.score_event_repository import ScoreEventRepository
from leaderboard_node.services.interfaces.score_source import ScoreSource

HOUR_MS = 60 * 60 * 1000

DEMO_TOTALS = {
    "Manoj Sir": 120,
    "Yash Raj": 95,
    "Shreyash": 70,
}


class InMemoryScoreSource(ScoreSource):
    """Running totals kept in process memory.

    Every recorded event adds to its user's total; ``current_totals`` returns
    a copy, so a refresh never ranks a mapping that is still being written to.
    """

    def __init__(self, initial_totals: Mapping[str, int] | None = None):
        self._totals: dict[str, int] = dict(initial_totals or {})
        self._lock = threading.Lock()

    def current_totals(self, now: int) -> dict[str, int]:
        with self._lock:
            return dict(self._totals)

    def record(self, event: ScoreEvent) -> None:
        with self._lock:
            self._totals[event.user_id] = self._totals.get(event.user_id, 0) + event.score


class EventWindowScoreSource(ScoreSource):
    """Totals over the events recorded in the last ``window_hours``.

    Events are kept for ``retention_hours`` (never less than the window) and
    ``prune`` deletes anything older.
    """

    def __init__(
        self,
        repository: ScoreEventRepository,
        window_hours: float = 24,
        retention_hours: float | None = None,
    ):
        self.repository = repository
        self.window_ms = int(window_hours * HOUR_MS)
        retention_ms = int(retention_hours * HOUR_MS) if retention_hours is not None else self.window_ms
        self.retention_ms = max(self.window_ms, retention_ms)
        self.logger = logging.getLogger(__name__)

    def window_start(self, now: int) -> int:
        return now - self.window_ms

    def current_totals(self, now: int) -> dict[str, int]:
        since = self.window_start(now)
        events = self.repository.fetch_recent_events(since)
        self.logger.debug("Fetched %d events since %d", len(events), since)
        return aggregate(events, since)

    def record(self, event: ScoreEvent) -> None:
        self.repository.save(event)

    def prune(self, now: int) -> int:
        return self.repository.prune(now - self.retention_ms)


class InMemoryScoreEventRepository(ScoreEventRepository):
    def __init__(self, events: list[ScoreEvent] | None = None):
        self._events: list[ScoreEvent] = list(events or [])
        self._lock = threading.Lock()

    def save(self, event: ScoreEvent) -> None:
        with self._lock:
            self._events.append(event)

    def fetch_recent_events(self, since: int) -> list[ScoreEvent]:
        with self._lock:
            return [event for event in self._events if event.timestamp >= since]

    def prune(self, before: int) -> int:
        with self._lock:
            kept = [event for event in self._events if event.timestamp >= before]
            pruned = len(self._events) - len(kept)
            self._events = kept
            return pruned
