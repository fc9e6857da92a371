from __future__ import annotations

import itertools
import threading
import unittest

from leaderboard_node.entities.leaderboard import (
    NOT_YET_GENERATED,
    LeaderboardEntry,
    ScoreEvent,
    Snapshot,
)
from leaderboard_node.errors import InvalidArgument, SourceUnavailable, Timeout
from leaderboard_node.services.engine import LeaderboardEngine
from leaderboard_node.services.interfaces.score_source import ScoreSource
from leaderboard_node.services.interfaces.snapshot_repository import SnapshotRepository
from leaderboard_node.services.score_sources import (
    EventWindowScoreSource,
    InMemoryScoreEventRepository,
    InMemoryScoreSource,
)


class FailingScoreSource(ScoreSource):
    def __init__(self):
        self.calls = 0

    def current_totals(self, now):
        self.calls += 1
        raise ConnectionError("database unreachable")

    def record(self, event):
        raise ConnectionError("database unreachable")


class BlockingScoreSource(ScoreSource):
    def __init__(self, totals):
        self.totals = totals
        self.release = threading.Event()

    def current_totals(self, now):
        self.release.wait(5)
        return dict(self.totals)

    def record(self, event):
        pass


class InMemorySnapshotRepository(SnapshotRepository):
    def __init__(self, latest=None):
        self.saved: list[Snapshot] = []
        self._latest = latest

    def save(self, snapshot):
        self.saved.append(snapshot)
        if self._latest is not None and snapshot.generated_at < self._latest.generated_at:
            return False
        self._latest = snapshot
        return True

    def get_latest(self):
        return self._latest


class FailingSnapshotRepository(InMemorySnapshotRepository):
    def save(self, snapshot):
        raise OSError("disk full")


def _counter_clock(start=1_000):
    counter = itertools.count(start)
    lock = threading.Lock()

    def clock():
        with lock:
            return next(counter)

    return clock


def _scenario_source():
    repository = InMemoryScoreEventRepository([
        ScoreEvent("alice", 50, 900),
        ScoreEvent("bob", 30, 900),
        ScoreEvent("alice", 20, 950),
    ])
    return EventWindowScoreSource(repository)


class TestLeaderboardEngine(unittest.TestCase):
    def setUp(self):
        self.engines: list[LeaderboardEngine] = []

    def tearDown(self):
        for engine in self.engines:
            engine.close()

    def _engine(self, source, **kwargs) -> LeaderboardEngine:
        kwargs.setdefault("clock", _counter_clock())
        engine = LeaderboardEngine(score_source=source, **kwargs)
        self.engines.append(engine)
        return engine

    def test_latest_before_refresh_is_not_yet_generated(self):
        engine = self._engine(InMemoryScoreSource())
        self.assertIs(engine.latest(), NOT_YET_GENERATED)

    def test_refresh_scenario(self):
        engine = self._engine(_scenario_source())
        snapshot = engine.refresh(2)

        self.assertEqual(list(snapshot.entries), [
            LeaderboardEntry("alice", 70),
            LeaderboardEntry("bob", 30),
        ])
        self.assertIs(engine.latest(), snapshot)

    def test_refresh_with_zero_top_n_publishes_empty_entries(self):
        engine = self._engine(_scenario_source())
        snapshot = engine.refresh(0)
        self.assertEqual(snapshot.entries, ())
        self.assertEqual(engine.latest().to_dict()["entries"], [])

    def test_empty_source_publishes_empty_snapshot(self):
        engine = self._engine(InMemoryScoreSource())
        self.assertEqual(engine.refresh(10).entries, ())

    def test_refresh_is_idempotent_for_unchanged_source(self):
        engine = self._engine(InMemoryScoreSource({"alice": 5, "bob": 5, "carol": 9}))
        first = engine.refresh(10)
        second = engine.refresh(10)

        self.assertEqual(first.entries, second.entries)
        self.assertGreaterEqual(second.generated_at, first.generated_at)

    def test_negative_top_n_is_rejected_before_io(self):
        source = FailingScoreSource()
        engine = self._engine(source)

        with self.assertRaises(InvalidArgument):
            engine.refresh(-1)
        self.assertEqual(source.calls, 0)

    def test_non_integer_top_n_is_rejected(self):
        engine = self._engine(InMemoryScoreSource())
        for value in ("10", 2.5, None, True):
            with self.subTest(value=value):
                with self.assertRaises(InvalidArgument):
                    engine.refresh(value)

    def test_source_failure_leaves_previous_snapshot(self):
        source = InMemoryScoreSource({"alice": 1})
        engine = self._engine(source)
        previous = engine.refresh(5)

        engine.score_source = FailingScoreSource()
        with self.assertRaises(SourceUnavailable):
            engine.refresh(5)
        self.assertIs(engine.latest(), previous)

    def test_source_failure_before_first_refresh_keeps_sentinel(self):
        engine = self._engine(FailingScoreSource())
        with self.assertRaises(SourceUnavailable):
            engine.refresh(5)
        self.assertIs(engine.latest(), NOT_YET_GENERATED)

    def test_timeout_raises_and_keeps_previous_snapshot(self):
        engine = self._engine(InMemoryScoreSource({"alice": 1}))
        previous = engine.refresh(5)

        blocking = BlockingScoreSource({"bob": 99})
        engine.score_source = blocking
        try:
            with self.assertRaises(Timeout):
                engine.refresh(5, timeout=0.05)
            self.assertIs(engine.latest(), previous)
        finally:
            blocking.release.set()

    def test_timeout_is_a_source_unavailable(self):
        self.assertTrue(issubclass(Timeout, SourceUnavailable))

    def test_non_positive_timeout_is_rejected(self):
        engine = self._engine(InMemoryScoreSource())
        with self.assertRaises(InvalidArgument):
            engine.refresh(5, timeout=0)

    def test_refresh_with_timeout_completes_when_source_answers(self):
        engine = self._engine(InMemoryScoreSource({"alice": 3}), refresh_timeout_seconds=5)
        snapshot = engine.refresh(5)
        self.assertEqual(list(snapshot.entries), [LeaderboardEntry("alice", 3)])

    def test_stale_result_is_not_published(self):
        timestamps = iter([100, 100, 50, 50])
        engine = self._engine(InMemoryScoreSource({"alice": 1}), clock=lambda: next(timestamps))

        newest = engine.refresh(5)
        stale = engine.refresh(5)

        self.assertIs(stale, newest)
        self.assertIs(engine.latest(), newest)

    def test_stale_result_is_not_persisted(self):
        timestamps = iter([100, 100, 50, 50])
        repository = InMemorySnapshotRepository()
        engine = self._engine(
            InMemoryScoreSource({"alice": 1}), snapshot_repository=repository, clock=lambda: next(timestamps),
        )

        newest = engine.refresh(5)
        engine.refresh(5)

        self.assertEqual(repository.saved, [newest])
        self.assertIs(repository.get_latest(), newest)

    def test_newer_persisted_snapshot_still_publishes_locally(self):
        persisted = Snapshot(10_000, (LeaderboardEntry("bob", 1),))
        repository = InMemorySnapshotRepository(persisted)
        engine = self._engine(InMemoryScoreSource({"alice": 3}), snapshot_repository=repository)

        snapshot = engine.refresh(5)

        self.assertIs(engine.latest(), snapshot)
        self.assertIs(repository.get_latest(), persisted)

    def test_generated_at_is_monotonic_under_concurrent_refresh(self):
        engine = self._engine(InMemoryScoreSource({f"user-{i}": i for i in range(50)}))
        observed: list[int] = []
        lock = threading.Lock()

        def refresh_many():
            for _ in range(50):
                engine.refresh(10)
                with lock:
                    observed.append(engine.latest().generated_at)

        threads = [threading.Thread(target=refresh_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(observed), 200)
        self.assertEqual(engine.latest().generated_at, max(observed))

    def test_persists_snapshot_before_publish(self):
        repository = InMemorySnapshotRepository()
        engine = self._engine(_scenario_source(), snapshot_repository=repository)
        snapshot = engine.refresh(2)
        self.assertEqual(repository.saved, [snapshot])

    def test_persistence_failure_does_not_publish(self):
        engine = self._engine(_scenario_source(), snapshot_repository=FailingSnapshotRepository())
        with self.assertRaises(SourceUnavailable):
            engine.refresh(2)
        self.assertIs(engine.latest(), NOT_YET_GENERATED)

    def test_restore_loads_persisted_snapshot(self):
        persisted = Snapshot(500, (LeaderboardEntry("alice", 70),))
        engine = self._engine(InMemoryScoreSource(), snapshot_repository=InMemorySnapshotRepository(persisted))

        self.assertTrue(engine.restore())
        self.assertIs(engine.latest(), persisted)

    def test_restore_without_repository_or_data(self):
        self.assertFalse(self._engine(InMemoryScoreSource()).restore())
        engine = self._engine(InMemoryScoreSource(), snapshot_repository=InMemorySnapshotRepository())
        self.assertFalse(engine.restore())
        self.assertIs(engine.latest(), NOT_YET_GENERATED)

    def test_record_feeds_next_refresh(self):
        engine = self._engine(InMemoryScoreSource())
        engine.record(ScoreEvent("alice", 10, 1))
        engine.record(ScoreEvent("alice", 5, 2))
        engine.record(ScoreEvent("bob", 12, 3))

        self.assertEqual(
            [e.to_dict() for e in engine.refresh(10).entries],
            [{"userId": "alice", "totalScore": 15}, {"userId": "bob", "totalScore": 12}],
        )

    def test_record_failure_raises_source_unavailable(self):
        engine = self._engine(FailingScoreSource())
        with self.assertRaises(SourceUnavailable):
            engine.record(ScoreEvent("alice", 1, 1))

    def test_rank_of(self):
        engine = self._engine(_scenario_source())
        self.assertIsNone(engine.rank_of("alice"))

        engine.refresh(2)
        self.assertEqual(engine.rank_of("alice"), 1)
        self.assertEqual(engine.rank_of("bob"), 2)
        self.assertIsNone(engine.rank_of("carol"))

    def test_prune_events_drops_expired_window_events(self):
        repository = InMemoryScoreEventRepository([
            ScoreEvent("alice", 1, 0),
            ScoreEvent("alice", 2, 1_000),
        ])
        source = EventWindowScoreSource(repository, window_hours=0.0001)
        engine = self._engine(source, clock=lambda: 1_000)

        self.assertEqual(engine.prune_events(), 1)
        self.assertEqual(repository.fetch_recent_events(0), [ScoreEvent("alice", 2, 1_000)])

    def test_prune_events_failure_raises_source_unavailable(self):
        class BrokenPruneRepository(InMemoryScoreEventRepository):
            def prune(self, before):
                raise ConnectionError("database unreachable")

        engine = self._engine(EventWindowScoreSource(BrokenPruneRepository()))
        with self.assertRaises(SourceUnavailable):
            engine.prune_events()
