"""Leaderboard engine: source -> aggregate/rank -> snapshot -> publish."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable

from leaderboard_node.entities.leaderboard import NotYetGenerated, ScoreEvent, Snapshot, now_ms
from leaderboard_node.errors import InvalidArgument, SourceUnavailable, Timeout
from leaderboard_node.services.aggregation import rank
from leaderboard_node.services.interfaces.score_source import ScoreSource
from leaderboard_node.services.interfaces.snapshot_repository import SnapshotRepository
from leaderboard_node.services.snapshot_store import SnapshotStore


class LeaderboardEngine:
    def __init__(
        self,
        score_source: ScoreSource,
        snapshot_store: SnapshotStore | None = None,
        snapshot_repository: SnapshotRepository | None = None,
        refresh_timeout_seconds: float | None = None,
        clock: Callable[[], int] = now_ms,
        max_fetch_workers: int = 4,
    ):
        self.score_source = score_source
        self.snapshot_store = snapshot_store or SnapshotStore()
        self.snapshot_repository = snapshot_repository
        self.refresh_timeout_seconds = refresh_timeout_seconds
        self.clock = clock

        self._fetch_executor = ThreadPoolExecutor(
            max_workers=max_fetch_workers, thread_name_prefix="score-source",
        )
        self._commit_lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def refresh(self, top_n: int, timeout: float | None = None) -> Snapshot:
        """Recompute the leaderboard and publish it.

        Raises ``InvalidArgument`` for a negative or non-integer ``top_n``,
        ``Timeout`` when the source does not answer within ``timeout`` seconds
        (falling back to the engine default) and ``SourceUnavailable`` for any
        other source or persistence failure. The published snapshot is left
        untouched whenever an error is raised.

        Returns the snapshot that is current once the call finishes. That is
        the one just built unless a newer snapshot was published while this
        one was being computed, in which case the newer one is returned.
        """
        if isinstance(top_n, bool) or not isinstance(top_n, int):
            raise InvalidArgument(f"top_n must be an integer, got {top_n!r}")
        if top_n < 0:
            raise InvalidArgument(f"top_n must not be negative, got {top_n}")

        timeout = self.refresh_timeout_seconds if timeout is None else timeout
        if timeout is not None and timeout <= 0:
            raise InvalidArgument(f"timeout must be positive, got {timeout}")

        totals = self._fetch_totals(timeout)

        # the fetched mapping is private to this call, no lock needed from here
        snapshot = Snapshot.create(rank(totals, top_n), generated_at=self.clock())
        return self._commit(snapshot)

    def _commit(self, snapshot: Snapshot) -> Snapshot:
        # stale check, persist and publish run under one lock
        with self._commit_lock:
            if self.snapshot_store.is_stale(snapshot):
                current = self.snapshot_store.latest()
                self.logger.warning(
                    "Discarding stale snapshot generated_at=%d (latest=%d)",
                    snapshot.generated_at, current.generated_at,
                )
                return current

            if self.snapshot_repository is not None:
                try:
                    stored = self.snapshot_repository.save(snapshot)
                except Exception as exc:
                    raise SourceUnavailable(f"Could not persist snapshot: {exc}") from exc
                if not stored:
                    self.logger.info(
                        "A newer leaderboard is already persisted, kept generated_at=%d in memory only",
                        snapshot.generated_at,
                    )

            self.snapshot_store.publish(snapshot)

        top1 = snapshot.entries[0].user_id if snapshot.entries else None
        self.logger.info(
            "Leaderboard published with %d entries (generated_at=%d). TOP 1: %s",
            len(snapshot.entries), snapshot.generated_at, top1,
        )
        return snapshot

    def latest(self) -> Snapshot | NotYetGenerated:
        return self.snapshot_store.latest()

    def record(self, event: ScoreEvent) -> None:
        try:
            self.score_source.record(event)
        except Exception as exc:
            raise SourceUnavailable(f"Could not record score event: {exc}") from exc

    def rank_of(self, user_id: str) -> int | None:
        latest = self.latest()
        if not isinstance(latest, Snapshot):
            return None
        return latest.rank_of(user_id)

    def prune_events(self) -> int:
        """Drop source data older than any refresh will read again."""
        try:
            pruned = self.score_source.prune(self.clock())
        except Exception as exc:
            raise SourceUnavailable(f"Could not prune score events: {exc}") from exc
        if pruned:
            self.logger.info("Pruned %d expired score events", pruned)
        return pruned

    def restore(self) -> bool:
        """Load the last persisted snapshot into the store, if there is one."""
        if self.snapshot_repository is None:
            return False

        with self._commit_lock:
            try:
                snapshot = self.snapshot_repository.get_latest()
            except Exception as exc:
                raise SourceUnavailable(f"Could not load persisted snapshot: {exc}") from exc

            if snapshot is None:
                self.logger.info("No persisted leaderboard to restore")
                return False

            restored = self.snapshot_store.publish(snapshot)

        if restored:
            self.logger.info("Restored leaderboard generated_at=%d", snapshot.generated_at)
        return restored

    def close(self) -> None:
        self._fetch_executor.shutdown(wait=False, cancel_futures=True)

    def _fetch_totals(self, timeout: float | None) -> dict[str, int]:
        now = self.clock()
        if timeout is None:
            try:
                return self.score_source.current_totals(now)
            except Exception as exc:
                raise SourceUnavailable(f"Score source failed: {exc}") from exc

        future = self._fetch_executor.submit(self.score_source.current_totals, now)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            # the fetch may still complete later; its result is simply dropped
            future.cancel()
            raise Timeout(f"Score source did not answer within {timeout}s") from exc
        except Exception as exc:
            raise SourceUnavailable(f"Score source failed: {exc}") from exc
