from __future__ import annotations

import logging
import threading

from leaderboard_node.entities.leaderboard import NOT_YET_GENERATED, NotYetGenerated, Snapshot


class SnapshotStore:
    """Owns the single "latest" snapshot reference.

    Writers serialize on a lock to compare timestamps and swap the reference;
    readers only read the attribute, which is a single atomic load, so
    ``latest()`` never waits on ``publish()``.
    """

    def __init__(self):
        self._latest: Snapshot | NotYetGenerated = NOT_YET_GENERATED
        self._publish_lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def is_stale(self, snapshot: Snapshot) -> bool:
        current = self._latest
        return isinstance(current, Snapshot) and snapshot.generated_at < current.generated_at

    def publish(self, snapshot: Snapshot) -> bool:
        """Swap in ``snapshot`` unless it is older than the current one.

        Returns False when the snapshot was discarded as stale.
        """
        with self._publish_lock:
            if self.is_stale(snapshot):
                self.logger.warning(
                    "Discarding stale snapshot generated_at=%d (latest=%d)",
                    snapshot.generated_at, self._latest.generated_at,
                )
                return False
            self._latest = snapshot
            return True

    def latest(self) -> Snapshot | NotYetGenerated:
        return self._latest
