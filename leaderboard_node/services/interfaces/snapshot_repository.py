from abc import ABC, abstractmethod
from typing import Optional

from leaderboard_node.entities.leaderboard import Snapshot


class SnapshotRepository(ABC):

    @abstractmethod
    def save(self, snapshot: Snapshot) -> bool:
        """Store ``snapshot`` unless a newer one is already stored."""
        pass

    @abstractmethod
    def get_latest(self) -> Optional[Snapshot]:
        pass
