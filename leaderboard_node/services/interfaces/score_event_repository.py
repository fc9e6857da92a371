from abc import ABC, abstractmethod

from leaderboard_node.entities.leaderboard import ScoreEvent


class ScoreEventRepository(ABC):

    @abstractmethod
    def save(self, event: ScoreEvent) -> None:
        pass

    @abstractmethod
    def fetch_recent_events(self, since: int) -> list[ScoreEvent]:
        pass

    @abstractmethod
    def prune(self, before: int) -> int:
        """Delete events older than ``before`` and return how many went."""
        pass
