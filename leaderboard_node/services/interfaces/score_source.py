from abc import ABC, abstractmethod

from leaderboard_node.entities.leaderboard import ScoreEvent


class ScoreSource(ABC):

    @abstractmethod
    def current_totals(self, now: int) -> dict[str, int]:
        """Per-user totals for a refresh running at ``now`` (epoch ms)."""
        pass

    @abstractmethod
    def record(self, event: ScoreEvent) -> None:
        pass

    def prune(self, now: int) -> int:
        """Drop data no refresh will read again. Running totals keep everything."""
        return 0
