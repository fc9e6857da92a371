from leaderboard_node.entities.leaderboard import (
    NOT_YET_GENERATED,
    LeaderboardEntry,
    NotYetGenerated,
    ScoreEvent,
    Snapshot,
    now_ms,
)

__all__ = [
    "ScoreEvent",
    "LeaderboardEntry",
    "Snapshot",
    "NotYetGenerated",
    "NOT_YET_GENERATED",
    "now_ms",
]
