from leaderboard_node.schemas.payload_contracts import (
    LeaderboardEntryPayload,
    RankPayload,
    ScoreEventPayload,
    SnapshotPayload,
    TriggerPayload,
)

__all__ = [
    "LeaderboardEntryPayload",
    "SnapshotPayload",
    "ScoreEventPayload",
    "RankPayload",
    "TriggerPayload",
]
