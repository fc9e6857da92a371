from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from leaderboard_node.entities.leaderboard import ScoreEvent, Snapshot, now_ms


# ---------------------------------------------------------------------------
# Wire shapes: field names match the JSON the leaderboard clients consume
# ---------------------------------------------------------------------------


class LeaderboardEntryPayload(BaseModel):
    userId: str
    totalScore: int


class SnapshotPayload(BaseModel):
    """Serialized snapshot, emitted verbatim by ``GET /leaderboard/latest``."""

    generatedAt: int
    entries: list[LeaderboardEntryPayload] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotPayload":
        return cls.model_validate(snapshot.to_dict())


class ScoreEventPayload(BaseModel):
    userId: str = Field(min_length=1)
    score: int
    timestamp: int | None = None

    model_config = ConfigDict(extra="ignore")

    def to_event(self) -> ScoreEvent:
        return ScoreEvent(
            user_id=self.userId,
            score=self.score,
            timestamp=self.timestamp if self.timestamp is not None else now_ms(),
        )


class RankPayload(BaseModel):
    userId: str
    rank: int


class TriggerPayload(BaseModel):
    status: str = "ok"
    generatedAt: int
    entries: int
