from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Iterable


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ScoreEvent:
    """A single raw score, produced outside the engine and never mutated."""
    user_id: str
    score: int
    timestamp: int = field(default_factory=now_ms)  # epoch millis


@dataclass(frozen=True)
class LeaderboardEntry:
    user_id: str
    total_score: int

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "totalScore": self.total_score}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "LeaderboardEntry":
        return LeaderboardEntry(user_id=str(data["userId"]), total_score=int(data["totalScore"]))


@dataclass(frozen=True)
class Snapshot:
    """An immutable, timestamped, ranked leaderboard.

    ``entries`` is always stored as a tuple so a published snapshot cannot be
    changed in place by a reader.
    """
    generated_at: int
    entries: tuple[LeaderboardEntry, ...] = ()

    def __post_init__(self):
        if not isinstance(self.entries, tuple):
            object.__setattr__(self, "entries", tuple(self.entries))

    @staticmethod
    def create(entries: Iterable[LeaderboardEntry], generated_at: int | None = None) -> "Snapshot":
        return Snapshot(
            generated_at=now_ms() if generated_at is None else generated_at,
            entries=tuple(entries),
        )

    def rank_of(self, user_id: str) -> int | None:
        for index, entry in enumerate(self.entries, start=1):
            if entry.user_id == user_id:
                return index
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Snapshot":
        return Snapshot(
            generated_at=int(data["generatedAt"]),
            entries=tuple(LeaderboardEntry.from_dict(e) for e in data.get("entries", [])),
        )


class NotYetGenerated:
    """Sentinel for "no refresh has ever completed"."""

    _instance: "NotYetGenerated | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_YET_GENERATED"

    def to_dict(self) -> dict[str, Any]:
        return {"error": "no leaderboard"}


NOT_YET_GENERATED = NotYetGenerated()
