"""Score event and leaderboard snapshot tables."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

JSON_VARIANT = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScoreEventRow(SQLModel, table=True):
    __tablename__ = "score_events"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    score: int = Field(sa_column=Column(BigInteger, nullable=False))
    timestamp: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))


class LeaderboardRow(SQLModel, table=True):
    __tablename__ = "leaderboards"

    id: str = Field(primary_key=True)
    generated_at: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))
    created_at: datetime = Field(default_factory=utc_now)

    entries_jsonb: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON_VARIANT),
    )
