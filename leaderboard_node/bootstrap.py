"""Wires settings to a ready-to-use engine for the worker processes."""
from __future__ import annotations

import logging

from leaderboard_node.config.runtime import RuntimeSettings
from leaderboard_node.services.engine import LeaderboardEngine
from leaderboard_node.services.interfaces.score_source import ScoreSource
from leaderboard_node.services.interfaces.snapshot_repository import SnapshotRepository
from leaderboard_node.services.score_sources import DEMO_TOTALS, EventWindowScoreSource, InMemoryScoreSource

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )


def build_engine(settings: RuntimeSettings) -> LeaderboardEngine:
    score_source: ScoreSource
    snapshot_repository: SnapshotRepository | None = None

    if settings.backend == "db":
        # imported lazily so the in-memory backend never needs a database driver
        from leaderboard_node.db import DBScoreEventRepository, DBSnapshotRepository

        score_source = EventWindowScoreSource(
            DBScoreEventRepository(),
            window_hours=settings.score_window_hours,
            retention_hours=settings.score_retention_hours,
        )
        snapshot_repository = DBSnapshotRepository()
    else:
        score_source = InMemoryScoreSource(DEMO_TOTALS if settings.seed_demo_scores else None)

    logger.info(
        "leaderboard engine backend=%s top_n=%d window=%sh",
        settings.backend, settings.top_n, settings.score_window_hours,
    )
    return LeaderboardEngine(
        score_source=score_source,
        snapshot_repository=snapshot_repository,
        refresh_timeout_seconds=settings.refresh_timeout_seconds,
    )
