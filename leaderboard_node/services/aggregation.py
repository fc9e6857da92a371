"""Aggregation and ranking stages of a leaderboard refresh.

Both functions are pure: they never mutate their inputs and give the same
result for the same input regardless of event order.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from leaderboard_node.entities.leaderboard import LeaderboardEntry, ScoreEvent


def aggregate(events: Iterable[ScoreEvent], window_start: int) -> dict[str, int]:
    """Sum scores per user over events with ``timestamp >= window_start``.

    Users without an event in the window are absent from the result.
    """
    totals: dict[str, int] = {}
    for event in events:
        if event.timestamp < window_start:
            continue
        totals[event.user_id] = totals.get(event.user_id, 0) + event.score
    return totals


def rank(totals: Mapping[str, int], top_n: int) -> list[LeaderboardEntry]:
    """Order totals by score descending and keep the first ``top_n``.

    Equal scores fall back to ``user_id`` ascending so identical inputs always
    produce identical leaderboards. A non-positive ``top_n`` yields ``[]``.
    """
    if top_n <= 0:
        return []

    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        LeaderboardEntry(user_id=user_id, total_score=total)
        for user_id, total in ordered[:top_n]
    ]
