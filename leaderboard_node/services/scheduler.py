from __future__ import annotations

import asyncio
import logging

from leaderboard_node.errors import EngineError
from leaderboard_node.services.engine import LeaderboardEngine


class RefreshScheduler:
    """Periodically refreshes the leaderboard until ``shutdown()`` is called.

    A failed refresh is logged and retried on the next tick; the engine itself
    never retries.
    """

    def __init__(
        self,
        engine: LeaderboardEngine,
        top_n: int,
        interval_seconds: float,
        timeout_seconds: float | None = None,
    ):
        self.engine = engine
        self.top_n = top_n
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds

        self.refresh_count = 0
        self.failure_count = 0

        self.logger = logging.getLogger(__name__)
        self.stop_event = asyncio.Event()

    async def run(self) -> None:
        self.logger.info(
            "refresh scheduler started (interval=%ss, top_n=%d)", self.interval_seconds, self.top_n,
        )
        while not self.stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        self.logger.info("refresh scheduler stopped")

    async def run_once(self) -> bool:
        try:
            await asyncio.to_thread(self.engine.refresh, self.top_n, self.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except EngineError as exc:
            self.failure_count += 1
            self.logger.error("leaderboard refresh failed: %s", exc)
            return False
        except Exception as exc:
            self.failure_count += 1
            self.logger.exception("leaderboard refresh error: %s", exc)
            return False

        self.refresh_count += 1
        await self.prune_events()
        return True

    async def prune_events(self) -> None:
        try:
            await asyncio.to_thread(self.engine.prune_events)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.logger.warning("score event pruning failed: %s", exc)

    async def shutdown(self) -> None:
        self.stop_event.set()
