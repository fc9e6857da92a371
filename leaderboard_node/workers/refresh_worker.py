from __future__ import annotations

import asyncio
import logging
import signal

from leaderboard_node.bootstrap import build_engine, configure_logging
from leaderboard_node.config.runtime import RuntimeSettings
from leaderboard_node.errors import SourceUnavailable
from leaderboard_node.services.scheduler import RefreshScheduler


def build_scheduler(settings: RuntimeSettings) -> RefreshScheduler:
    engine = build_engine(settings)
    try:
        engine.restore()
    except SourceUnavailable as exc:
        logging.getLogger(__name__).warning("could not restore leaderboard: %s", exc)

    return RefreshScheduler(
        engine=engine,
        top_n=settings.top_n,
        interval_seconds=settings.refresh_interval_seconds or 60,
        timeout_seconds=settings.refresh_timeout_seconds,
    )


async def main() -> None:
    settings = RuntimeSettings.from_env()
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info("refresh worker bootstrap")

    scheduler = build_scheduler(settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(scheduler.shutdown()))

    try:
        await scheduler.run()
    finally:
        scheduler.engine.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
