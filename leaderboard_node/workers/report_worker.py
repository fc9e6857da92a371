from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated, Any

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leaderboard_node.bootstrap import build_engine, configure_logging
from leaderboard_node.config.runtime import RuntimeSettings
from leaderboard_node.entities.leaderboard import NOT_YET_GENERATED, Snapshot
from leaderboard_node.errors import InvalidArgument, SourceUnavailable, Timeout
from leaderboard_node.schemas import RankPayload, ScoreEventPayload, SnapshotPayload, TriggerPayload
from leaderboard_node.services.engine import LeaderboardEngine
from leaderboard_node.services.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

SETTINGS = RuntimeSettings.from_env()


@lru_cache(maxsize=1)
def get_leaderboard_engine() -> LeaderboardEngine:
    engine = build_engine(SETTINGS)
    try:
        engine.restore()
    except SourceUnavailable as exc:
        logger.warning("could not restore leaderboard: %s", exc)
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_leaderboard_engine()
    scheduler_task: asyncio.Task | None = None
    scheduler: RefreshScheduler | None = None

    if SETTINGS.refresh_interval_seconds > 0:
        scheduler = RefreshScheduler(
            engine=engine,
            top_n=SETTINGS.top_n,
            interval_seconds=SETTINGS.refresh_interval_seconds,
            timeout_seconds=SETTINGS.refresh_timeout_seconds,
        )
        scheduler_task = asyncio.create_task(scheduler.run())

    yield

    if scheduler is not None and scheduler_task is not None:
        await scheduler.shutdown()
        await scheduler_task
    engine.close()


app = FastAPI(title="Leaderboard Report Worker", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

EngineDep = Annotated[LeaderboardEngine, Depends(get_leaderboard_engine)]


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/leaderboard/latest", response_model=SnapshotPayload)
def get_latest_leaderboard(engine: EngineDep) -> Any:
    latest = engine.latest()
    if not isinstance(latest, Snapshot):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=NOT_YET_GENERATED.to_dict())
    return SnapshotPayload.from_snapshot(latest)


@app.post("/trigger-leaderboard", response_model=TriggerPayload)
def trigger_leaderboard(
    engine: EngineDep,
    top_n: Annotated[int | None, Query()] = None,
) -> TriggerPayload:
    requested = SETTINGS.top_n if top_n is None else top_n
    try:
        snapshot = engine.refresh(requested)
    except InvalidArgument as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except Timeout as exc:
        logger.warning("manual refresh timed out: %s", exc)
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))
    except SourceUnavailable as exc:
        logger.warning("manual refresh failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))

    return TriggerPayload(generatedAt=snapshot.generated_at, entries=len(snapshot.entries))


@app.post("/scores", status_code=status.HTTP_201_CREATED)
def submit_score(body: ScoreEventPayload, engine: EngineDep) -> dict[str, Any]:
    event = body.to_event()
    try:
        engine.record(event)
    except SourceUnavailable as exc:
        logger.warning("score submission failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))

    return {"status": "recorded", "userId": event.user_id, "timestamp": event.timestamp}


@app.get("/leaderboard/users/{user_id}/rank", response_model=RankPayload)
def get_user_rank(user_id: str, engine: EngineDep) -> RankPayload:
    position = engine.rank_of(user_id)
    if position is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not ranked")
    return RankPayload(userId=user_id, rank=position)


def run() -> None:
    configure_logging(SETTINGS.log_level)
    logger.info("leaderboard report worker bootstrap")
    uvicorn.run(app, host=SETTINGS.host, port=SETTINGS.port)


if __name__ == "__main__":
    run()
