from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine


def database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    user = os.getenv("POSTGRES_USER", "leaderboard")
    password = os.getenv("POSTGRES_PASSWORD", "leaderboard")
    host = os.getenv("POSTGRES_HOST", "postgres")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("POSTGRES_DB", "leaderboard")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine(database_url(), pool_pre_ping=True)


def create_session() -> Session:
    return Session(get_engine())
