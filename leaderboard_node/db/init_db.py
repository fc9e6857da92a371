from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import text
from sqlmodel import SQLModel

from leaderboard_node.db import tables  # noqa: F401  registers the tables on SQLModel.metadata
from leaderboard_node.db.session import get_engine


def tables_to_reset() -> list[str]:
    return [
        "leaderboards",
        "score_events",
        "alembic_version",
    ]


def _find_alembic_dir() -> Path | None:
    """Locate the Alembic migrations directory.

    Checks ``ALEMBIC_DIR`` first, then ``<repo>/alembic/`` next to the package.
    Returns ``None`` when neither exists (e.g. a wheel install without the
    migrations); callers fall back to ``SQLModel.metadata.create_all()``.
    """
    def _is_valid(p: Path) -> bool:
        return p.is_dir() and (p / "env.py").exists() and (p / "versions").is_dir()

    env_dir = os.getenv("ALEMBIC_DIR")
    if env_dir and _is_valid(Path(env_dir)):
        return Path(env_dir)

    repo_dir = Path(__file__).resolve().parent.parent.parent / "alembic"
    if _is_valid(repo_dir):
        return repo_dir

    return None


def _run_alembic_upgrade(alembic_dir: Path) -> None:
    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    alembic_cfg.set_main_option("sqlalchemy.url", get_engine().url.render_as_string(hide_password=False))
    command.upgrade(alembic_cfg, "head")


def migrate() -> None:
    """Create or upgrade the schema. Safe to run on every boot, never drops data."""
    alembic_dir = _find_alembic_dir()
    if alembic_dir is not None:
        print(f"➡️  Running Alembic migrations from {alembic_dir} ...")
        try:
            _run_alembic_upgrade(alembic_dir)
        except Exception as exc:
            print(f"⚠️  Alembic migration failed ({exc}), falling back to create_all...")
            SQLModel.metadata.create_all(get_engine())
    else:
        print("➡️  No Alembic migrations directory found, using SQLModel create_all...")
        SQLModel.metadata.create_all(get_engine())

    print("✅ Database migration complete.")


def reset_db() -> None:
    """Drop all tables and recreate from scratch. Destroys all data."""
    print("⚠️  Dropping all tables...")
    with get_engine().begin() as conn:
        for table in tables_to_reset():
            conn.execute(text(f"DROP TABLE IF EXISTS {table}"))

    migrate()
    print("✅ Database reset complete.")


def main() -> None:
    import sys

    if "--reset" in sys.argv:
        reset_db()
    else:
        migrate()


if __name__ == "__main__":
    main()
