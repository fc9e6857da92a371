from __future__ import annotations

from dataclasses import dataclass
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RuntimeSettings:
    backend: str
    top_n: int
    refresh_interval_seconds: float
    refresh_timeout_seconds: float | None
    score_window_hours: float
    score_retention_hours: float
    host: str
    port: int
    log_level: str
    seed_demo_scores: bool

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        backend = os.getenv("LEADERBOARD_BACKEND", "memory").strip().lower()
        if backend not in {"memory", "db"}:
            raise ValueError(f"LEADERBOARD_BACKEND must be 'memory' or 'db', got {backend!r}")

        timeout = float(os.getenv("REFRESH_TIMEOUT_SECONDS", "30"))
        return cls(
            backend=backend,
            top_n=int(os.getenv("LEADERBOARD_TOP_N", "10")),
            refresh_interval_seconds=float(os.getenv("REFRESH_INTERVAL_SECONDS", "60")),
            refresh_timeout_seconds=timeout if timeout > 0 else None,
            score_window_hours=float(os.getenv("SCORE_WINDOW_HOURS", "24")),
            score_retention_hours=float(os.getenv("SCORE_RETENTION_HOURS", "168")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            seed_demo_scores=_env_bool("SEED_DEMO_SCORES"),
        )
