from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from leaderboard_node.bootstrap import build_engine
from leaderboard_node.config.runtime import RuntimeSettings
from leaderboard_node.services.score_sources import DEMO_TOTALS, InMemoryScoreSource


class TestRuntimeSettings(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = RuntimeSettings.from_env()

        self.assertEqual(settings.backend, "memory")
        self.assertEqual(settings.top_n, 10)
        self.assertEqual(settings.refresh_interval_seconds, 60)
        self.assertEqual(settings.refresh_timeout_seconds, 30)
        self.assertEqual(settings.score_window_hours, 24)
        self.assertEqual(settings.score_retention_hours, 168)
        self.assertEqual(settings.port, 8080)
        self.assertFalse(settings.seed_demo_scores)

    def test_overrides(self):
        env = {
            "LEADERBOARD_BACKEND": "DB",
            "LEADERBOARD_TOP_N": "3",
            "REFRESH_INTERVAL_SECONDS": "0",
            "REFRESH_TIMEOUT_SECONDS": "0",
            "SCORE_WINDOW_HOURS": "12",
            "SCORE_RETENTION_HOURS": "48",
            "PORT": "9000",
            "LOG_LEVEL": "debug",
            "SEED_DEMO_SCORES": "yes",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = RuntimeSettings.from_env()

        self.assertEqual(settings.backend, "db")
        self.assertEqual(settings.top_n, 3)
        self.assertEqual(settings.refresh_interval_seconds, 0)
        self.assertIsNone(settings.refresh_timeout_seconds)
        self.assertEqual(settings.score_window_hours, 12)
        self.assertEqual(settings.score_retention_hours, 48)
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertTrue(settings.seed_demo_scores)

    def test_unknown_backend_is_rejected(self):
        with patch.dict(os.environ, {"LEADERBOARD_BACKEND": "firestore"}, clear=True):
            with self.assertRaises(ValueError):
                RuntimeSettings.from_env()

    def test_build_engine_memory_backend_with_seed(self):
        with patch.dict(os.environ, {"SEED_DEMO_SCORES": "true"}, clear=True):
            settings = RuntimeSettings.from_env()

        engine = build_engine(settings)
        try:
            self.assertIsInstance(engine.score_source, InMemoryScoreSource)
            self.assertIsNone(engine.snapshot_repository)
            self.assertEqual(engine.score_source.current_totals(0), DEMO_TOTALS)
        finally:
            engine.close()
