"""Errors raised by the leaderboard engine.

``NotYetGenerated`` is a state, not a failure, so it lives in
``leaderboard_node.entities.leaderboard`` as a sentinel value.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every error surfaced by the engine."""


class InvalidArgument(EngineError, ValueError):
    """A caller-supplied parameter was rejected before any I/O happened."""


class SourceUnavailable(EngineError):
    """The score source (or the snapshot repository) could not be used."""


class Timeout(SourceUnavailable):
    """A refresh exceeded its deadline while waiting on the score source."""
