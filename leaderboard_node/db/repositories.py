from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, delete, select

from leaderboard_node.db.session import create_session
from leaderboard_node.db.tables import LeaderboardRow, ScoreEventRow, utc_now
from leaderboard_node.entities.leaderboard import ScoreEvent, Snapshot
from leaderboard_node.services.interfaces.score_event_repository import ScoreEventRepository
from leaderboard_node.services.interfaces.snapshot_repository import SnapshotRepository

SessionFactory = Callable[[], Session]


class DBScoreEventRepository(ScoreEventRepository):
    """Score event log. A session is opened per call so the repository can be
    shared between the request threadpool and the refresh fetch threads."""

    def __init__(self, session_factory: SessionFactory = create_session):
        self._session_factory = session_factory

    def save(self, event: ScoreEvent) -> None:
        with self._session_factory() as session:
            session.add(self._domain_to_row(event))
            session.commit()

    def fetch_recent_events(self, since: int) -> list[ScoreEvent]:
        with self._session_factory() as session:
            rows = session.exec(
                select(ScoreEventRow).where(ScoreEventRow.timestamp >= since)
            ).all()
            return [self._row_to_domain(row) for row in rows]

    def prune(self, before: int) -> int:
        with self._session_factory() as session:
            result = session.exec(delete(ScoreEventRow).where(ScoreEventRow.timestamp < before))
            session.commit()
            return result.rowcount or 0

    @staticmethod
    def _row_to_domain(row: ScoreEventRow) -> ScoreEvent:
        return ScoreEvent(user_id=row.user_id, score=row.score, timestamp=row.timestamp)

    @staticmethod
    def _domain_to_row(event: ScoreEvent) -> ScoreEventRow:
        return ScoreEventRow(user_id=event.user_id, score=event.score, timestamp=event.timestamp)


class DBSnapshotRepository(SnapshotRepository):
    """Keeps a single "latest" leaderboard row.

    The row is only overwritten by a snapshot whose ``generated_at`` is at
    least the stored one, so several workers sharing the database never roll
    the persisted leaderboard back.
    """

    LATEST_ID = "daily"

    def __init__(self, session_factory: SessionFactory = create_session):
        self._session_factory = session_factory

    def save(self, snapshot: Snapshot) -> bool:
        entries = snapshot.to_dict()["entries"]
        with self._session_factory() as session:
            if self._update_if_newer(session, snapshot, entries):
                session.commit()
                return True

            if session.get(LeaderboardRow, self.LATEST_ID) is not None:
                # the stored leaderboard is newer
                session.rollback()
                return False

            session.add(LeaderboardRow(
                id=self.LATEST_ID,
                generated_at=snapshot.generated_at,
                entries_jsonb=entries,
            ))
            try:
                session.commit()
                return True
            except IntegrityError:
                # another writer inserted the row in between
                session.rollback()

            stored = self._update_if_newer(session, snapshot, entries)
            session.commit()
            return stored

    def get_latest(self) -> Snapshot | None:
        with self._session_factory() as session:
            row = session.get(LeaderboardRow, self.LATEST_ID)
            if row is None:
                return None

            return Snapshot.from_dict({"generatedAt": row.generated_at, "entries": row.entries_jsonb})

    def _update_if_newer(self, session: Session, snapshot: Snapshot, entries: list[dict[str, Any]]) -> bool:
        result = session.exec(
            update(LeaderboardRow)
            .where(LeaderboardRow.id == self.LATEST_ID)
            .where(LeaderboardRow.generated_at <= snapshot.generated_at)
            .values(generated_at=snapshot.generated_at, entries_jsonb=entries, created_at=utc_now())
        )
        return result.rowcount > 0
