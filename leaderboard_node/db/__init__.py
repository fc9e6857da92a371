from .repositories import DBScoreEventRepository, DBSnapshotRepository
from .session import create_session, database_url, get_engine
