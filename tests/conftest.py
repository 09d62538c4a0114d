from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from sleepdata.models.sleep import SleepSample, SleepStage


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 11, day, hour, minute, tzinfo=timezone.utc)


def make_sample(start: datetime, end: datetime, stage) -> SleepSample:
    return SleepSample(start=start, end=end, stage=stage)


@pytest.fixture
def night_samples():
    """A night of staged sleep on 2024-11-10 (UTC)"""
    return [
        make_sample(at(10, 0, 0), at(10, 0, 30), SleepStage.AWAKE),
        make_sample(at(10, 0, 30), at(10, 3, 0), SleepStage.CORE),
        make_sample(at(10, 3, 0), at(10, 4, 0), SleepStage.DEEP),
        make_sample(at(10, 4, 0), at(10, 5, 30), SleepStage.REM),
        make_sample(at(10, 5, 30), at(10, 6, 0), SleepStage.ASLEEP_UNSPECIFIED),
        make_sample(at(10, 0, 0), at(10, 6, 0), SleepStage.IN_BED),
    ]


class StubConnection:
    """Stands in for an asyncpg connection, recording the queries it receives"""

    def __init__(self, rows=(), allowed=True, error=None):
        self.rows = list(rows)
        self.allowed = allowed
        self.error = error
        self.queries = []

    async def fetchval(self, query, *args):
        self.queries.append((query, args))
        if self.error is not None:
            raise self.error
        if "COUNT" in query:
            return len(self.rows)
        return self.allowed

    async def fetch(self, query, *args, timeout=None):
        self.queries.append((query, args))
        if self.error is not None:
            raise self.error
        return self.rows


class StubPool:
    """Stands in for an asyncpg pool; acquire() can fail like a refused connection"""

    def __init__(self, connection=None, acquire_error=None):
        self.connection = connection or StubConnection()
        self.acquire_error = acquire_error

    def acquire(self):
        if self.acquire_error is not None:
            raise self.acquire_error
        return self._acquire()

    @asynccontextmanager
    async def _acquire(self):
        yield self.connection
