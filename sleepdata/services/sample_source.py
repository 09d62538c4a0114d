"""
Sources of HealthKit sleep samples.

A SampleSource answers two questions: may we read sleep data at all
(authorize) and which samples start inside a given window (fetch_samples).
PostgresSampleSource reads the sleep_analysis table written by the HealthKit
sync pipeline; InMemorySampleSource serves a fixed list and is used for tests
and local runs.
"""

import asyncio
import logging
from datetime import date
from typing import Iterable, List, Optional

import asyncpg

from sleepdata.models.sleep import AggregationWindow, SleepSample, SleepStage

logger = logging.getLogger(__name__)

SLEEP_TABLE = "sleep_analysis"


class SampleSourceError(Exception):
    """Base error raised by sample sources"""


class AuthorizationDenied(SampleSourceError):
    """Read access to sleep samples was refused"""


class SampleStoreUnavailable(SampleSourceError):
    """The sample store could not be reached or queried"""


class SampleQueryError(SampleSourceError):
    """A single window's query failed"""

    def __init__(self, day: date, message: str):
        super().__init__(f"Sleep query for {day.isoformat()} failed: {message}")
        self.day = day


class SampleSource:
    async def authorize(self) -> None:
        raise NotImplementedError

    async def fetch_samples(
        self,
        window: AggregationWindow,
        user_id: Optional[str] = None
    ) -> List[SleepSample]:
        raise NotImplementedError

    async def count_samples(self) -> int:
        raise NotImplementedError


def sample_from_row(row) -> SleepSample:
    """Build a sample from a sleep_analysis row, keeping unknown stages as None"""
    hk_value = row['hk_value']
    return SleepSample(
        start=row['start_time'],
        end=row['end_time'],
        stage=SleepStage.from_hk_value(hk_value) if hk_value is not None else None,
        hk_value=hk_value,
        source_name=row['source_name'],
    )


class PostgresSampleSource(SampleSource):
    """Reads samples through an asyncpg pool, one pooled connection per window"""

    def __init__(self, pool: asyncpg.Pool, timeout: Optional[float] = None):
        self.pool = pool
        self.timeout = timeout

    async def authorize(self) -> None:
        try:
            async with self.pool.acquire() as conn:
                allowed = await conn.fetchval(
                    "SELECT has_table_privilege(current_user, $1, 'SELECT')",
                    SLEEP_TABLE
                )
        except asyncpg.exceptions.InsufficientPrivilegeError as e:
            raise AuthorizationDenied(f"Read access to {SLEEP_TABLE} denied: {e}")
        except asyncpg.exceptions.UndefinedTableError:
            raise AuthorizationDenied(f"Sleep sample table {SLEEP_TABLE} is not available")
        except (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError) as e:
            raise SampleStoreUnavailable(f"Sleep sample store unavailable: {str(e) or type(e).__name__}")

        if not allowed:
            raise AuthorizationDenied(f"Read access to {SLEEP_TABLE} denied for current user")

    async def fetch_samples(
        self,
        window: AggregationWindow,
        user_id: Optional[str] = None
    ) -> List[SleepSample]:
        query = f"""
            SELECT start_time, end_time, hk_value, source_name
            FROM {SLEEP_TABLE}
            WHERE start_time >= $1 AND start_time < $2
        """

        params = [window.start, window.end]

        # Add user_id filter if provided
        if user_id:
            query += " AND user_id = $3"
            params.append(user_id)

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, *params, timeout=self.timeout)
        except asyncpg.exceptions.InsufficientPrivilegeError as e:
            raise AuthorizationDenied(f"Read access to {SLEEP_TABLE} denied: {e}")
        except (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError) as e:
            raise SampleQueryError(window.day, str(e) or type(e).__name__)

        return [sample_from_row(row) for row in rows]

    async def count_samples(self) -> int:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(f"SELECT COUNT(*) FROM {SLEEP_TABLE}")


class InMemorySampleSource(SampleSource):
    """Serves samples from memory; can simulate denial and per-day failures"""

    def __init__(
        self,
        samples: Iterable[SleepSample] = (),
        authorized: bool = True,
        failing_days: Iterable[date] = ()
    ):
        self.samples = list(samples)
        self.authorized = authorized
        self.failing_days = set(failing_days)

    async def authorize(self) -> None:
        if not self.authorized:
            raise AuthorizationDenied("Read access to sleep samples denied")

    async def fetch_samples(
        self,
        window: AggregationWindow,
        user_id: Optional[str] = None
    ) -> List[SleepSample]:
        if window.day in self.failing_days:
            raise SampleQueryError(window.day, "simulated failure")
        return [sample for sample in self.samples if window.contains(sample.start)]

    async def count_samples(self) -> int:
        return len(self.samples)
