import asyncio
import logging
from datetime import date
from typing import Dict, List, Mapping, Optional

from sleepdata.models.sleep import (
    AggregationWindow,
    DailySummary,
    SleepDailyResponse,
    SleepDaySummaryResponse,
    SleepReport,
    SleepStageResponse,
    SleepWindowErrorResponse,
    WindowResult,
)
from sleepdata.services.aggregation import AggregationPolicy, aggregate
from sleepdata.services.formatting import format_metrics
from sleepdata.services.sample_source import AuthorizationDenied, SampleSource, SampleSourceError

logger = logging.getLogger(__name__)


async def get_sleep_stages(
    source: SampleSource,
    window: AggregationWindow,
    user_id: Optional[str] = None
) -> List[SleepStageResponse]:
    """Get raw sleep stages starting inside a window, ordered by start time"""
    await source.authorize()
    samples = await source.fetch_samples(window, user_id)

    return [
        SleepStageResponse(
            start_time=sample.start,
            end_time=sample.end,
            sleep_stage=sample.stage.value if sample.stage else None,
            hk_value=sample.hk_value,
            source_name=sample.source_name,
            duration_seconds=sample.duration,
        )
        for sample in sorted(samples, key=lambda s: s.start)
    ]


async def collect_daily_summaries(
    source: SampleSource,
    windows: List[AggregationWindow],
    policy: AggregationPolicy,
    user_id: Optional[str] = None
) -> SleepReport:
    """Fetch every window concurrently and aggregate each one.

    Authorization denial yields an unauthorized report with no results. An
    unreachable store yields an authorized report carrying the error. A
    failed window carries its error and does not affect the others.
    """
    try:
        await source.authorize()
    except AuthorizationDenied as e:
        logger.warning(f"Sleep data authorization denied: {e}")
        return SleepReport(authorized=False, error=str(e))
    except SampleSourceError as e:
        logger.error(f"Sleep sample store unavailable: {e}")
        return SleepReport(error=str(e))

    fetched = await asyncio.gather(
        *(source.fetch_samples(window, user_id) for window in windows),
        return_exceptions=True
    )

    results = []
    for window, samples in zip(windows, fetched):
        if isinstance(samples, BaseException):
            if not isinstance(samples, Exception):
                raise samples
            logger.error(f"Failed to retrieve sleep data for {window.day}: {samples}")
            results.append(WindowResult(window=window, error=str(samples) or type(samples).__name__))
            continue

        results.append(WindowResult(window=window, summary=aggregate(samples, policy)))

    logger.info(
        f"Aggregated {sum(1 for r in results if r.ok)}/{len(windows)} sleep windows "
        f"with {policy.name} policy"
    )
    return SleepReport(results=results)


def merge_summaries(
    previous: Mapping[date, DailySummary],
    report: SleepReport
) -> Dict[date, DailySummary]:
    """Return a new date -> summary mapping; failed windows keep their prior value"""
    merged = dict(previous)
    for result in report.results:
        if result.ok:
            merged[result.window.day] = result.summary
    return merged


def build_daily_response(report: SleepReport, policy: AggregationPolicy) -> SleepDailyResponse:
    """Format a report for display, newest day first"""
    days = [
        SleepDaySummaryResponse(
            local_date=result.window.day,
            metrics=format_metrics(result.summary, policy),
            sample_count=result.summary.sample_count,
            skipped_samples=result.summary.skipped_samples,
        )
        for result in report.results
        if result.ok
    ]
    failed_days = [
        SleepWindowErrorResponse(local_date=result.window.day, error=result.error)
        for result in report.results
        if not result.ok
    ]

    return SleepDailyResponse(
        policy=policy.name,
        days=sorted(days, key=lambda d: d.local_date, reverse=True),
        failed_days=sorted(failed_days, key=lambda d: d.local_date, reverse=True),
    )
