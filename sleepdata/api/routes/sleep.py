from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from sleepdata.core.config import settings
from sleepdata.core.database import get_pool
from sleepdata.models.sleep import SleepDailyResponse, SleepDaySummaryResponse, SleepStageResponse
from sleepdata.services.aggregation import AggregationPolicy, get_policy
from sleepdata.services.sample_source import (
    AuthorizationDenied,
    PostgresSampleSource,
    SampleSource,
    SampleSourceError,
)
from sleepdata.services.sleep import build_daily_response, collect_daily_summaries, get_sleep_stages
from sleepdata.services.windows import build_windows, window_for_date

# Prefix of every router is added on each route in this file
router = APIRouter(prefix="/api/v1/sleep", tags=["sleep"])


def get_sample_source() -> SampleSource:
    """Dependency to get the sleep sample source"""
    return PostgresSampleSource(get_pool(), timeout=settings.query_timeout)


def resolve_policy(policy: Optional[str]) -> AggregationPolicy:
    return get_policy(
        policy or settings.aggregation_policy,
        deep_ratio=settings.deep_sleep_ratio,
        rem_ratio=settings.rem_sleep_ratio,
    )


@router.get("/", response_model=List[SleepStageResponse])
async def get_sleep_samples(
    local_date: str = Query(..., description="Date in YYYY-MM-DD format"),
    user_id: Optional[str] = Query(None, description="User ID filter"),
    source: SampleSource = Depends(get_sample_source)
):
    """Get raw sleep stages for a specific date"""

    try:
        window = window_for_date(local_date, settings.timezone)
        return await get_sleep_stages(source, window, user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AuthorizationDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except SampleSourceError as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/summary", response_model=SleepDaySummaryResponse)
async def get_sleep_summary(
    local_date: str = Query(..., description="Date in YYYY-MM-DD format"),
    policy: Optional[str] = Query(None, description="Aggregation policy: direct or derived_ratio"),
    user_id: Optional[str] = Query(None, description="User ID filter"),
    source: SampleSource = Depends(get_sample_source)
):
    """Get aggregated sleep summary for a specific date"""

    try:
        window = window_for_date(local_date, settings.timezone)
        aggregation_policy = resolve_policy(policy)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    report = await collect_daily_summaries(source, [window], aggregation_policy, user_id)
    if not report.authorized:
        raise HTTPException(status_code=403, detail=report.error)
    if report.error:
        raise HTTPException(status_code=500, detail=f"Database error: {report.error}")

    response = build_daily_response(report, aggregation_policy)
    if response.failed_days:
        raise HTTPException(status_code=500, detail=f"Database error: {response.failed_days[0].error}")

    return response.days[0]


@router.get("/daily", response_model=SleepDailyResponse)
async def get_daily_sleep(
    days: Optional[int] = Query(None, ge=1, le=31, description="Number of days to look back"),
    policy: Optional[str] = Query(None, description="Aggregation policy: direct or derived_ratio"),
    user_id: Optional[str] = Query(None, description="User ID filter"),
    source: SampleSource = Depends(get_sample_source)
):
    """Get per-day sleep summaries for the lookback window, newest first"""

    try:
        windows = build_windows(
            days or settings.lookback_days,
            rule=settings.window_start_rule,
            tz=settings.timezone,
        )
        aggregation_policy = resolve_policy(policy)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    report = await collect_daily_summaries(source, windows, aggregation_policy, user_id)
    if not report.authorized:
        raise HTTPException(status_code=403, detail=report.error)
    if report.error:
        raise HTTPException(status_code=500, detail=f"Database error: {report.error}")

    return build_daily_response(report, aggregation_policy)


@router.get("/test")
async def test_connection(source: SampleSource = Depends(get_sample_source)):
    """Test sample store connection"""

    try:
        await source.authorize()
        result = await source.count_samples()
        return {"message": "Database connection successful", "total_records": result}
    except AuthorizationDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database connection failed: {str(e)}")
