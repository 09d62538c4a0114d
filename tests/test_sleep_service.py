import asyncio
from datetime import date, datetime, timezone

from conftest import StubPool, at, make_sample
from sleepdata.models.sleep import SleepBucket, SleepStage
from sleepdata.services.aggregation import DerivedRatioPolicy, DirectMappingPolicy, aggregate
from sleepdata.services.sample_source import InMemorySampleSource, PostgresSampleSource
from sleepdata.services.sleep import (
    build_daily_response,
    collect_daily_summaries,
    get_sleep_stages,
    merge_summaries,
)
from sleepdata.services.windows import build_windows, window_for_date

NOW = datetime(2024, 11, 12, 9, 0, tzinfo=timezone.utc)


def three_nights():
    return [
        make_sample(at(10, 1), at(10, 3), SleepStage.CORE),
        make_sample(at(10, 3), at(10, 4), SleepStage.DEEP),
        make_sample(at(11, 2), at(11, 2, 45), SleepStage.REM),
        make_sample(at(11, 2, 45), at(11, 3), SleepStage.AWAKE),
        make_sample(at(12, 0), at(12, 6), SleepStage.CORE),
    ]


def collect(source, policy=None, days=3):
    windows = build_windows(days, tz="UTC", now=NOW)
    return asyncio.run(collect_daily_summaries(source, windows, policy or DirectMappingPolicy()))


def test_collect_aggregates_each_window_separately():
    report = collect(InMemorySampleSource(three_nights()))

    assert report.authorized
    by_day = {r.window.day: r.summary for r in report.results}
    assert by_day[date(2024, 11, 10)][SleepBucket.CORE] == 7200
    assert by_day[date(2024, 11, 10)][SleepBucket.DEEP] == 3600
    assert by_day[date(2024, 11, 11)][SleepBucket.REM] == 2700
    assert by_day[date(2024, 11, 11)][SleepBucket.AWAKE] == 900
    assert by_day[date(2024, 11, 12)][SleepBucket.CORE] == 6 * 3600


def test_denied_authorization_returns_unauthorized_report():
    report = collect(InMemorySampleSource(three_nights(), authorized=False))

    assert not report.authorized
    assert "denied" in report.error
    assert report.results == []


def test_failed_window_is_isolated():
    source = InMemorySampleSource(three_nights(), failing_days=[date(2024, 11, 11)])

    report = collect(source)

    failed = [r for r in report.results if not r.ok]
    assert [r.window.day for r in failed] == [date(2024, 11, 11)]
    assert "simulated failure" in failed[0].error
    ok_days = {r.window.day for r in report.results if r.ok}
    assert ok_days == {date(2024, 11, 10), date(2024, 11, 12)}


def test_merge_keeps_previous_values_for_failed_windows():
    previous = {date(2024, 11, 11): aggregate(three_nights()[2:4], DirectMappingPolicy())}
    report = collect(InMemorySampleSource(three_nights(), failing_days=[date(2024, 11, 11)]))

    merged = merge_summaries(previous, report)

    assert merged is not previous
    assert set(merged) == {date(2024, 11, 10), date(2024, 11, 11), date(2024, 11, 12)}
    assert merged[date(2024, 11, 11)] == previous[date(2024, 11, 11)]
    assert list(previous) == [date(2024, 11, 11)]


def test_build_daily_response_sorts_newest_first():
    source = InMemorySampleSource(three_nights(), failing_days=[date(2024, 11, 11)])
    policy = DerivedRatioPolicy()

    response = build_daily_response(collect(source, policy), policy)

    assert response.policy == "derived_ratio"
    assert [d.local_date for d in response.days] == [date(2024, 11, 12), date(2024, 11, 10)]
    assert [d.local_date for d in response.failed_days] == [date(2024, 11, 11)]
    newest = {m.label: m.value for m in response.days[0].metrics}
    assert newest["Tempo Dormindo"] == "06:00"
    assert newest["Tempo de Sono Profundo"] == "00:54"
    assert newest["Tempo de Sono REM"] == "01:12"


def test_get_sleep_stages_lists_window_samples_in_order():
    samples = list(reversed(three_nights()))
    source = InMemorySampleSource(samples)

    stages = asyncio.run(get_sleep_stages(source, window_for_date("2024-11-10")))

    assert [s.sleep_stage for s in stages] == ["Core", "Deep"]
    assert stages[0].duration_seconds == 7200


def test_unreachable_store_returns_error_report():
    source = PostgresSampleSource(StubPool(acquire_error=ConnectionRefusedError("Connection refused")))

    report = collect(source)

    assert report.authorized
    assert "Connection refused" in report.error
    assert report.results == []
