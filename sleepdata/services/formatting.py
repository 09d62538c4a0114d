from typing import List

from sleepdata.models.sleep import DailySummary, SleepMetricResponse
from sleepdata.services.aggregation import AggregationPolicy


def format_duration(seconds: float) -> str:
    """Render seconds as HH:MM; hours are not wrapped at 24"""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours:02d}:{minutes:02d}"


def format_metrics(summary: DailySummary, policy: AggregationPolicy) -> List[SleepMetricResponse]:
    """Label and format every bucket of a summary, sorted by label"""
    metrics = [
        SleepMetricResponse(
            label=policy.labels[bucket],
            value=format_duration(seconds),
            seconds=seconds,
            estimated=bucket in summary.estimated,
        )
        for bucket, seconds in summary.durations.items()
    ]
    return sorted(metrics, key=lambda metric: metric.label)
