"""
Sleep sample aggregation.

Folds one window's sleep-stage samples into a DailySummary. Two policies are
available behind the same interface:

- DirectMappingPolicy: every stage accumulates into its own bucket.
- DerivedRatioPolicy: in-bed, asleep and awake time are summed from samples;
  deep and REM are *estimated* as fixed fractions of asleep time. The default
  15%/20% split is a heuristic with no cited source and is flagged as an
  estimate in every summary it produces.

Aggregation is pure: no I/O, no shared state, and the result does not depend
on sample order (per-bucket sums use math.fsum).
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from sleepdata.models.sleep import DailySummary, SleepBucket, SleepSample, SleepStage

logger = logging.getLogger(__name__)


class AggregationPolicy:
    """Routes sample durations into summary buckets"""

    name: str = ""
    buckets: tuple = ()
    labels: Dict[SleepBucket, str] = {}
    estimated: tuple = ()

    def route(self, stage: SleepStage) -> Optional[SleepBucket]:
        """Bucket a stage accumulates into, or None if the policy ignores it"""
        raise NotImplementedError

    def finalize(self, totals: Dict[SleepBucket, float]) -> Dict[SleepBucket, float]:
        """Hook for buckets derived from the accumulated totals"""
        return totals


class DirectMappingPolicy(AggregationPolicy):
    name = "direct"
    buckets = (
        SleepBucket.AWAKE,
        SleepBucket.REM,
        SleepBucket.CORE,
        SleepBucket.DEEP,
        SleepBucket.ASLEEP,
    )
    labels = {
        SleepBucket.AWAKE: "Acordado",
        SleepBucket.REM: "REM",
        SleepBucket.CORE: "Essencial",
        SleepBucket.DEEP: "Profundo",
        SleepBucket.ASLEEP: "Tempo Dormindo",
    }

    _routes = {
        SleepStage.AWAKE: SleepBucket.AWAKE,
        SleepStage.REM: SleepBucket.REM,
        SleepStage.CORE: SleepBucket.CORE,
        SleepStage.DEEP: SleepBucket.DEEP,
        SleepStage.ASLEEP_UNSPECIFIED: SleepBucket.ASLEEP,
    }

    def route(self, stage: SleepStage) -> Optional[SleepBucket]:
        return self._routes.get(stage)


class DerivedRatioPolicy(AggregationPolicy):
    name = "derived_ratio"
    buckets = (
        SleepBucket.IN_BED,
        SleepBucket.ASLEEP,
        SleepBucket.AWAKE,
        SleepBucket.DEEP,
        SleepBucket.REM,
    )
    labels = {
        SleepBucket.IN_BED: "Tempo na Cama",
        SleepBucket.ASLEEP: "Tempo Dormindo",
        SleepBucket.AWAKE: "Tempo Acordado",
        SleepBucket.DEEP: "Tempo de Sono Profundo",
        SleepBucket.REM: "Tempo de Sono REM",
    }
    estimated = (SleepBucket.DEEP, SleepBucket.REM)

    # Every asleep stage counts towards asleep time; deep and REM buckets are
    # never fed from their own samples.
    _routes = {
        SleepStage.IN_BED: SleepBucket.IN_BED,
        SleepStage.AWAKE: SleepBucket.AWAKE,
        SleepStage.ASLEEP_UNSPECIFIED: SleepBucket.ASLEEP,
        SleepStage.CORE: SleepBucket.ASLEEP,
        SleepStage.DEEP: SleepBucket.ASLEEP,
        SleepStage.REM: SleepBucket.ASLEEP,
    }

    def __init__(self, deep_ratio: float = 0.15, rem_ratio: float = 0.20):
        if not 0 <= deep_ratio <= 1 or not 0 <= rem_ratio <= 1:
            raise ValueError(f"Ratios must be between 0 and 1, got deep={deep_ratio} rem={rem_ratio}")
        self.deep_ratio = deep_ratio
        self.rem_ratio = rem_ratio

    def route(self, stage: SleepStage) -> Optional[SleepBucket]:
        return self._routes.get(stage)

    def finalize(self, totals: Dict[SleepBucket, float]) -> Dict[SleepBucket, float]:
        asleep = totals[SleepBucket.ASLEEP]
        totals[SleepBucket.DEEP] = asleep * self.deep_ratio
        totals[SleepBucket.REM] = asleep * self.rem_ratio
        return totals


def get_policy(name: str, deep_ratio: float = 0.15, rem_ratio: float = 0.20) -> AggregationPolicy:
    """Build a policy from its configured name"""
    if name == DirectMappingPolicy.name:
        return DirectMappingPolicy()
    if name == DerivedRatioPolicy.name:
        return DerivedRatioPolicy(deep_ratio=deep_ratio, rem_ratio=rem_ratio)
    raise ValueError(f"Unknown aggregation policy: {name}. Expected 'direct' or 'derived_ratio'")


def is_malformed(sample: SleepSample) -> bool:
    """Unknown stage, mixed naive/aware timestamps, or end before start"""
    if sample.stage is None:
        return True
    if (sample.start.tzinfo is None) != (sample.end.tzinfo is None):
        return True
    return sample.end < sample.start


def aggregate(samples: Iterable[SleepSample], policy: AggregationPolicy) -> DailySummary:
    """Fold one window's samples into a summary with every policy bucket present.

    Samples with an unrecognized stage, with naive and aware timestamps mixed,
    or with end before start are counted as skipped and contribute zero. This
    function never raises on sample content.
    """
    contributions: Dict[SleepBucket, List[float]] = {bucket: [] for bucket in policy.buckets}
    sample_count = 0
    skipped = 0

    for sample in samples:
        sample_count += 1

        if is_malformed(sample):
            skipped += 1
            continue

        bucket = policy.route(sample.stage)
        if bucket is None:
            continue

        contributions[bucket].append(sample.duration)

    totals = {bucket: math.fsum(values) for bucket, values in contributions.items()}
    totals = policy.finalize(totals)

    if skipped:
        logger.warning(f"Skipped {skipped} of {sample_count} malformed sleep samples")

    return DailySummary(
        durations=totals,
        estimated=list(policy.estimated),
        sample_count=sample_count,
        skipped_samples=skipped,
    )
