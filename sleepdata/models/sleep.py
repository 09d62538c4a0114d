from pydantic import BaseModel, ConfigDict
from datetime import datetime, date
from enum import Enum
from typing import Optional, Dict, List


class SleepStage(str, Enum):
    """HealthKit sleep analysis category values"""
    IN_BED = "InBed"
    ASLEEP_UNSPECIFIED = "AsleepUnspecified"
    AWAKE = "Awake"
    CORE = "Core"
    DEEP = "Deep"
    REM = "REM"

    @classmethod
    def from_hk_value(cls, hk_value: int) -> Optional["SleepStage"]:
        """Map a raw HKCategoryValueSleepAnalysis value, None if unrecognized"""
        return HK_VALUE_STAGES.get(hk_value)


HK_VALUE_STAGES: Dict[int, SleepStage] = {
    0: SleepStage.IN_BED,
    1: SleepStage.ASLEEP_UNSPECIFIED,
    2: SleepStage.AWAKE,
    3: SleepStage.CORE,
    4: SleepStage.DEEP,
    5: SleepStage.REM,
}


class SleepBucket(str, Enum):
    """Stable keys of a daily summary; display labels belong to the policy"""
    IN_BED = "in_bed"
    ASLEEP = "asleep"
    AWAKE = "awake"
    CORE = "core"
    DEEP = "deep"
    REM = "rem"


class SleepSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    stage: Optional[SleepStage]  # None when the store reported an unknown tag
    hk_value: Optional[int] = None
    source_name: Optional[str] = None

    @property
    def duration(self) -> float:
        """Seconds between start and end, clamped at zero"""
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            return 0.0
        return max((self.end - self.start).total_seconds(), 0.0)


class DailySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    durations: Dict[SleepBucket, float]  # seconds
    estimated: List[SleepBucket] = []
    sample_count: int = 0
    skipped_samples: int = 0

    def __getitem__(self, bucket: SleepBucket) -> float:
        return self.durations[bucket]


class AggregationWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    start: datetime
    end: datetime  # exclusive

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class WindowResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    window: AggregationWindow
    summary: Optional[DailySummary] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SleepReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    authorized: bool = True
    error: Optional[str] = None
    results: List[WindowResult] = []


# API responses

class SleepStageResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    sleep_stage: Optional[str]
    hk_value: Optional[int]
    source_name: Optional[str]
    duration_seconds: float


class SleepMetricResponse(BaseModel):
    label: str
    value: str  # HH:MM
    seconds: float
    estimated: bool = False


class SleepDaySummaryResponse(BaseModel):
    local_date: date
    metrics: List[SleepMetricResponse]
    sample_count: int
    skipped_samples: int


class SleepWindowErrorResponse(BaseModel):
    local_date: date
    error: str


class SleepDailyResponse(BaseModel):
    policy: str
    days: List[SleepDaySummaryResponse]
    failed_days: List[SleepWindowErrorResponse]
