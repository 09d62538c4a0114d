import pytest

from conftest import at, make_sample
from sleepdata.models.sleep import SleepStage
from sleepdata.services.aggregation import DerivedRatioPolicy, DirectMappingPolicy, aggregate
from sleepdata.services.formatting import format_duration, format_metrics


@pytest.mark.parametrize("seconds, expected", [
    (0, "00:00"),
    (59, "00:00"),
    (3661, "01:01"),
    (7 * 3600 + 5 * 60, "07:05"),
    (90000, "25:00"),
    (1800.9, "00:30"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_metrics_uses_direct_labels_sorted():
    summary = aggregate(
        [make_sample(at(10, 1), at(10, 2, 30), SleepStage.CORE)],
        DirectMappingPolicy()
    )

    metrics = format_metrics(summary, DirectMappingPolicy())

    assert [m.label for m in metrics] == ["Acordado", "Essencial", "Profundo", "REM", "Tempo Dormindo"]
    core = next(m for m in metrics if m.label == "Essencial")
    assert core.value == "01:30"
    assert core.seconds == 5400
    assert not any(m.estimated for m in metrics)


def test_format_metrics_flags_estimated_labels():
    policy = DerivedRatioPolicy()
    summary = aggregate([make_sample(at(10, 0), at(10, 10), SleepStage.CORE)], policy)

    metrics = {m.label: m for m in format_metrics(summary, policy)}

    assert set(metrics) == {
        "Tempo na Cama",
        "Tempo Dormindo",
        "Tempo Acordado",
        "Tempo de Sono Profundo",
        "Tempo de Sono REM",
    }
    assert metrics["Tempo Dormindo"].value == "10:00"
    assert metrics["Tempo de Sono Profundo"].value == "01:30"
    assert metrics["Tempo de Sono REM"].value == "02:00"
    assert metrics["Tempo de Sono Profundo"].estimated
    assert metrics["Tempo de Sono REM"].estimated
    assert not metrics["Tempo Dormindo"].estimated
