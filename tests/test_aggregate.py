"""
Tests for analytics/aggregate.py — uses fixture data, no I/O.
"""

import polars as pl
import pytest

from analytics.aggregate import (
    MONTHLY,
    Trend,
    compute_stats,
    pct_change,
    summarize,
    to_frame,
    trend,
    window,
)
from etl.models import RateObservation


def _obs(*pairs, field="TTBUY"):
    return [RateObservation.from_dict({"date": d, field: v}) for d, v in pairs]


@pytest.fixture
def daily():
    return _obs(
        ("2026-02-10", 296.0),
        ("2026-02-11", 296.4),
        ("2026-02-12", 295.9),
        ("2026-02-13", 297.1),
        ("2026-02-16", 297.1),
    )


def test_frame_columns(daily):
    df = to_frame(daily)
    assert df.columns == ["date", "rate"]
    assert df.schema["rate"] == pl.Float64


def test_day_window_keeps_last_n(daily):
    df = window(daily, 3)
    assert df["date"].to_list() == ["2026-02-12", "2026-02-13", "2026-02-16"]
    assert df["rate"].to_list() == [295.9, 297.1, 297.1]


def test_day_window_larger_than_history(daily):
    assert window(daily, 365).height == 5


def test_monthly_average_on_first_of_month():
    records = _obs(("2024-01-05", 10), ("2024-01-20", 20), ("2024-02-10", 30), field="value")
    df = window(records, 12, MONTHLY)
    assert df.to_dicts() == [
        {"date": "2024-01-01", "rate": 15.0},
        {"date": "2024-02-01", "rate": 30.0},
    ]


def test_monthly_keeps_last_n_months():
    records = _obs(("2023-11-03", 1), ("2023-12-03", 2), ("2024-01-03", 3))
    assert window(records, 2, MONTHLY)["date"].to_list() == ["2023-12-01", "2024-01-01"]


def test_monthly_ignores_missing_values():
    records = [
        RateObservation(date="2024-03-01", TTBUY=10.0),
        RateObservation(date="2024-03-02", TTSEL=99.0),
        RateObservation(date="2024-03-03", TTBUY=20.0),
    ]
    assert window(records, 1, MONTHLY)["rate"].to_list() == [15.0]


def test_invalid_window_arguments(daily):
    with pytest.raises(ValueError):
        window(daily, 0)
    with pytest.raises(ValueError):
        window(daily, 7, "weekly")


def test_stats(daily):
    stats = compute_stats(window(daily, 4))
    assert stats.min == 295.9
    assert stats.max == 297.1
    assert stats.avg == pytest.approx((296.4 + 295.9 + 297.1 + 297.1) / 4)


def test_stats_skip_missing_fields():
    records = [RateObservation(date="2024-03-01", TTBUY=10.0), RateObservation(date="2024-03-02", TTSEL=1.0)]
    stats = compute_stats(window(records, 7))
    assert (stats.min, stats.max, stats.avg) == (10.0, 10.0, 10.0)


def test_stats_of_empty_window_is_none():
    assert compute_stats(window([], 7)) is None


@pytest.mark.parametrize("values, expected", [
    ([5.0, 5.0], Trend.UNCHANGED),
    ([5.0, 5.1], Trend.INCREASE),
    ([5.1, 5.0], Trend.DECREASE),
    ([5.0], Trend.UNCHANGED),
])
def test_trend(values, expected):
    records = _obs(*[(f"2026-01-0{i + 1}", v) for i, v in enumerate(values)])
    assert trend(window(records, 7)) is expected


def test_trend_with_missing_value_is_unchanged():
    records = [RateObservation(date="2026-01-01", TTBUY=5.0), RateObservation(date="2026-01-02", TTSEL=6.0)]
    assert trend(window(records, 7)) is Trend.UNCHANGED


def test_trend_arrows():
    assert [t.arrow for t in Trend] == ["↑", "↓", "→"]


def test_pct_change():
    assert pct_change(200.0, 210.0) == pytest.approx(5.0)
    assert pct_change(0.0, 210.0) is None
    assert pct_change(None, 210.0) is None
    assert pct_change(200.0, None) is None


def test_summarize(daily):
    card = summarize("USD", daily, 3)
    assert card.last == 297.1
    assert card.trend is Trend.UNCHANGED
    assert card.change_pct == pytest.approx(0.0)
    assert card.to_dict()["min"] == 295.9


def test_summarize_empty_history():
    card = summarize("EUR", [], 14)
    assert card.last is None
    assert card.stats is None
    assert card.change_pct is None
    assert card.to_dict()["trend"] == "unchanged"
