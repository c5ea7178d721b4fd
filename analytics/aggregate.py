"""
analytics/aggregate.py – Windowing and statistics for the dashboard.

A currency's history is turned into a two-column Polars frame

    date (String, YYYY-MM-DD)   rate (Float64, nullable)

where ``rate`` is the selected quote type with the legacy ``value`` as
fallback. Rows whose rate is null keep their date so that multi-currency
charts still line up on a shared date axis.

Views
-----
    days     last N daily observations
    monthly  mean per calendar month, dated to the 1st, last N months
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import polars as pl

from config import DEFAULT_RATE_TYPE
from etl.models import RateObservation

DAYS = "days"
MONTHLY = "monthly"
VIEWS = (DAYS, MONTHLY)


@dataclass(frozen=True)
class RangePreset:
    label: str
    size: int
    view: str = DAYS


RANGE_PRESETS: dict[str, RangePreset] = {
    "7d": RangePreset("7 days", 7),
    "14d": RangePreset("14 days", 14),
    "30d": RangePreset("30 days", 30),
    "2m": RangePreset("2 months", 60),
    "3m": RangePreset("3 months", 90),
    "6m": RangePreset("6 months", 180),
    "1y": RangePreset("1 year", 365),
    "6mo": RangePreset("6 months (monthly)", 6, MONTHLY),
    "12mo": RangePreset("12 months (monthly)", 12, MONTHLY),
}
DEFAULT_RANGE = "14d"


class Trend(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    UNCHANGED = "unchanged"

    @property
    def arrow(self) -> str:
        return {"increase": "↑", "decrease": "↓", "unchanged": "→"}[self.value]


@dataclass(frozen=True)
class Stats:
    min: float
    max: float
    avg: float


@dataclass(frozen=True)
class StatCard:
    code: str
    last: float | None
    stats: Stats | None
    trend: Trend
    change_pct: float | None

    def to_dict(self) -> dict:
        return {
            "currency": self.code,
            "last": self.last,
            "min": self.stats.min if self.stats else None,
            "max": self.stats.max if self.stats else None,
            "avg": self.stats.avg if self.stats else None,
            "trend": self.trend.value,
            "changePct": self.change_pct,
        }


def to_frame(records: Sequence[RateObservation], rate_type: str = DEFAULT_RATE_TYPE) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "date": [r.date for r in records],
            "rate": [r.resolve(rate_type) for r in records],
        },
        schema={"date": pl.String, "rate": pl.Float64},
    )


def window(
    records: Sequence[RateObservation],
    size: int,
    view: str = DAYS,
    rate_type: str = DEFAULT_RATE_TYPE,
) -> pl.DataFrame:
    """
    The slice of history a chart or stat card shows.

    Parameters
    ----------
    size : int – number of days (days view) or months (monthly view)
    view : str – "days" or "monthly"
    """
    if size < 1:
        raise ValueError(f"Window size must be positive, got {size}")
    if view not in VIEWS:
        raise ValueError(f"Unknown view: {view}")

    df = to_frame(records, rate_type).sort("date", maintain_order=True)

    if view == MONTHLY:
        df = (
            df
            .with_columns(pl.col("date").str.slice(0, 7).alias("month"))
            .group_by("month")
            .agg(pl.col("rate").mean())
            .sort("month")
            .select(
                pl.concat_str([pl.col("month"), pl.lit("-01")]).alias("date"),
                pl.col("rate"),
            )
        )

    return df.tail(size)


def compute_stats(df: pl.DataFrame) -> Stats | None:
    """Min/max/mean over the non-null rates; None when there are none."""
    values = df["rate"].drop_nulls()
    if values.is_empty():
        return None
    return Stats(min=values.min(), max=values.max(), avg=values.mean())


def _last_two(df: pl.DataFrame) -> tuple[float | None, float | None]:
    if df.height < 2:
        return None, None
    rates = df["rate"]
    return rates[-2], rates[-1]


def trend(df: pl.DataFrame) -> Trend:
    prev, last = _last_two(df)
    if prev is None or last is None:
        return Trend.UNCHANGED
    if last > prev:
        return Trend.INCREASE
    if last < prev:
        return Trend.DECREASE
    return Trend.UNCHANGED


def pct_change(prev: float | None, last: float | None) -> float | None:
    if prev is None or last is None or prev == 0:
        return None
    return (last - prev) / prev * 100


def summarize(
    code: str,
    records: Sequence[RateObservation],
    size: int,
    view: str = DAYS,
    rate_type: str = DEFAULT_RATE_TYPE,
) -> StatCard:
    df = window(records, size, view, rate_type)
    prev, last = _last_two(df)
    return StatCard(
        code=code,
        last=df["rate"][-1] if df.height else None,
        stats=compute_stats(df),
        trend=trend(df),
        change_pct=pct_change(prev, last),
    )
