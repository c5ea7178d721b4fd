"""
analytics/series.py – Loading and shaping history for display.

The dashboard reads the same JSON files the pipeline writes, either straight
from a store or as static assets over HTTP. Each currency is loaded in its
own worker and all loads are joined before anything is shown; a file that
is missing or broken just yields an empty series.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import reduce
from typing import Any, Mapping, Sequence

import polars as pl
import requests

from analytics.aggregate import DAYS, window
from config import DATA_PREFIX, DEFAULT_RATE_TYPE, HOME_CURRENCY, MANIFEST_FILE, history_path
from etl.errors import HistoryNotFoundError, RateHistoryError, StoreError
from etl.load import StoredDocument
from etl.manifest import resolve_manifest
from etl.models import RateObservation, parse_history, parse_number

logger = logging.getLogger(__name__)

MAX_LOAD_WORKERS = 8

TO_HOME = "to_lkr"
FROM_HOME = "from_lkr"


class StaticSiteReader:
    """Read-only access to the published JSON files, e.g. https://host/data/usd.json."""

    def __init__(self, base_url: str, timeout: int = 15) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def load(self, path: str) -> StoredDocument:
        url = f"{self.base_url}/{path}"
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise StoreError(f"Cannot fetch {url}: {exc}") from exc
        if response.status_code == 404:
            raise HistoryNotFoundError(path)
        if not response.ok:
            raise StoreError(f"HTTP {response.status_code} for {url}")
        try:
            content = response.json()
        except ValueError as exc:
            raise StoreError(f"{url} is not valid JSON") from exc
        return StoredDocument(revision=response.headers.get("ETag", ""), content=content)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_manifest(reader, prefix: str = DATA_PREFIX) -> list[str]:
    return resolve_manifest(reader, f"{prefix}/{MANIFEST_FILE}")


def load_history(reader, code: str, prefix: str = DATA_PREFIX) -> list[RateObservation]:
    try:
        raw = reader.load(history_path(code, prefix)).content
    except RateHistoryError as exc:
        logger.warning("Failed to load data for %s: %s", code, exc)
        return []
    return parse_history(raw, code)


def load_histories(
    reader,
    codes: Sequence[str],
    prefix: str = DATA_PREFIX,
) -> dict[str, list[RateObservation]]:
    """Load every currency concurrently; returns once all loads finished."""
    if not codes:
        return {}
    with ThreadPoolExecutor(max_workers=min(MAX_LOAD_WORKERS, len(codes))) as pool:
        loaded = pool.map(lambda code: load_history(reader, code, prefix), codes)
        histories = dict(zip(codes, loaded))
    logger.info(
        "Loaded history for %d currencies (%d observations)",
        len(histories),
        sum(len(v) for v in histories.values()),
    )
    return histories


# ---------------------------------------------------------------------------
# Chart table / CSV
# ---------------------------------------------------------------------------

def build_table(
    histories: Mapping[str, Sequence[RateObservation]],
    codes: Sequence[str],
    size: int,
    view: str = DAYS,
    rate_type: str = DEFAULT_RATE_TYPE,
) -> pl.DataFrame:
    """
    One row per date in the union of the windows, one column per currency.

        date        GBP      USD
        2026-02-16  378.1    null
        2026-02-17  379.0    296.5
    """
    frames = [
        window(histories.get(code, []), size, view, rate_type).rename({"rate": code})
        for code in codes
    ]
    if not frames:
        return pl.DataFrame(schema={"date": pl.String})
    return reduce(
        lambda left, right: left.join(right, on="date", how="full", coalesce=True),
        frames,
    ).sort("date")


def chart_data(table: pl.DataFrame) -> dict[str, Any]:
    """Labels plus one aligned value list per currency (None for gaps)."""
    return {
        "labels": table["date"].to_list(),
        "datasets": [
            {"label": code, "data": table[code].to_list()}
            for code in table.columns
            if code != "date"
        ],
    }


def export_csv(
    histories: Mapping[str, Sequence[RateObservation]],
    codes: Sequence[str],
    size: int,
    view: str = DAYS,
    rate_type: str = DEFAULT_RATE_TYPE,
) -> str:
    """Every field double-quoted, empty for gaps. Currencies with no data are left out."""
    with_data = [code for code in codes if histories.get(code)]
    if not with_data:
        raise ValueError("No data to export")
    table = build_table(histories, with_data, size, view, rate_type)
    # 377.0 is written as "377"
    table = table.with_columns([
        pl.when(pl.col(code) == pl.col(code).round(0))
        .then(pl.col(code).cast(pl.Int64).cast(pl.String))
        .otherwise(pl.col(code).cast(pl.String))
        .alias(code)
        for code in with_data
    ])
    return table.write_csv(quote_style="always", null_value="")


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------

def latest_rate(
    records: Sequence[RateObservation],
    code: str,
    rate_type: str = DEFAULT_RATE_TYPE,
) -> float | None:
    """Most recent rate in LKR per unit of ``code``."""
    if code.upper() == HOME_CURRENCY:
        return 1.0
    if not records:
        return None
    return records[-1].resolve(rate_type)


def latest_date(histories: Mapping[str, Sequence[RateObservation]]) -> str | None:
    dates = [records[-1].date for records in histories.values() if records]
    return max(dates) if dates else None


def convert(amount: Any, rate: float | None, direction: str = TO_HOME) -> float | None:
    """
    Convert between a foreign currency and LKR at ``rate``.

    to_lkr:   amount × rate
    from_lkr: amount ÷ rate
    """
    if direction not in (TO_HOME, FROM_HOME):
        raise ValueError(f"Unknown direction: {direction}")
    value = parse_number(amount)
    if value is None or value <= 0 or rate is None or rate <= 0:
        return None
    result = value * rate if direction == TO_HOME else value / rate
    return round(result, 2)
