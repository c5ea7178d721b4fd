"""
Tests for etl/transform.py — pure list manipulation, no store involved.
"""

import copy
from datetime import datetime, timezone

from etl.models import CurrencyQuote
from etl.transform import UpsertOutcome, resolve_force, upsert_observation

TODAY = "2026-02-17"


def _history():
    return [
        {"date": "2026-02-15", "value": 295.1},
        {"date": "2026-02-16", "TTBUY": 296.0, "ODBUY": 294.8, "TTSEL": 303.5},
    ]


def test_new_day_is_appended(quotes):
    history = _history()
    outcome = upsert_observation(history, TODAY, quotes["USD"])
    assert outcome is UpsertOutcome.CREATED
    assert history[-1] == {"date": TODAY, "TTBUY": 296.5, "ODBUY": 295.0, "TTSEL": 304.0}
    assert len(history) == 3


def test_second_run_same_day_is_skipped(quotes):
    history = _history()
    upsert_observation(history, TODAY, quotes["USD"])
    snapshot = copy.deepcopy(history)

    later = CurrencyQuote("USD", 297.0, 296.0, 305.0)
    outcome = upsert_observation(history, TODAY, later)

    assert outcome is UpsertOutcome.SKIPPED
    assert not outcome.changed
    assert history == snapshot
    assert [e["date"] for e in history].count(TODAY) == 1


def test_forced_run_replaces_only_todays_rates(quotes):
    history = _history()
    upsert_observation(history, TODAY, quotes["USD"])
    before = copy.deepcopy(history[:-1])

    corrected = CurrencyQuote("USD", 297.25, 296.0, 305.5)
    outcome = upsert_observation(history, TODAY, corrected, force=True)

    assert outcome is UpsertOutcome.OVERWRITTEN
    assert history[:-1] == before
    assert history[-1] == {"date": TODAY, "TTBUY": 297.25, "ODBUY": 296.0, "TTSEL": 305.5}


def test_forced_overwrite_drops_stale_fields():
    history = [{"date": TODAY, "value": 290.0, "ODBUY": 289.0}]
    upsert_observation(history, TODAY, CurrencyQuote("USD", 300.0), force=True)
    assert history == [{"date": TODAY, "TTBUY": 300.0}]


def test_force_on_new_day_still_creates(quotes):
    history = []
    assert upsert_observation(history, TODAY, quotes["GBP"], force=True) is UpsertOutcome.CREATED
    assert len(history) == 1


def test_explicit_force():
    assert resolve_force(True) is True
    assert resolve_force(False) is False


def test_without_schedule_time_only_flag_forces():
    off_hours = datetime(2026, 2, 17, 14, 5, tzinfo=timezone.utc)
    assert resolve_force(False, now=off_hours) is False


def test_off_schedule_invocation_forces():
    at = datetime(2026, 2, 17, 3, 30, tzinfo=timezone.utc)
    late = datetime(2026, 2, 17, 3, 31, tzinfo=timezone.utc)
    assert resolve_force(False, now=at, scheduled_time="03:30") is False
    assert resolve_force(False, now=late, scheduled_time="03:30") is True


def test_malformed_schedule_time_is_ignored():
    now = datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc)
    assert resolve_force(False, now=now, scheduled_time="half past three") is False
