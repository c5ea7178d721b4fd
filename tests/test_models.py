"""
Tests for etl/models.py and config.py.
"""

import pytest

from config import Settings, history_path
from etl.models import CurrencyQuote, RateObservation, parse_history, parse_number


@pytest.mark.parametrize("raw, expected", [
    (296.5, 296.5),
    (300, 300.0),
    ("1,234.50", 1234.5),
    (" 312.1 ", 312.1),
    ("", None),
    ("n/a", None),
    (None, None),
    (True, None),
    ("nan", None),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_legacy_value_is_the_fallback():
    obs = RateObservation.from_dict({"date": "2024-01-05", "value": 300})
    assert obs.resolve("TTBUY") == 300


def test_explicit_field_wins_over_legacy_value():
    obs = RateObservation.from_dict({"date": "2024-01-05", "TTBUY": 310, "value": 300})
    assert obs.resolve("TTBUY") == 310


def test_missing_field_and_no_value_resolves_to_none():
    obs = RateObservation.from_dict({"date": "2024-01-05", "TTBUY": 310})
    assert obs.resolve("TTSEL") is None


def test_unknown_rate_type_is_rejected():
    obs = RateObservation(date="2024-01-05", TTBUY=1.0)
    with pytest.raises(ValueError):
        obs.resolve("MIDRATE")


@pytest.mark.parametrize("raw", [
    None,
    "2024-01-05",
    {"TTBUY": 1},
    {"date": "", "TTBUY": 1},
    {"date": "2024-01-05"},
    {"date": "2024-01-05", "TTBUY": "?"},
])
def test_malformed_entries_are_rejected(raw):
    assert RateObservation.from_dict(raw) is None


def test_parse_history_drops_bad_entries():
    records = parse_history([{"date": "2024-01-05", "value": 1}, {"oops": True}], "USD")
    assert [r.date for r in records] == ["2024-01-05"]


def test_parse_history_of_non_list_is_empty():
    assert parse_history({"date": "2024-01-05"}, "USD") == []


def test_quote_fields_skip_missing_rates():
    assert CurrencyQuote("USD", 296.5).as_fields() == {"TTBUY": 296.5}


def test_history_path_is_lowercase():
    assert history_path("USD") == "data/usd.json"
    assert history_path("GBP", "public/data") == "public/data/gbp.json"


def test_settings_from_env():
    settings = Settings.from_env({
        "CRON_SECRET": "s3cret",
        "GITHUB_REPO": "owner/rates",
        "GITHUB_TOKEN": "ghp_x",
        "DATA_PREFIX": "/public/data/",
    })
    assert settings.cron_secret == "s3cret"
    assert settings.github_branch == "main"
    assert settings.data_prefix == "public/data"
    assert settings.manifest_path == "public/data/manifest.json"
    assert settings.last_updated_path == "public/data/last-updated.json"


def test_settings_defaults_with_empty_env():
    settings = Settings.from_env({})
    assert settings.cron_secret is None
    assert settings.github_repo is None
    assert settings.scheduled_time is None
    assert settings.manifest_path == "data/manifest.json"
