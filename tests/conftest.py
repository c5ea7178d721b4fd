"""
Shared pytest fixtures for the rate history test suite.
"""

import json

import pytest

from config import Settings
from etl.load import LocalHistoryStore
from etl.models import CurrencyQuote


# Same shape as the bank endpoint – numbers arrive as strings.
@pytest.fixture
def api_payload():
    return {
        "data": [
            {"CurrCode": "USD", "CurrName": "US Dollar", "TTBUY": "296.50", "ODBUY": "295.00", "TTSEL": "304.00"},
            {"CurrCode": "GBP", "CurrName": "Sterling Pound", "TTBUY": "378.12", "ODBUY": "376.40", "TTSEL": "391.75"},
            {"CurrCode": "JPY", "CurrName": "Japanese Yen", "TTBUY": "1.9512", "ODBUY": "1.9400", "TTSEL": "2.0511"},
        ]
    }


@pytest.fixture
def api_text(api_payload):
    return json.dumps(api_payload)


@pytest.fixture
def quotes():
    return {
        "USD": CurrencyQuote("USD", 296.5, 295.0, 304.0),
        "GBP": CurrencyQuote("GBP", 378.12, 376.4, 391.75),
        "JPY": CurrencyQuote("JPY", 1.9512, 1.94, 2.0511),
    }


@pytest.fixture
def store(tmp_path):
    return LocalHistoryStore(tmp_path)


@pytest.fixture
def settings(tmp_path):
    return Settings(local_data_dir=str(tmp_path))


@pytest.fixture
def write_doc(tmp_path):
    """Drop a JSON document into the local store root."""
    def _write(path, content):
        target = tmp_path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(content, indent=4), encoding="utf-8")
        return target
    return _write
