"""
etl/manifest.py – Which currencies to track.

The manifest is a JSON array of codes kept next to the history files and read
fresh on every run, so adding a currency is a one-line commit.
"""

import logging

from config import DEFAULT_CURRENCIES
from etl.errors import RateHistoryError
from etl.load import HistoryStore

logger = logging.getLogger(__name__)


def normalize_codes(raw) -> list[str]:
    """Upper-case, strip and de-duplicate; raises ValueError on a bad shape."""
    if not isinstance(raw, list) or not all(isinstance(c, str) for c in raw):
        raise ValueError("manifest must be a JSON array of currency codes")
    codes: list[str] = []
    for code in (c.strip().upper() for c in raw):
        if code and code not in codes:
            codes.append(code)
    return codes


def resolve_manifest(store: HistoryStore, path: str) -> list[str]:
    """Tracked currency codes, or DEFAULT_CURRENCIES if the manifest is unusable."""
    try:
        codes = normalize_codes(store.load(path).content)
    except (RateHistoryError, ValueError) as exc:
        logger.warning(
            "Failed to load %s, using default currencies (%s): %s",
            path, ", ".join(DEFAULT_CURRENCIES), exc,
        )
        return list(DEFAULT_CURRENCIES)

    logger.info("Loaded manifest with %d currencies: %s", len(codes), ", ".join(codes))
    return codes
