"""
etl/models.py – Records shared by the pipeline and the dashboard.

History files are loose JSON written over several years: early entries only
carry a single ``value`` (TTBUY at the time), later ones carry the three bank
quote fields, and the bank itself sends numbers as strings with thousands
separators. Everything is normalised here, at the read boundary.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from config import RATE_TYPES

logger = logging.getLogger(__name__)


def parse_number(raw: Any) -> float | None:
    """Parse 1234.5, "1,234.50" or " 312.1 " to float; None when not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.replace(",", "").strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


@dataclass(slots=True)
class RateObservation:
    """One day of rates for one currency."""

    date: str
    TTBUY: float | None = None
    ODBUY: float | None = None
    TTSEL: float | None = None
    # Single-rate entries written before the three quote types were stored.
    value: float | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> RateObservation | None:
        """Build from a persisted entry; None if it has no date or no rate."""
        if not isinstance(raw, dict) or not raw.get("date"):
            return None
        obs = cls(
            date=str(raw["date"]),
            TTBUY=parse_number(raw.get("TTBUY")),
            ODBUY=parse_number(raw.get("ODBUY")),
            TTSEL=parse_number(raw.get("TTSEL")),
            value=parse_number(raw.get("value")),
        )
        if all(getattr(obs, f) is None for f in (*RATE_TYPES, "value")):
            return None
        return obs

    def resolve(self, rate_type: str) -> float | None:
        """Requested quote field, else the legacy value, else None."""
        if rate_type not in RATE_TYPES:
            raise ValueError(f"Unknown rate type: {rate_type}")
        explicit = getattr(self, rate_type)
        if explicit is not None:
            return explicit
        return self.value


@dataclass(slots=True)
class CurrencyQuote:
    """A single currency row from the bank's rate table."""

    code: str
    ttbuy: float
    odbuy: float | None = None
    ttsel: float | None = None

    def as_fields(self) -> dict[str, float]:
        fields = {"TTBUY": self.ttbuy, "ODBUY": self.odbuy, "TTSEL": self.ttsel}
        return {k: v for k, v in fields.items() if v is not None}

    def as_result(self) -> dict[str, float | None]:
        return {"ttbuy": self.ttbuy, "odbuy": self.odbuy, "ttsel": self.ttsel}


def parse_history(raw: Any, code: str = "") -> list[RateObservation]:
    """Validate a loaded history document; malformed entries are dropped."""
    if not isinstance(raw, list):
        logger.warning("History for %s is not a JSON array – treating as empty", code or "?")
        return []
    records = []
    dropped = 0
    for entry in raw:
        obs = RateObservation.from_dict(entry)
        if obs is None:
            dropped += 1
            continue
        records.append(obs)
    if dropped:
        logger.warning("Dropped %d malformed entries from %s history", dropped, code or "?")
    return records
