"""
etl/transform.py – Upsert policy.

Decides what happens to a currency's history when a new quote arrives:

    no entry for today            → append               (CREATED)
    entry for today, not forced   → leave untouched      (SKIPPED)
    entry for today, forced       → replace rate fields  (OVERWRITTEN)

History is one entry per calendar day, so a linear scan is all we need.
"""

import logging
from datetime import datetime, timezone
from enum import Enum

from config import RATE_TYPES
from etl.models import CurrencyQuote

logger = logging.getLogger(__name__)

_RATE_FIELDS = (*RATE_TYPES, "value")


class UpsertOutcome(Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    OVERWRITTEN = "overwritten"

    @property
    def changed(self) -> bool:
        return self is not UpsertOutcome.SKIPPED


def find_entry(history: list[dict], day: str) -> dict | None:
    for entry in history:
        if isinstance(entry, dict) and entry.get("date") == day:
            return entry
    return None


def upsert_observation(
    history: list[dict],
    today: str,
    quote: CurrencyQuote,
    force: bool = False,
) -> UpsertOutcome:
    """
    Apply today's quote to ``history`` in place.

    Parameters
    ----------
    history : list[dict] – the persisted array, ascending by date
    today   : str        – ISO date, e.g. "2026-02-17"
    quote   : CurrencyQuote
    force   : bool       – overwrite an existing entry for ``today``

    Returns
    -------
    UpsertOutcome – the caller persists the list unless SKIPPED.
    """
    existing = find_entry(history, today)

    if existing is None:
        history.append({"date": today, **quote.as_fields()})
        return UpsertOutcome.CREATED

    if not force:
        logger.info("%s already has an entry for %s", quote.code, today)
        return UpsertOutcome.SKIPPED

    for field in _RATE_FIELDS:
        existing.pop(field, None)
    existing.update(quote.as_fields())
    logger.info("%s entry for %s overwritten", quote.code, today)
    return UpsertOutcome.OVERWRITTEN


def resolve_force(
    explicit: bool,
    now: datetime | None = None,
    scheduled_time: str | None = None,
) -> bool:
    """
    Whether this run may overwrite today's entries.

    An explicit request always forces. When a scheduled run time ("HH:MM",
    UTC) is configured, any invocation outside that minute counts as a manual
    correction run and forces as well. Without one, only the flag decides.
    """
    if explicit:
        return True
    if not scheduled_time:
        return False

    try:
        hour, minute = (int(part) for part in scheduled_time.split(":", 1))
    except ValueError:
        logger.warning("Ignoring malformed scheduled run time %r", scheduled_time)
        return False

    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc) if now.tzinfo else now
    off_schedule = (now.hour, now.minute) != (hour, minute)
    if off_schedule:
        logger.info("Off-schedule invocation at %02d:%02d UTC – forcing overwrite", now.hour, now.minute)
    return off_schedule
