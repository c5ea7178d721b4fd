"""
pipeline.py – Entry point for the daily exchange-rate history update.

Usage
-----
# Update the local copy under ./public/data
    uv run python pipeline.py

# Overwrite entries already recorded today
    uv run python pipeline.py --force

# Write somewhere else
    uv run python pipeline.py --data-dir /tmp/rates

Flow
----
    Extract   →  fetch today's quotes from the bank (HTML block page aborts)
    Manifest  →  read the tracked currency list (fallback USD, GBP)
    Upsert    →  per currency: load history, add/skip/overwrite today, save
    Stamp     →  rewrite data/last-updated.json
"""

import argparse
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable

from config import Settings, history_path
from etl.errors import HistoryNotFoundError, InvalidResponseError
from etl.extract import fetch_rates, get_server_ip
from etl.load import HistoryStore, LocalHistoryStore
from etl.manifest import resolve_manifest
from etl.models import CurrencyQuote
from etl.transform import UpsertOutcome, resolve_force, upsert_observation

logger = logging.getLogger("pipeline")


def to_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_store(settings: Settings) -> HistoryStore:
    """
    Pick the backend from the settings:
    ADLS connection string → Blob Storage, GITHUB_REPO → GitHub, else local disk.
    """
    if settings.adls_connection_string:
        from etl.load_azure import BlobHistoryStore
        return BlobHistoryStore.from_connection_string(
            settings.adls_connection_string, settings.adls_container
        )
    if settings.github_repo:
        from etl.load_github import GitHubHistoryStore
        return GitHubHistoryStore(
            repo=settings.github_repo,
            token=settings.github_token,
            branch=settings.github_branch,
        )
    return LocalHistoryStore(settings.local_data_dir)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def update_currency(
    store: HistoryStore,
    quote: CurrencyQuote,
    path: str,
    today: str,
    force: bool,
) -> dict[str, Any]:
    """Read-modify-write one currency file; returns its entry for the summary."""
    try:
        doc = store.load(path)
        history, revision = doc.content, doc.revision
    except HistoryNotFoundError:
        logger.info("Creating new file for %s", quote.code)
        history, revision = [], None

    if not isinstance(history, list):
        raise ValueError(f"{path} is not a JSON array")

    outcome = upsert_observation(history, today, quote, force=force)
    result: dict[str, Any] = {"currency": quote.code, "success": True, **quote.as_result()}

    if not outcome.changed:
        result["skipped"] = True
        return result

    store.save(path, history, revision, f"Daily update {path} ({today})")
    if outcome is UpsertOutcome.OVERWRITTEN:
        result["overwritten"] = True
    logger.info("Updated %s: %s (%s)", quote.code, quote.ttbuy, outcome.value)
    return result


def summarize(results: list[dict[str, Any]], server_ip: str) -> dict[str, Any]:
    return {
        "success": True,
        "serverIP": server_ip,
        "currenciesUpdated": sum(1 for r in results if r["success"] and not r.get("skipped")),
        "currenciesSkipped": sum(1 for r in results if r.get("skipped")),
        "currenciesFailed": sum(1 for r in results if not r["success"]),
        "results": results,
    }


def run(
    settings: Settings,
    store: HistoryStore,
    *,
    force: bool = False,
    now: datetime | None = None,
    fetch: Callable[[str], dict[str, CurrencyQuote]] = fetch_rates,
    lookup_ip: Callable[[], str] = get_server_ip,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    today = to_utc(now).date().isoformat()
    force = resolve_force(force, now=now, scheduled_time=settings.scheduled_time)

    logger.info("=" * 60)
    logger.info("Rate history update starting | %s | force=%s", today, force)
    logger.info("=" * 60)

    t0 = time.perf_counter()

    # --- Extract ---
    logger.info("[1/4] Fetching rates from %s...", settings.api_url)
    server_ip = lookup_ip()
    try:
        quotes = fetch(settings.api_url)
    except InvalidResponseError as exc:
        logger.error("Aborting run: %s | server IP %s", exc, server_ip)
        return {"success": False, "error": str(exc), "serverIP": server_ip}

    # --- Manifest ---
    logger.info("[2/4] Resolving manifest...")
    manifest = resolve_manifest(store, settings.manifest_path)

    # --- Upsert, one currency at a time ---
    logger.info("[3/4] Updating %d currencies...", len(manifest))
    results: list[dict[str, Any]] = []
    for code in manifest:
        quote = quotes.get(code)
        if quote is None:
            logger.warning("Currency %s not found in API response", code)
            continue
        try:
            results.append(
                update_currency(store, quote, history_path(code, settings.data_prefix), today, force)
            )
        except Exception as exc:
            logger.error("Error updating %s: %s", code, exc)
            results.append({"currency": code, "success": False, "error": str(exc)})

    # --- Stamp ---
    logger.info("[4/4] Writing %s...", settings.last_updated_path)
    write_last_updated(store, settings.last_updated_path, now)

    summary = summarize(results, server_ip)
    elapsed = time.perf_counter() - t0
    logger.info("=" * 60)
    logger.info(
        "Update complete in %.2fs | %d updated, %d skipped, %d failed",
        elapsed,
        summary["currenciesUpdated"],
        summary["currenciesSkipped"],
        summary["currenciesFailed"],
    )
    logger.info("=" * 60)
    return summary


def write_last_updated(store: HistoryStore, path: str, now: datetime) -> None:
    content = {"updatedAt": to_utc(now).isoformat(timespec="milliseconds").replace("+00:00", "Z")}
    try:
        try:
            revision = store.load(path).revision
        except HistoryNotFoundError:
            revision = None
        store.save(path, content, revision, f"Update timestamp ({content['updatedAt']})")
    except Exception as exc:
        logger.error("Failed to write %s: %s", path, exc)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Exchange-rate history update – fetches today's bank rates and appends them."
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite entries already recorded for today",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Write to this local directory instead of the configured store",
    )
    return parser.parse_args()


if __name__ == "__main__":
    configure_logging()
    args = parse_args()
    settings = Settings.from_env()
    store = LocalHistoryStore(args.data_dir) if args.data_dir else build_store(settings)
    summary = run(settings, store, force=args.force)
    sys.exit(0 if summary["success"] else 1)
