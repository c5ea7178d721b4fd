"""
dashboard.py – Prints stat cards and the chart table for tracked currencies.

Usage
-----
    uv run python dashboard.py
    uv run python dashboard.py --currencies GBP USD --range 3m --rate-type TTSEL
    uv run python dashboard.py --base-url https://rates.example.com --csv rates.csv
    uv run python dashboard.py --convert 250 GBP
    uv run python dashboard.py --convert 100000 GBP --from-lkr

Reads the same files the pipeline writes – a local data directory by
default, or the deployed site with --base-url.
"""

import argparse
import logging
import sys

import polars as pl

from analytics.aggregate import DEFAULT_RANGE, RANGE_PRESETS, summarize
from analytics.series import (
    FROM_HOME,
    TO_HOME,
    StaticSiteReader,
    build_table,
    convert,
    export_csv,
    latest_date,
    latest_rate,
    load_histories,
    load_manifest,
)
from config import DEFAULT_RATE_TYPE, HOME_CURRENCY, RATE_TYPES, Settings
from etl.load import LocalHistoryStore
from etl.manifest import normalize_codes

SEPARATOR = "=" * 70


def fmt(n: float | None) -> str:
    if n is None:
        return "—"
    return f"{round(n, 3):,.3f}".rstrip("0").rstrip(".")


def print_section(title: str) -> None:
    print(f"\n{SEPARATOR}")
    print(f"  {title}")
    print(SEPARATOR)


def print_cards(histories, codes, preset, rate_type) -> None:
    print_section(f"{rate_type} | {preset.label}")
    for code in codes:
        card = summarize(code, histories.get(code, []), preset.size, preset.view, rate_type)
        stats = card.stats
        change = f"{card.change_pct:.2f}%" if card.change_pct is not None else "—"
        print(
            f"  {code} {card.trend.arrow}  {fmt(card.last):>12}   "
            f"Min: {fmt(stats.min if stats else None)}  "
            f"Max: {fmt(stats.max if stats else None)}  "
            f"Avg: {fmt(stats.avg if stats else None)}  "
            f"Δ {change}"
        )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Exchange-rate history dashboard.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--data-dir", help="Local directory holding data/*.json")
    source.add_argument("--base-url", help="Site serving /data/*.json")
    parser.add_argument("--currencies", nargs="+", help="Codes to show (default: GBP, or all with --csv)")
    parser.add_argument("--range", default=DEFAULT_RANGE, choices=sorted(RANGE_PRESETS))
    parser.add_argument("--rate-type", default=DEFAULT_RATE_TYPE, choices=RATE_TYPES)
    parser.add_argument("--csv", metavar="FILE", help="Write the windowed series as CSV")
    parser.add_argument("--convert", nargs=2, metavar=("AMOUNT", "CODE"), help="Convert with the latest rate")
    parser.add_argument("--from-lkr", action="store_true", help=f"Treat --convert AMOUNT as {HOME_CURRENCY}")
    return parser.parse_args()


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(name)s – %(message)s")
    args = parse_args()
    settings = Settings.from_env()

    if args.base_url:
        reader = StaticSiteReader(args.base_url)
    else:
        reader = LocalHistoryStore(args.data_dir or settings.local_data_dir)

    manifest = load_manifest(reader, settings.data_prefix)
    histories = load_histories(reader, manifest, settings.data_prefix)
    preset = RANGE_PRESETS[args.range]
    requested = normalize_codes(args.currencies) if args.currencies else None
    selected = requested or ["GBP"]

    print(f"Tracking: {', '.join(manifest)} | latest data: {latest_date(histories) or '—'}")

    if args.convert:
        amount, code = args.convert
        code = code.upper()
        rate = latest_rate(histories.get(code, []), code, args.rate_type)
        direction = FROM_HOME if args.from_lkr else TO_HOME
        result = convert(amount, rate, direction)
        source, target = (HOME_CURRENCY, code) if args.from_lkr else (code, HOME_CURRENCY)
        print_section(f"Convert {source} → {target} @ {fmt(rate)} ({args.rate_type})")
        print(f"  {amount} {source} = {f'{result:,.2f}' if result is not None else '—'} {target}")
        return 0

    print_cards(histories, selected, preset, args.rate_type)

    print_section("Series")
    with pl.Config(tbl_rows=preset.size):
        print(build_table(histories, selected, preset.size, preset.view, args.rate_type))

    if args.csv:
        codes = requested or manifest
        try:
            csv_text = export_csv(histories, codes, preset.size, preset.view, args.rate_type)
        except ValueError as exc:
            print(f"\n{exc}", file=sys.stderr)
            return 1
        with open(args.csv, "w", encoding="utf-8") as fh:
            fh.write(csv_text)
        print(f"\nCSV written to {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
