"""
function_app.py – Azure Functions v2 entry point.

Uses the decorator-based programming model (v2), so no function.json is needed.

Scheduling lives outside the app: an external cron service calls
/api/fetch_rates once a day with "Authorization: Bearer <CRON_SECRET>".
The remaining routes are read-only views over the stored history.

    GET|POST /api/fetch_rates?force=true   run the daily update
    GET      /api/dashboard                chart series + stat cards
    GET      /api/export                   CSV download
    GET      /api/convert                  LKR calculator
"""

import json
import logging
from datetime import date

import azure.functions as func

from analytics.aggregate import DEFAULT_RANGE, RANGE_PRESETS, summarize
from analytics.series import (
    TO_HOME,
    build_table,
    chart_data,
    convert,
    export_csv,
    latest_rate,
    load_histories,
    load_manifest,
)
from config import DEFAULT_RATE_TYPE, RATE_TYPES, Settings
from etl.manifest import normalize_codes
from pipeline import build_store, run

app = func.FunctionApp()

SETTINGS = Settings.from_env()

_TRUTHY = {"1", "true", "yes", "on"}


def _json(body, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body), status_code=status_code, mimetype="application/json"
    )


def is_authorized(req: func.HttpRequest, settings: Settings) -> bool:
    if not settings.cron_secret:
        return True
    return req.headers.get("authorization") == f"Bearer {settings.cron_secret}"


@app.route(route="fetch_rates", methods=["GET", "POST"], auth_level=func.AuthLevel.ANONYMOUS)
def fetch_rates(req: func.HttpRequest) -> func.HttpResponse:
    """HTTP trigger called by the external cron service."""
    if not is_authorized(req, SETTINGS):
        logging.warning("Rejected fetch_rates call with bad credentials.")
        return _json({"error": "Unauthorized"}, status_code=401)

    force = (req.params.get("force") or "").lower() in _TRUTHY
    logging.info("Rate update triggered via HTTP (force=%s).", force)

    summary = run(SETTINGS, build_store(SETTINGS), force=force)

    return _json(summary, status_code=200 if summary["success"] else 500)


# ---------------------------------------------------------------------------
# Read-only dashboard views
# ---------------------------------------------------------------------------

def _view_params(req: func.HttpRequest):
    range_key = req.params.get("range") or DEFAULT_RANGE
    rate_type = (req.params.get("rate_type") or DEFAULT_RATE_TYPE).upper()
    if range_key not in RANGE_PRESETS:
        raise ValueError(f"Unknown range: {range_key}")
    if rate_type not in RATE_TYPES:
        raise ValueError(f"Unknown rate type: {rate_type}")
    codes = req.params.get("currencies")
    selected = normalize_codes(codes.split(",")) if codes else None
    return RANGE_PRESETS[range_key], rate_type, selected


def _load(selected):
    store = build_store(SETTINGS)
    codes = selected or load_manifest(store, SETTINGS.data_prefix)
    return codes, load_histories(store, codes, SETTINGS.data_prefix)


@app.route(route="dashboard", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def dashboard(req: func.HttpRequest) -> func.HttpResponse:
    try:
        preset, rate_type, selected = _view_params(req)
    except ValueError as exc:
        return _json({"error": str(exc)}, status_code=400)

    codes, histories = _load(selected)
    table = build_table(histories, codes, preset.size, preset.view, rate_type)
    cards = [
        summarize(code, histories[code], preset.size, preset.view, rate_type).to_dict()
        for code in codes
    ]
    return _json({"rateType": rate_type, "range": preset.label, "chart": chart_data(table), "stats": cards})


@app.route(route="export", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def export(req: func.HttpRequest) -> func.HttpResponse:
    try:
        preset, rate_type, selected = _view_params(req)
        codes, histories = _load(selected)
        body = export_csv(histories, codes, preset.size, preset.view, rate_type)
    except ValueError as exc:
        return _json({"error": str(exc)}, status_code=400)

    filename = f"rates_{date.today().isoformat()}.csv"
    return func.HttpResponse(
        body,
        status_code=200,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.route(route="convert", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def convert_amount(req: func.HttpRequest) -> func.HttpResponse:
    code = (req.params.get("currency") or "GBP").upper()
    rate_type = (req.params.get("rate_type") or DEFAULT_RATE_TYPE).upper()
    direction = req.params.get("direction") or TO_HOME
    if rate_type not in RATE_TYPES:
        return _json({"error": f"Unknown rate type: {rate_type}"}, status_code=400)

    _, histories = _load([code])
    rate = latest_rate(histories.get(code, []), code, rate_type)
    try:
        result = convert(req.params.get("amount", "1"), rate, direction)
    except ValueError as exc:
        return _json({"error": str(exc)}, status_code=400)

    records = histories.get(code) or []
    return _json({
        "currency": code,
        "rateType": rate_type,
        "rate": rate,
        "asOf": records[-1].date if records else None,
        "direction": direction,
        "result": result,
    })
