"""
etl/extract.py – Extraction layer.

Calls the bank's exchange-rate endpoint and returns today's quotes keyed by
currency code.

The endpoint sits behind a proxy that sometimes answers with an HTML page
(rate limiting, geo blocking) while still returning 200. That case is
detected on the raw text before anything is handed to the JSON parser, so the
error we log is the HTML body rather than a JSONDecodeError.

Example response:
  {
    "data": [
      {"CurrCode": "USD", "TTBUY": "296.50", "ODBUY": "295.00", "TTSEL": "304.00"},
      {"CurrCode": "GBP", "TTBUY": "378.12", "ODBUY": "376.40", "TTSEL": "391.75"},
      ...
    ]
  }
"""

import json
import logging

import requests

from config import API_TIMEOUT_SECONDS, API_URL, IP_LOOKUP_TIMEOUT_SECONDS, IP_LOOKUP_URL
from etl.errors import InvalidResponseError
from etl.models import CurrencyQuote, parse_number

logger = logging.getLogger(__name__)


def parse_rates_payload(text: str) -> dict[str, CurrencyQuote]:
    """
    Parse the raw endpoint body into {currency_code: CurrencyQuote}.

    Raises
    ------
    InvalidResponseError
        If the body does not start like a JSON document, cannot be decoded,
        or has no "data" list.
    """
    body = text.strip()
    if not body or body[0] not in "{[":
        logger.error("Rates API returned a non-JSON body: %s", body[:200])
        raise InvalidResponseError("Invalid API response")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        logger.error("Rates API returned malformed JSON: %s", exc)
        raise InvalidResponseError("Invalid API response") from exc

    rows = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        logger.error("Rates API response has no 'data' list")
        raise InvalidResponseError("Invalid API response")

    quotes: dict[str, CurrencyQuote] = {}
    for row in rows:
        if not isinstance(row, dict) or not row.get("CurrCode"):
            continue
        code = str(row["CurrCode"]).strip().upper()
        ttbuy = parse_number(row.get("TTBUY"))
        if ttbuy is None:
            logger.warning("No usable TTBUY for %s – skipping", code)
            continue
        quotes[code] = CurrencyQuote(
            code=code,
            ttbuy=ttbuy,
            odbuy=parse_number(row.get("ODBUY")),
            ttsel=parse_number(row.get("TTSEL")),
        )
    return quotes


def fetch_rates(url: str = API_URL, timeout: int = API_TIMEOUT_SECONDS) -> dict[str, CurrencyQuote]:
    """
    Fetch today's quotes from the bank.

    Returns
    -------
    dict[str, CurrencyQuote]
        Example: {"USD": CurrencyQuote("USD", 296.5, 295.0, 304.0), ...}
    """
    logger.info("Calling rates API | %s", url)

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.HTTPError as exc:
        logger.error("HTTP error from rates API: %s", exc)
        raise
    except requests.exceptions.RequestException as exc:
        logger.error("Network error reaching rates API: %s", exc)
        raise

    quotes = parse_rates_payload(response.text)
    logger.info("Extraction done | %d currencies quoted", len(quotes))
    return quotes


def get_server_ip(url: str = IP_LOOKUP_URL, timeout: int = IP_LOOKUP_TIMEOUT_SECONDS) -> str:
    """Public IP of this host, reported alongside blocked responses."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return str(response.json().get("ip", "unknown"))
    except (requests.exceptions.RequestException, ValueError) as exc:
        logger.warning("IP lookup failed: %s", exc)
        return "unknown"
