"""
config.py – Central configuration for the exchange-rate history job.
Tuneable constants live here; runtime secrets are read once into Settings.
"""

import os
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Currencies
# The manifest in the store decides what is tracked. When it cannot be read
# we fall back to this pair.
# ---------------------------------------------------------------------------
DEFAULT_CURRENCIES: list[str] = ["USD", "GBP"]

# Rates are quoted against the Sri Lankan Rupee.
HOME_CURRENCY: str = "LKR"

# Quote fields published by the bank, in display order.
RATE_TYPES: tuple[str, ...] = ("TTBUY", "ODBUY", "TTSEL")
DEFAULT_RATE_TYPE: str = "TTBUY"

# ---------------------------------------------------------------------------
# FX Data Source – Sampath Bank exchange-rate endpoint.
# Returns {"data": [{"CurrCode": "USD", "TTBUY": ..., ...}, ...]}.
# When the bank blocks the caller it answers with an HTML page instead.
# ---------------------------------------------------------------------------
API_URL: str = "https://www.sampath.lk/api/exchange-rates"
API_TIMEOUT_SECONDS: int = 30

IP_LOOKUP_URL: str = "https://api64.ipify.org?format=json"
IP_LOOKUP_TIMEOUT_SECONDS: int = 5

# ---------------------------------------------------------------------------
# Storage layout – one JSON array per currency plus two small documents.
# Paths are relative to the data prefix.
# ---------------------------------------------------------------------------
DATA_PREFIX: str = "data"
MANIFEST_FILE: str = "manifest.json"
LAST_UPDATED_FILE: str = "last-updated.json"

GITHUB_API_URL: str = "https://api.github.com"
GITHUB_TIMEOUT_SECONDS: int = 30

LOCAL_DATA_DIR: str = os.path.join(os.path.dirname(__file__), "public")


def history_path(code: str, prefix: str = DATA_PREFIX) -> str:
    """Store path of a currency's history file, e.g. data/usd.json."""
    return f"{prefix}/{code.lower()}.json"


# ---------------------------------------------------------------------------
# Runtime settings – built once at process start, then passed around.
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    cron_secret: str | None = None
    github_repo: str | None = None
    github_branch: str = "main"
    github_token: str | None = None
    api_url: str = API_URL
    data_prefix: str = DATA_PREFIX
    local_data_dir: str = LOCAL_DATA_DIR
    scheduled_time: str | None = None
    adls_connection_string: str | None = None
    adls_container: str = "fx-data"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            cron_secret=env.get("CRON_SECRET") or None,
            github_repo=env.get("GITHUB_REPO") or None,
            github_branch=env.get("GITHUB_BRANCH") or "main",
            github_token=env.get("GITHUB_TOKEN") or None,
            api_url=env.get("RATES_API_URL") or API_URL,
            data_prefix=(env.get("DATA_PREFIX") or DATA_PREFIX).strip("/"),
            local_data_dir=env.get("LOCAL_DATA_DIR") or LOCAL_DATA_DIR,
            scheduled_time=env.get("SCHEDULED_RUN_TIME") or None,
            adls_connection_string=env.get("ADLS_CONNECTION_STRING") or None,
            adls_container=env.get("ADLS_CONTAINER_NAME") or "fx-data",
        )

    @property
    def manifest_path(self) -> str:
        return f"{self.data_prefix}/{MANIFEST_FILE}"

    @property
    def last_updated_path(self) -> str:
        return f"{self.data_prefix}/{LAST_UPDATED_FILE}"
