"""
Green Score — Runtime Settings
Reads pipeline configuration from the environment (and a local ``.env``).

All values have working defaults for the public NESO data portal, so an
empty environment is a valid configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NESO_API_BASE = "https://api.neso.energy/api/3/action"

EMBEDDED_DATASET    = "embedded-wind-and-solar-forecasts"
LARGE_WIND_DATASET  = "14-days-ahead-wind-forecasts"
DEMAND_DATASET      = "1-day-ahead-demand-forecast"
ACTUAL_DATASET      = "daily-demand-update"

DATASETS: tuple[str, ...] = (
    EMBEDDED_DATASET,
    LARGE_WIND_DATASET,
    DEMAND_DATASET,
    ACTUAL_DATASET,
)

DATA_SOURCES: list[str] = [
    "Embedded Wind & Solar Forecasts (14-day)",
    "14 Days Ahead Wind Forecasts",
    "Day Ahead National Demand Forecasts",
    "Daily Demand Update (actual data)",
]

FORMULA = "Green Score = (Embedded Wind + Large Wind + Solar) / Demand * 100"

MAX_RETRIES             = 3
RETRY_BACKOFF_SECONDS   = 1.0
REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_DEMAND_MW       = 25000.0
FORECAST_DAYS           = 7


@dataclass(frozen=True)
class Settings:
    """Pipeline settings; build with ``Settings.from_env()``."""

    api_base:          str   = NESO_API_BASE
    max_retries:       int   = MAX_RETRIES
    retry_backoff:     float = RETRY_BACKOFF_SECONDS   # wait = backoff × attempt
    request_timeout:   float = REQUEST_TIMEOUT_SECONDS
    default_demand_mw: float = DEFAULT_DEMAND_MW
    forecast_days:     int   = FORECAST_DAYS
    log_level:         str   = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            api_base=os.getenv("NESO_API_BASE", NESO_API_BASE).rstrip("/"),
            max_retries=int(os.getenv("MAX_RETRIES", MAX_RETRIES)),
            retry_backoff=float(os.getenv("RETRY_BACKOFF_SECONDS", RETRY_BACKOFF_SECONDS)),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT_SECONDS", REQUEST_TIMEOUT_SECONDS)),
            default_demand_mw=float(os.getenv("DEFAULT_DEMAND_MW", DEFAULT_DEMAND_MW)),
            forecast_days=int(os.getenv("FORECAST_DAYS", FORECAST_DAYS)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise ``ValueError`` for settings the pipeline cannot run with."""
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_backoff < 0:
            raise ValueError(f"retry_backoff cannot be negative, got {self.retry_backoff}")
        if self.forecast_days < 1:
            raise ValueError(f"forecast_days must be at least 1, got {self.forecast_days}")
        if self.default_demand_mw <= 0:
            raise ValueError(
                f"default_demand_mw must be positive, got {self.default_demand_mw}"
            )

    def metadata_url(self, dataset: str) -> str:
        return f"{self.api_base}/datapackage_show?id={dataset}"
