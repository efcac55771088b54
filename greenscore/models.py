"""
Green Score — Record & Result Models

Intermediate records produced by the indexer and the result objects handed
to presentation layers.  Everything here is transient: built fresh on each
pipeline run and never persisted.

Units
-----
  Power values are per-settlement-period averages in MW.
  Energy totals are MWh; one settlement period is half an hour.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

PERIODS_PER_DAY = 48
PERIOD_TO_MWH   = 0.5   # 30-minute settlement period → hours


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero on the positive side."""
    return int(math.floor(value + 0.5))


def green_score(renewable_mw: float, demand_mw: float) -> int:
    """Percentage of demand met by renewable output, rounded."""
    return round_half_up(renewable_mw / demand_mw * 100)


# ---------------------------------------------------------------------------
# Source records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawResource:
    """A remote CSV file resolved from a dataset's metadata."""

    dataset: str
    url:     str


@dataclass
class EmbeddedForecastEntry:
    date:          str   # YYYY-MM-DD
    period:        int   # 1–48
    wind_forecast: float
    solar_forecast: float


@dataclass
class LargeWindForecastEntry:
    date:          str
    period:        int
    wind_forecast: float


@dataclass
class DemandForecastEntry:
    """Forecast demand for one date, averaged over every vintage in the feed."""

    date:               str
    forecast_demand_mw: float
    samples:            int


@dataclass
class ActualEntry:
    date:              str
    indicator:         str     # "A" actual | "F" forecast
    demand_mw:         float
    embedded_wind_mw:  float
    embedded_solar_mw: float


@dataclass
class ActualBaseline:
    """Averages over the most recent fully realized ('A') settlement date."""

    date:                 str
    avg_demand_mw:        float
    avg_embedded_wind_mw: float
    avg_solar_mw:         float
    samples:              int

    @property
    def green_score_pct(self) -> int:
        return green_score(self.avg_embedded_wind_mw + self.avg_solar_mw, self.avg_demand_mw)

    def to_dict(self) -> dict:
        return {
            "date":              self.date,
            "green_score_pct":   self.green_score_pct,
            "avg_embedded_wind": round_half_up(self.avg_embedded_wind_mw),
            "avg_solar":         round_half_up(self.avg_solar_mw),
            "avg_demand":        round_half_up(self.avg_demand_mw),
        }


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class DailyMetrics:
    """Rounded per-day composite metrics for one forecast date."""

    date:                       str
    avg_embedded_wind:          int
    avg_large_wind:             int
    avg_total_wind:             int
    avg_solar:                  int
    avg_demand:                 int
    green_score_pct:            int
    total_renewable_energy_mwh: int
    total_demand_energy_mwh:    int
    period_count:               int = PERIODS_PER_DAY

    def to_dict(self) -> dict:
        return {
            "date":                       self.date,
            "green_score_pct":            self.green_score_pct,
            "avg_embedded_wind":          self.avg_embedded_wind,
            "avg_large_wind":             self.avg_large_wind,
            "avg_total_wind":             self.avg_total_wind,
            "avg_solar":                  self.avg_solar,
            "avg_demand":                 self.avg_demand,
            "total_renewable_energy_mwh": self.total_renewable_energy_mwh,
            "total_demand_energy_mwh":    self.total_demand_energy_mwh,
            "period_count":               self.period_count,
        }

    def to_series_dict(self) -> dict:
        """Compact shape used for the daily series in published output."""
        return {
            "date":          self.date,
            "score":         self.green_score_pct,
            "embedded_wind": self.avg_embedded_wind,
            "large_wind":    self.avg_large_wind,
            "total_wind":    self.avg_total_wind,
            "solar":         self.avg_solar,
            "demand":        self.avg_demand,
        }


@dataclass
class WeeklySummary:
    average_score_pct: int
    best_day:          Optional[DailyMetrics]
    worst_day:         Optional[DailyMetrics]
    daily_series:      list[DailyMetrics] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "average_score_pct": self.average_score_pct,
            "best_day":  self.best_day.to_dict() if self.best_day else None,
            "worst_day": self.worst_day.to_dict() if self.worst_day else None,
            "daily_series": [d.to_series_dict() for d in self.daily_series],
        }


@dataclass
class OutlookResult:
    """Everything a presentation layer needs from one pipeline run."""

    summary:       WeeklySummary
    latest_actual: Optional[ActualBaseline]
    data_sources:  list[str]
    formula:       str

    def to_dict(self) -> dict:
        return {
            "summary":       self.summary.to_dict(),
            "latest_actual": self.latest_actual.to_dict() if self.latest_actual else None,
            "data_sources":  list(self.data_sources),
            "formula":       self.formula,
        }
