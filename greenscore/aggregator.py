"""
Green Score — Daily Aggregator
Merges the indexed feeds into one DailyMetrics per forecast date.

Formula
-------
    Green Score  =  (Embedded Wind + Large Wind + Solar) / Demand × 100

Both sides are per-period average power (MW).  A period counts towards the
averages only if embedded wind, embedded solar or large wind is non-zero
for it; a date with no such period is left out of the series entirely.

Demand for a date is, in order of preference:
  1. the averaged day-ahead forecast for that date,
  2. the average realized demand of the latest actual date, as published
     (rounded to the nearest MW),
  3. ``default_demand_mw``.

Dates are calendar dates in UTC, rendered ``YYYY-MM-DD``.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Mapping, Optional

from loguru import logger

from greenscore.config import DEFAULT_DEMAND_MW, FORECAST_DAYS
from greenscore.errors import ComputationError
from greenscore.indexer import period_key
from greenscore.models import (
    PERIOD_TO_MWH,
    PERIODS_PER_DAY,
    ActualBaseline,
    DailyMetrics,
    DemandForecastEntry,
    EmbeddedForecastEntry,
    LargeWindForecastEntry,
    green_score,
    round_half_up,
)


def forecast_window(today: date, days: int = FORECAST_DAYS) -> list[str]:
    """ISO dates for *today* and the following ``days - 1`` days."""
    return [(today + timedelta(days=offset)).isoformat() for offset in range(days)]


def resolve_demand(
    day: str,
    demand_index: Mapping[str, DemandForecastEntry],
    baseline: Optional[ActualBaseline],
    default_demand_mw: float = DEFAULT_DEMAND_MW,
) -> float:
    """Demand (MW) to score *day* against, following the fallback chain."""
    entry = demand_index.get(day)
    if entry is not None and entry.forecast_demand_mw > 0:
        return entry.forecast_demand_mw
    if baseline is not None and round_half_up(baseline.avg_demand_mw) > 0:
        logger.debug("{}: no demand forecast, using actual from {}.", day, baseline.date)
        return float(round_half_up(baseline.avg_demand_mw))
    logger.debug("{}: no demand forecast or actual, using default {} MW.", day, default_demand_mw)
    return default_demand_mw


def aggregate_day(
    day: str,
    embedded_index: Mapping[str, EmbeddedForecastEntry],
    wind_index: Mapping[str, LargeWindForecastEntry],
    demand_index: Mapping[str, DemandForecastEntry],
    baseline: Optional[ActualBaseline],
    default_demand_mw: float = DEFAULT_DEMAND_MW,
) -> Optional[DailyMetrics]:
    """Metrics for one date, or None if no period has renewable output."""
    total_embedded_wind = 0.0
    total_large_wind = 0.0
    total_solar = 0.0
    period_count = 0

    for period in range(1, PERIODS_PER_DAY + 1):
        key = period_key(day, period)
        embedded = embedded_index.get(key)
        large = wind_index.get(key)

        embedded_wind = embedded.wind_forecast if embedded else 0.0
        solar = embedded.solar_forecast if embedded else 0.0
        large_wind = large.wind_forecast if large else 0.0

        total_embedded_wind += embedded_wind
        total_large_wind += large_wind
        total_solar += solar

        if embedded_wind or solar or large_wind:
            period_count += 1

    if period_count == 0:
        logger.debug("{}: no renewable forecast data, skipped.", day)
        return None

    avg_embedded_wind = total_embedded_wind / period_count
    avg_large_wind = total_large_wind / period_count
    avg_solar = total_solar / period_count
    avg_total_wind = avg_embedded_wind + avg_large_wind
    avg_renewable = avg_total_wind + avg_solar

    avg_demand = resolve_demand(day, demand_index, baseline, default_demand_mw)
    if avg_demand <= 0:
        raise ComputationError(f"Non-positive demand ({avg_demand} MW) for {day}")

    # Energy is taken from the unrounded sums; rounding happens once, here.
    return DailyMetrics(
        date=day,
        avg_embedded_wind=round_half_up(avg_embedded_wind),
        avg_large_wind=round_half_up(avg_large_wind),
        avg_total_wind=round_half_up(avg_total_wind),
        avg_solar=round_half_up(avg_solar),
        avg_demand=round_half_up(avg_demand),
        green_score_pct=green_score(avg_renewable, avg_demand),
        total_renewable_energy_mwh=round_half_up(
            (total_embedded_wind + total_large_wind + total_solar) * PERIOD_TO_MWH
        ),
        total_demand_energy_mwh=round_half_up(avg_demand * PERIODS_PER_DAY * PERIOD_TO_MWH),
        period_count=period_count,
    )


def aggregate(
    dates: list[str],
    embedded_index: Mapping[str, EmbeddedForecastEntry],
    wind_index: Mapping[str, LargeWindForecastEntry],
    demand_index: Mapping[str, DemandForecastEntry],
    baseline: Optional[ActualBaseline],
    default_demand_mw: float = DEFAULT_DEMAND_MW,
) -> list[DailyMetrics]:
    """DailyMetrics for each date that has forecast data, in input order."""
    series = []
    for day in dates:
        metrics = aggregate_day(
            day, embedded_index, wind_index, demand_index, baseline, default_demand_mw
        )
        if metrics is not None:
            series.append(metrics)

    logger.info("Aggregated {}/{} dates with forecast data.", len(series), len(dates))
    return series
