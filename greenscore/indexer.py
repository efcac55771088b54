"""
Green Score — Dataset Indexer
Builds the lookup tables the aggregator reads, one builder per feed shape.

Feeds and keys
--------------
  Embedded wind & solar   (date, period)  → EmbeddedForecastEntry
  14-day large wind       (date, period)  → LargeWindForecastEntry
  Day-ahead demand        date            → DemandForecastEntry (mean of all vintages)
  Daily demand update     latest 'A' date → ActualBaseline

Period keys are ``"YYYY-MM-DD_<period>"``.  Rows whose date or period cannot
be read are skipped; a duplicated (date, period) keeps the last row seen.
"""

from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd
from loguru import logger

from greenscore.models import (
    ActualBaseline,
    ActualEntry,
    DemandForecastEntry,
    EmbeddedForecastEntry,
    LargeWindForecastEntry,
)
from greenscore.parser import Number, ParsedRecord, as_number, as_text

# ---------------------------------------------------------------------------
# Column names (as published by NESO)
# ---------------------------------------------------------------------------

DEMAND_DATE_COL  = "TARGETDATE"
DEMAND_VALUE_COL = "FORECASTDEMAND"

WIND_DATE_COL    = "Date"
WIND_PERIOD_COL  = "Settlement_period"
WIND_VALUE_COL   = "Wind_Forecast"

EMBEDDED_DATE_COL   = "SETTLEMENT_DATE"
EMBEDDED_PERIOD_COL = "SETTLEMENT_PERIOD"
EMBEDDED_WIND_COL   = "EMBEDDED_WIND_FORECAST"
EMBEDDED_SOLAR_COL  = "EMBEDDED_SOLAR_FORECAST"

ACTUAL_DATE_COL      = "SETTLEMENT_DATE"
ACTUAL_INDICATOR_COL = "FORECAST_ACTUAL_INDICATOR"
ACTUAL_DEMAND_COL    = "ENGLAND_WALES_DEMAND"
ACTUAL_WIND_COL      = "EMBEDDED_WIND_GENERATION"
ACTUAL_SOLAR_COL     = "EMBEDDED_SOLAR_GENERATION"

ACTUAL_INDICATOR = "A"


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------


def period_key(date: str, period: int) -> str:
    return f"{date}_{period}"


def _date_part(value: str) -> str:
    """Strip any time component from an ISO-ish date string."""
    return value.split("T")[0].strip()


def _compact_date(value: str) -> Optional[str]:
    """``20250101`` → ``2025-01-01``; None if not eight digits."""
    text = value.strip()
    if len(text) != 8 or not text.isdigit():
        return None
    return f"{text[0:4]}-{text[4:6]}-{text[6:8]}"


def _period(record: ParsedRecord, column: str) -> Optional[int]:
    cell = record.get(column)
    if isinstance(cell, Number) and cell.value.is_integer():
        return int(cell.value)
    return None


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def index_demand(records: Iterable[ParsedRecord]) -> dict[str, DemandForecastEntry]:
    """Average the forecast demand of every row sharing a target date."""
    rows = []
    for record in records:
        date = _compact_date(as_text(record.get(DEMAND_DATE_COL)))
        value = record.get(DEMAND_VALUE_COL)
        if date is None or not isinstance(value, Number):
            continue
        rows.append({"date": date, "demand": value.value})

    if not rows:
        logger.warning("Demand: no usable forecast rows.")
        return {}

    grouped = pd.DataFrame(rows).groupby("date")["demand"].agg(["mean", "count"])
    index = {
        date: DemandForecastEntry(
            date=date,
            forecast_demand_mw=float(row["mean"]),
            samples=int(row["count"]),
        )
        for date, row in grouped.iterrows()
    }
    logger.debug("Demand: {} rows → {} dates.", len(rows), len(index))
    return index


def index_large_wind(records: Iterable[ParsedRecord]) -> dict[str, LargeWindForecastEntry]:
    """Key the 14-day wind forecast by (date, settlement period)."""
    index: dict[str, LargeWindForecastEntry] = {}
    duplicates = 0
    for record in records:
        date = _date_part(as_text(record.get(WIND_DATE_COL)))
        period = _period(record, WIND_PERIOD_COL)
        if not date or period is None:
            continue
        key = period_key(date, period)
        if key in index:
            duplicates += 1
        index[key] = LargeWindForecastEntry(
            date=date,
            period=period,
            wind_forecast=as_number(record.get(WIND_VALUE_COL)),
        )

    if duplicates:
        logger.debug("Large wind: {} duplicate periods overwritten.", duplicates)
    logger.debug("Large wind: {} periods indexed.", len(index))
    return index


def index_embedded(records: Iterable[ParsedRecord]) -> dict[str, EmbeddedForecastEntry]:
    """Key the embedded wind/solar forecast by (date, settlement period)."""
    index: dict[str, EmbeddedForecastEntry] = {}
    duplicates = 0
    for record in records:
        date = _date_part(as_text(record.get(EMBEDDED_DATE_COL)))
        period = _period(record, EMBEDDED_PERIOD_COL)
        if not date or period is None:
            continue
        key = period_key(date, period)
        if key in index:
            duplicates += 1
        index[key] = EmbeddedForecastEntry(
            date=date,
            period=period,
            wind_forecast=as_number(record.get(EMBEDDED_WIND_COL)),
            solar_forecast=as_number(record.get(EMBEDDED_SOLAR_COL)),
        )

    if duplicates:
        logger.debug("Embedded: {} duplicate periods overwritten.", duplicates)
    logger.debug("Embedded: {} periods indexed.", len(index))
    return index


def actual_entries(records: Iterable[ParsedRecord]) -> list[ActualEntry]:
    """Typed rows of the daily demand update, realized ('A') rows only."""
    entries: list[ActualEntry] = []
    for record in records:
        indicator = as_text(record.get(ACTUAL_INDICATOR_COL))
        date = _date_part(as_text(record.get(ACTUAL_DATE_COL)))
        if indicator != ACTUAL_INDICATOR or not date:
            continue
        entries.append(
            ActualEntry(
                date=date,
                indicator=indicator,
                demand_mw=as_number(record.get(ACTUAL_DEMAND_COL)),
                embedded_wind_mw=as_number(record.get(ACTUAL_WIND_COL)),
                embedded_solar_mw=as_number(record.get(ACTUAL_SOLAR_COL)),
            )
        )
    return entries


def latest_actual(records: Iterable[ParsedRecord]) -> Optional[ActualBaseline]:
    """
    Average demand, embedded wind and solar over the latest realized date.

    Returns None when there are no realized rows, or when that date's total
    demand is not positive (no meaningful score can be formed from it).
    """
    entries = actual_entries(records)
    if not entries:
        logger.warning("Actuals: no realized ('A') rows in the daily demand update.")
        return None

    df = pd.DataFrame([e.__dict__ for e in entries])
    latest_date = df["date"].max()
    day = df[df["date"] == latest_date]

    if day["demand_mw"].sum() <= 0:
        logger.warning("Actuals: zero total demand on {}; no baseline.", latest_date)
        return None

    baseline = ActualBaseline(
        date=latest_date,
        avg_demand_mw=float(day["demand_mw"].mean()),
        avg_embedded_wind_mw=float(day["embedded_wind_mw"].mean()),
        avg_solar_mw=float(day["embedded_solar_mw"].mean()),
        samples=len(day),
    )
    logger.info(
        "Actuals: latest realized date {} ({} periods) | avg demand {:.0f} MW",
        baseline.date, baseline.samples, baseline.avg_demand_mw,
    )
    return baseline
