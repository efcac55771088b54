"""
Unit tests for the daily aggregator: period merging, day exclusion,
demand fallback and the green score formula.
"""

import unittest
from datetime import date

from greenscore.aggregator import aggregate, aggregate_day, forecast_window, resolve_demand
from greenscore.errors import ComputationError
from greenscore.indexer import period_key
from greenscore.models import (
    ActualBaseline,
    DemandForecastEntry,
    EmbeddedForecastEntry,
    LargeWindForecastEntry,
)

DAY = "2025-01-01"


def _embedded(day, wind, solar, periods=range(1, 49)):
    return {
        period_key(day, p): EmbeddedForecastEntry(day, p, wind, solar) for p in periods
    }


def _large_wind(day, wind, periods=range(1, 49)):
    return {period_key(day, p): LargeWindForecastEntry(day, p, wind) for p in periods}


def _demand(day, mw):
    return {day: DemandForecastEntry(day, mw, 1)}


def _baseline(demand_mw):
    return ActualBaseline("2024-12-31", demand_mw, 1000.0, 200.0, 48)


class TestForecastWindow(unittest.TestCase):

    def test_seven_days_from_today(self):
        window = forecast_window(date(2025, 12, 29))

        self.assertEqual(len(window), 7)
        self.assertEqual(window[0], "2025-12-29")
        self.assertEqual(window[-1], "2026-01-04")

    def test_custom_length(self):
        self.assertEqual(forecast_window(date(2025, 1, 1), 2), ["2025-01-01", "2025-01-02"])


class TestResolveDemand(unittest.TestCase):
    """Demand falls back forecast → latest actual → default."""

    def test_forecast_preferred(self):
        self.assertEqual(resolve_demand(DAY, _demand(DAY, 1000.0), _baseline(30000.0)), 1000.0)

    def test_actual_when_no_forecast(self):
        self.assertEqual(resolve_demand(DAY, {}, _baseline(30000.0)), 30000.0)

    def test_actual_demand_used_as_published(self):
        """The fallback actual is the rounded average, as reported upstream."""
        self.assertEqual(resolve_demand(DAY, {}, _baseline(19999.5)), 20000.0)
        self.assertEqual(resolve_demand(DAY, {}, _baseline(1000.4)), 1000.0)

    def test_default_when_nothing(self):
        self.assertEqual(resolve_demand(DAY, {}, None), 25000.0)
        self.assertEqual(resolve_demand(DAY, {}, None, default_demand_mw=1.0), 1.0)

    def test_zero_forecast_treated_as_missing(self):
        self.assertEqual(resolve_demand(DAY, _demand(DAY, 0.0), _baseline(30000.0)), 30000.0)


class TestAggregateDay(unittest.TestCase):
    """Test cases for aggregate_day."""

    def test_green_score_formula(self):
        """100 + 50 + 50 MW against 1000 MW demand is 20%."""
        metrics = aggregate_day(
            DAY, _embedded(DAY, 100.0, 50.0), _large_wind(DAY, 50.0), _demand(DAY, 1000.0), None
        )

        self.assertEqual(metrics.green_score_pct, 20)
        self.assertEqual(metrics.avg_embedded_wind, 100)
        self.assertEqual(metrics.avg_large_wind, 50)
        self.assertEqual(metrics.avg_total_wind, 150)
        self.assertEqual(metrics.avg_solar, 50)
        self.assertEqual(metrics.avg_demand, 1000)
        self.assertEqual(metrics.period_count, 48)

    def test_energy_totals(self):
        """Half-hour periods: 48 × 200 MW × 0.5 h = 4800 MWh."""
        metrics = aggregate_day(
            DAY, _embedded(DAY, 100.0, 50.0), _large_wind(DAY, 50.0), _demand(DAY, 1000.0), None
        )

        self.assertEqual(metrics.total_renewable_energy_mwh, 4800)
        self.assertEqual(metrics.total_demand_energy_mwh, 24000)

    def test_day_without_data_excluded(self):
        """No entries at all means no metrics."""
        self.assertIsNone(aggregate_day(DAY, {}, {}, _demand(DAY, 1000.0), None))

    def test_day_with_only_zero_values_excluded(self):
        """Entries that are all zero do not make a day reportable."""
        metrics = aggregate_day(
            DAY, _embedded(DAY, 0.0, 0.0), _large_wind(DAY, 0.0), _demand(DAY, 1000.0), None
        )

        self.assertIsNone(metrics)

    def test_partial_day_averages_over_active_periods(self):
        """Averages divide by the periods that had renewable output."""
        metrics = aggregate_day(
            DAY, {}, _large_wind(DAY, 600.0, periods=range(1, 13)), _demand(DAY, 3000.0), None
        )

        self.assertEqual(metrics.period_count, 12)
        self.assertEqual(metrics.avg_large_wind, 600)
        self.assertEqual(metrics.green_score_pct, 20)
        # 12 periods × 600 MW × 0.5 h
        self.assertEqual(metrics.total_renewable_energy_mwh, 3600)

    def test_energy_rounded_once_from_unrounded_sums(self):
        """0.4 MW per period rounds to 0 MW average but 10 MWh over the day."""
        metrics = aggregate_day(DAY, {}, _large_wind(DAY, 0.4), _demand(DAY, 1000.0), None)

        self.assertEqual(metrics.avg_large_wind, 0)
        self.assertEqual(metrics.total_renewable_energy_mwh, 10)

    def test_fallback_to_actual_demand(self):
        metrics = aggregate_day(
            DAY, _embedded(DAY, 2000.0, 1000.0), {}, {}, _baseline(30000.0)
        )

        self.assertEqual(metrics.avg_demand, 30000)
        self.assertEqual(metrics.green_score_pct, 10)

    def test_fallback_score_uses_rounded_actual(self):
        """5 MW against 1000.4 MW would round to 0%; against 1000 MW it is 1%."""
        metrics = aggregate_day(DAY, _embedded(DAY, 5.0, 0.0), {}, {}, _baseline(1000.4))

        self.assertEqual(metrics.avg_demand, 1000)
        self.assertEqual(metrics.green_score_pct, 1)

    def test_fallback_to_default_demand(self):
        metrics = aggregate_day(DAY, _embedded(DAY, 2500.0, 2500.0), {}, {}, None)

        self.assertEqual(metrics.avg_demand, 25000)
        self.assertEqual(metrics.green_score_pct, 20)

    def test_non_positive_default_is_computation_error(self):
        with self.assertRaises(ComputationError):
            aggregate_day(DAY, _embedded(DAY, 100.0, 0.0), {}, {}, None, default_demand_mw=0.0)


class TestAggregate(unittest.TestCase):
    """Test cases for aggregate over a date window."""

    def test_missing_dates_omitted_not_zero_filled(self):
        dates = ["2025-01-01", "2025-01-02", "2025-01-03"]
        embedded = {**_embedded("2025-01-01", 100.0, 0.0), **_embedded("2025-01-03", 300.0, 0.0)}

        series = aggregate(dates, embedded, {}, {}, None)

        self.assertEqual([d.date for d in series], ["2025-01-01", "2025-01-03"])

    def test_series_keeps_date_order(self):
        dates = ["2025-01-02", "2025-01-01"]
        embedded = {**_embedded("2025-01-01", 100.0, 0.0), **_embedded("2025-01-02", 300.0, 0.0)}

        series = aggregate(dates, embedded, {}, {}, None)

        self.assertEqual([d.date for d in series], dates)

    def test_empty_indexes(self):
        self.assertEqual(aggregate(forecast_window(date(2025, 1, 1)), {}, {}, {}, None), [])


if __name__ == '__main__':
    unittest.main(verbosity=2)
