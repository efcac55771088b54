"""
Unit tests for the dataset indexer.
Covers the demand, large-wind, embedded and actual-baseline builders.
"""

import unittest

from greenscore.indexer import (
    index_demand,
    index_embedded,
    index_large_wind,
    latest_actual,
    period_key,
)
from greenscore.parser import parse


class TestIndexDemand(unittest.TestCase):
    """Test cases for index_demand."""

    def test_averages_vintages_per_date(self):
        """Rows sharing a target date are averaged."""
        records = parse(
            "TARGETDATE,FORECASTDEMAND\n"
            "20250101,20000\n"
            "20250101,22000\n"
            "20250102,30000\n"
        )

        index = index_demand(records)

        self.assertEqual(set(index), {"2025-01-01", "2025-01-02"})
        self.assertAlmostEqual(index["2025-01-01"].forecast_demand_mw, 21000.0)
        self.assertEqual(index["2025-01-01"].samples, 2)
        self.assertAlmostEqual(index["2025-01-02"].forecast_demand_mw, 30000.0)

    def test_skips_unreadable_rows(self):
        """Bad dates and non-numeric demand are ignored."""
        records = parse(
            "TARGETDATE,FORECASTDEMAND\n"
            "2025-01-01,20000\n"
            "20250101,n/a\n"
            "20250103,18000\n"
        )

        index = index_demand(records)

        self.assertEqual(list(index), ["2025-01-03"])

    def test_empty(self):
        self.assertEqual(index_demand([]), {})


class TestIndexLargeWind(unittest.TestCase):
    """Test cases for index_large_wind."""

    def test_keyed_by_date_and_period(self):
        records = parse(
            "Date,Settlement_period,Wind_Forecast\n"
            "2025-01-01,1,5000\n"
            "2025-01-01,2,5200\n"
        )

        index = index_large_wind(records)

        self.assertEqual(index[period_key("2025-01-01", 2)].wind_forecast, 5200.0)
        self.assertEqual(index["2025-01-01_1"].period, 1)

    def test_duplicate_keeps_last(self):
        """A repeated (date, period) does not fail; the last row wins."""
        records = parse(
            "Date,Settlement_period,Wind_Forecast\n"
            "2025-01-01,1,5000\n"
            "2025-01-01,1,6000\n"
        )

        index = index_large_wind(records)

        self.assertEqual(len(index), 1)
        self.assertEqual(index["2025-01-01_1"].wind_forecast, 6000.0)

    def test_missing_value_defaults_to_zero(self):
        records = parse("Date,Settlement_period\n2025-01-01,3\n")

        self.assertEqual(index_large_wind(records)["2025-01-01_3"].wind_forecast, 0.0)


class TestIndexEmbedded(unittest.TestCase):
    """Test cases for index_embedded."""

    def test_strips_time_from_settlement_date(self):
        records = parse(
            "SETTLEMENT_DATE,SETTLEMENT_PERIOD,EMBEDDED_WIND_FORECAST,EMBEDDED_SOLAR_FORECAST\n"
            "2025-01-01T00:00:00,1,1200,0\n"
            "2025-01-01T00:00:00,24,900,3100\n"
        )

        index = index_embedded(records)

        self.assertEqual(set(index), {"2025-01-01_1", "2025-01-01_24"})
        entry = index["2025-01-01_24"]
        self.assertEqual(entry.wind_forecast, 900.0)
        self.assertEqual(entry.solar_forecast, 3100.0)

    def test_rows_without_period_skipped(self):
        records = parse(
            "SETTLEMENT_DATE,SETTLEMENT_PERIOD,EMBEDDED_WIND_FORECAST\n"
            "2025-01-01,,1200\n"
            "2025-01-01,x,1200\n"
        )

        self.assertEqual(index_embedded(records), {})


class TestLatestActual(unittest.TestCase):
    """Test cases for latest_actual."""

    HEADER = (
        "SETTLEMENT_DATE,SETTLEMENT_PERIOD,FORECAST_ACTUAL_INDICATOR,"
        "ENGLAND_WALES_DEMAND,EMBEDDED_WIND_GENERATION,EMBEDDED_SOLAR_GENERATION\n"
    )

    def test_latest_realized_date_averaged(self):
        """Only 'A' rows count, and only the most recent date is used."""
        records = parse(
            self.HEADER
            + "2025-01-01,1,A,30000,1000,0\n"
            + "2025-01-02,1,A,20000,2000,0\n"
            + "2025-01-02,2,A,22000,2000,1000\n"
            + "2025-01-03,1,F,25000,3000,0\n"
        )

        baseline = latest_actual(records)

        self.assertIsNotNone(baseline)
        self.assertEqual(baseline.date, "2025-01-02")
        self.assertEqual(baseline.samples, 2)
        self.assertAlmostEqual(baseline.avg_demand_mw, 21000.0)
        self.assertAlmostEqual(baseline.avg_embedded_wind_mw, 2000.0)
        self.assertAlmostEqual(baseline.avg_solar_mw, 500.0)
        # (2000 + 500) / 21000 = 11.9%
        self.assertEqual(baseline.green_score_pct, 12)

    def test_to_dict_rounds(self):
        records = parse(self.HEADER + "2025-01-02,1,A,20000.4,1999.5,0.4\n")

        self.assertEqual(
            latest_actual(records).to_dict(),
            {
                "date": "2025-01-02",
                "green_score_pct": 10,
                "avg_embedded_wind": 2000,
                "avg_solar": 0,
                "avg_demand": 20000,
            },
        )

    def test_no_realized_rows(self):
        records = parse(self.HEADER + "2025-01-03,1,F,25000,3000,0\n")

        self.assertIsNone(latest_actual(records))

    def test_zero_demand_gives_no_baseline(self):
        records = parse(self.HEADER + "2025-01-03,1,A,0,3000,0\n")

        self.assertIsNone(latest_actual(records))


if __name__ == '__main__':
    unittest.main(verbosity=2)
