"""
Green Score — Weekly Summarizer
Average score plus best and worst day over a daily series.
"""

from __future__ import annotations

from loguru import logger

from greenscore.models import DailyMetrics, WeeklySummary, round_half_up


def summarize(series: list[DailyMetrics]) -> WeeklySummary:
    """
    Reduce a daily series to its weekly statistics.

    Ties on the best or worst score go to the earliest entry in the series.
    An empty series gives an average of 0 and no best or worst day.
    """
    if not series:
        logger.warning("Summary: empty daily series.")
        return WeeklySummary(average_score_pct=0, best_day=None, worst_day=None, daily_series=[])

    average = round_half_up(sum(d.green_score_pct for d in series) / len(series))

    best = series[0]
    worst = series[0]
    for day in series[1:]:
        if day.green_score_pct > best.green_score_pct:
            best = day
        if day.green_score_pct < worst.green_score_pct:
            worst = day

    logger.info(
        "Summary: {} days | avg {}% | best {} ({}%) | worst {} ({}%)",
        len(series), average,
        best.date, best.green_score_pct,
        worst.date, worst.green_score_pct,
    )
    return WeeklySummary(
        average_score_pct=average,
        best_day=best,
        worst_day=worst,
        daily_series=list(series),
    )
