"""
Green Score — Outlook Pipeline
Fetches the four NESO feeds and turns them into a weekly green energy outlook.

Stages
------
  1. Metadata   datapackage_show for all four datasets, concurrently
  2. Resolve    first CSV resource path per dataset
  3. Download   all four CSV files, concurrently
  4. Parse      CSV text → typed records
  5. Index      per-feed lookup tables + latest realized actual
  6. Aggregate  DailyMetrics for each date in the forecast window
  7. Summarize  weekly average, best and worst day

Any failure aborts the run; no partial outlook is returned.  Callers turn
the exception into a user-facing message with ``PipelineFailure``.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Optional

from loguru import logger

from greenscore.aggregator import aggregate, forecast_window
from greenscore.config import DATA_SOURCES, DATASETS, FORMULA, Settings
from greenscore.errors import STAGE_CSV, STAGE_METADATA, FetchError
from greenscore.fetcher import Fetcher, HttpxFetcher, fetch_all, resolve_resource
from greenscore.indexer import index_demand, index_embedded, index_large_wind, latest_actual
from greenscore.models import OutlookResult
from greenscore.parser import parse
from greenscore.summary import summarize


def utc_today() -> date:
    return datetime.now(tz=timezone.utc).date()


def compute_outlook(
    embedded_text: str,
    wind_text: str,
    demand_text: str,
    actual_text: str,
    today: date,
    settings: Optional[Settings] = None,
) -> OutlookResult:
    """Build the outlook from the four raw CSV payloads (stages 4–7)."""
    settings = settings or Settings()

    embedded_index = index_embedded(parse(embedded_text))
    wind_index = index_large_wind(parse(wind_text))
    demand_index = index_demand(parse(demand_text))
    baseline = latest_actual(parse(actual_text))

    series = aggregate(
        forecast_window(today, settings.forecast_days),
        embedded_index,
        wind_index,
        demand_index,
        baseline,
        settings.default_demand_mw,
    )
    return OutlookResult(
        summary=summarize(series),
        latest_actual=baseline,
        data_sources=list(DATA_SOURCES),
        formula=FORMULA,
    )


class OutlookPipeline:
    """
    One-shot batch transform from the live NESO feeds to an OutlookResult.

    Parameters
    ----------
    fetcher:
        Transport for every HTTP GET.  Any ``Fetcher`` will do.
    settings:
        Endpoints, forecast window and default demand.
    """

    def __init__(self, fetcher: Fetcher, settings: Optional[Settings] = None) -> None:
        self._fetcher = fetcher
        self._settings = settings or Settings()

    async def _fetch_stage(self, urls: list[str], as_json: bool, stage: str) -> list:
        try:
            return await fetch_all(self._fetcher, urls, as_json=as_json)
        except FetchError as exc:
            raise FetchError(str(exc), url=exc.url, attempts=exc.attempts, stage=stage) from exc

    async def fetch_csv_texts(self) -> list[str]:
        """Resolve and download the CSV payload of every dataset, in DATASETS order."""
        meta_urls = [self._settings.metadata_url(dataset) for dataset in DATASETS]
        metadata = await self._fetch_stage(meta_urls, as_json=True, stage=STAGE_METADATA)

        resources = [resolve_resource(ds, meta) for ds, meta in zip(DATASETS, metadata)]
        logger.info("Resolved {} CSV resources.", len(resources))
        for resource in resources:
            logger.debug("{} → {}", resource.dataset, resource.url)

        texts = await self._fetch_stage([r.url for r in resources], as_json=False, stage=STAGE_CSV)
        logger.info("Fetched {} CSV files ({} bytes).", len(texts), sum(len(t) for t in texts))
        return texts

    async def run(self, today: Optional[date] = None) -> OutlookResult:
        today = today or utc_today()
        logger.info("Outlook | start={} | days={}", today.isoformat(), self._settings.forecast_days)

        embedded_text, wind_text, demand_text, actual_text = await self.fetch_csv_texts()
        return compute_outlook(
            embedded_text, wind_text, demand_text, actual_text, today, self._settings
        )


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------


async def fetch_outlook(today: Optional[date] = None, settings: Optional[Settings] = None) -> OutlookResult:
    """Run the pipeline on a fetcher that lives for this call only."""
    settings = settings or Settings.from_env()
    async with HttpxFetcher(
        max_retries=settings.max_retries,
        backoff=settings.retry_backoff,
        timeout=settings.request_timeout,
    ) as fetcher:
        return await OutlookPipeline(fetcher, settings).run(today)


def run_outlook(today: Optional[date] = None) -> OutlookResult:
    """Blocking wrapper around ``fetch_outlook``."""
    return asyncio.run(fetch_outlook(today))


# ---------------------------------------------------------------------------
# Smoke test  (python -m greenscore.pipeline)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import json
    import sys

    from greenscore.errors import GreenScoreError, PipelineFailure

    settings = Settings.from_env()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    logger.info("=== Green Score — Outlook Smoke Test ===")
    try:
        result = asyncio.run(fetch_outlook(settings=settings))
    except GreenScoreError as exc:
        failure = PipelineFailure.from_exception(exc)
        logger.error("Smoke test FAILED — {}: {}", failure.error, failure.details)
        sys.exit(1)

    summary = result.summary
    logger.success(
        "Smoke test PASSED — {} days | week average {}%",
        len(summary.daily_series), summary.average_score_pct,
    )
    print(json.dumps(result.to_dict(), indent=2))
