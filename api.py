"""
Green Score — FastAPI Service
Serves the weekly UK green energy outlook built from the NESO data portal.

Run:  uvicorn api:app --reload --port 8000
Docs: http://localhost:8000/docs
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Generic, Optional, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from greenscore.config import Settings
from greenscore.errors import GreenScoreError, PipelineFailure
from greenscore.fetcher import HttpxFetcher
from greenscore.models import DailyMetrics, OutlookResult
from greenscore.pipeline import OutlookPipeline, utc_today

settings = Settings.from_env()

logger.remove()
logger.add(sys.stderr, level=settings.log_level)

# ---------------------------------------------------------------------------
# Application state — one shared httpx client
# ---------------------------------------------------------------------------

_http_client: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create a single shared httpx client for the lifetime of the process."""
    global _http_client
    _http_client = httpx.AsyncClient(timeout=settings.request_timeout, follow_redirects=True)
    logger.info("httpx AsyncClient initialised.")
    yield
    await _http_client.aclose()
    _http_client = None
    logger.info("httpx AsyncClient closed.")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Green Score API",
    description=(
        "Weekly UK green energy outlook: embedded and large-scale wind plus "
        "solar forecasts measured against forecast demand."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Envelope — standard top-level wrapper for data endpoints
# ---------------------------------------------------------------------------

_T_data    = TypeVar("_T_data")
_T_summary = TypeVar("_T_summary")


class EnvelopeMeta(BaseModel):
    """Metadata block present on every data response."""
    api_version:      str = "1.0"
    start:            str   # first forecast date, YYYY-MM-DD
    end:              str   # last forecast date, YYYY-MM-DD
    timezone:         str = "UTC"
    last_updated_utc: str
    units:            str = "MW"
    formula:          str
    data_sources:     list[str]


class ApiResponse(BaseModel, Generic[_T_data, _T_summary]):
    """Uniform envelope returned by every data endpoint."""
    meta:    EnvelopeMeta
    data:    list[_T_data]
    summary: _T_summary


# ---------------------------------------------------------------------------
# Record / summary models
# ---------------------------------------------------------------------------

class DailyScoreRecord(BaseModel):
    date:          str
    score:         int   # green score, %
    embedded_wind: int   # MW, per-period average
    large_wind:    int
    total_wind:    int
    solar:         int
    demand:        int


class DayScore(BaseModel):
    date:                       str
    score:                      int
    total_renewable_energy_mwh: int
    total_demand_energy_mwh:    int


class LatestActualRecord(BaseModel):
    date:              str
    green_score_pct:   int
    avg_embedded_wind: int
    avg_solar:         int
    avg_demand:        int


class OutlookSummary(BaseModel):
    week_average_score: int
    days_forecast:      int
    best_day:           Optional[DayScore]
    worst_day:          Optional[DayScore]
    latest_actual:      Optional[LatestActualRecord]


OutlookApiResponse = ApiResponse[DailyScoreRecord, OutlookSummary]


class HealthResponse(BaseModel):
    status:    str
    timestamp: str
    client_ready: bool


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _day_score(day: Optional[DailyMetrics]) -> Optional[DayScore]:
    if day is None:
        return None
    return DayScore(
        date=day.date,
        score=day.green_score_pct,
        total_renewable_energy_mwh=day.total_renewable_energy_mwh,
        total_demand_energy_mwh=day.total_demand_energy_mwh,
    )


async def _run_pipeline(start: date) -> OutlookResult:
    """Run on the shared client; outside the lifespan, on a client closed afterwards."""
    if _http_client is not None:
        fetcher = HttpxFetcher(
            client=_http_client,
            max_retries=settings.max_retries,
            backoff=settings.retry_backoff,
        )
        return await OutlookPipeline(fetcher, settings).run(start)

    logger.warning("Shared httpx client not initialised; using a per-request client.")
    async with HttpxFetcher(
        max_retries=settings.max_retries,
        backoff=settings.retry_backoff,
        timeout=settings.request_timeout,
    ) as fetcher:
        return await OutlookPipeline(fetcher, settings).run(start)


def _failure_exception(exc: GreenScoreError) -> HTTPException:
    failure = PipelineFailure.from_exception(exc)
    logger.error("Outlook failed [{}]: {}", failure.kind, failure.details)
    return HTTPException(status_code=502 if failure.is_upstream else 500, detail=failure.to_dict())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Meta"])
async def health():
    """Returns service health status and whether the HTTP client is up."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(tz=timezone.utc).isoformat(),
        client_ready=_http_client is not None,
    )


@app.get("/outlook", response_model=OutlookApiResponse, tags=["Outlook"])
async def get_outlook(
    today: Optional[str] = Query(
        default=None,
        description="First forecast date, 'YYYY-MM-DD' (UTC). Defaults to today.",
    ),
):
    """
    Return the daily green scores for the forecast window plus weekly stats.

    - **today**: first date of the window; the window covers the configured
      number of days (default 7)

    Upstream failures return 502 with a ``detail`` object carrying
    ``kind``, ``error``, ``message`` and ``details``.
    """
    try:
        start = date.fromisoformat(today) if today else utc_today()
    except ValueError as exc:
        raise HTTPException(
            status_code=422, detail=f"Invalid date: {exc}. Use 'YYYY-MM-DD'."
        ) from exc

    end = start + timedelta(days=settings.forecast_days - 1)
    logger.info("GET /outlook | window={} to {}", start, end)

    try:
        result = await _run_pipeline(start)
    except GreenScoreError as exc:
        raise _failure_exception(exc) from exc

    summary = result.summary
    latest = result.latest_actual
    return OutlookApiResponse(
        meta=EnvelopeMeta(
            start=start.isoformat(),
            end=end.isoformat(),
            last_updated_utc=datetime.now(tz=timezone.utc).isoformat(),
            formula=result.formula,
            data_sources=result.data_sources,
        ),
        data=[DailyScoreRecord(**d.to_series_dict()) for d in summary.daily_series],
        summary=OutlookSummary(
            week_average_score=summary.average_score_pct,
            days_forecast=len(summary.daily_series),
            best_day=_day_score(summary.best_day),
            worst_day=_day_score(summary.worst_day),
            latest_actual=LatestActualRecord(**latest.to_dict()) if latest else None,
        ),
    )
