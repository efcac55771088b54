"""
Green Score — Resilient Fetcher
Async HTTP GET with bounded retries, used for both the NESO metadata API
and the raw CSV files it points at.

How it works
------------
1. Each dataset is looked up via ``datapackage_show?id=<dataset>``; the
   response lists the dataset's files under ``result.resources[].path``.
2. The first resource with a usable ``path`` is the CSV to download.
3. All four lookups run concurrently, then all four downloads.  A failure
   in any of them fails the batch and cancels the rest.

Retry policy
------------
  Timeouts, connection errors and 5xx responses are retried up to
  ``max_retries`` attempts with linear backoff (``backoff × attempt``).
  A 4xx response is a client error and fails immediately, as do redirect
  loops, undecodable bodies and invalid URLs.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

import httpx
from loguru import logger

from greenscore.config import MAX_RETRIES, REQUEST_TIMEOUT_SECONDS, RETRY_BACKOFF_SECONDS
from greenscore.errors import FetchError, MalformedResponseError
from greenscore.models import RawResource


class Fetcher(ABC):
    """Transport used by the pipeline; swap in a fake for tests."""

    @abstractmethod
    async def get(self, url: str, as_json: bool = False) -> Any:
        """Return the response body as parsed JSON or as text."""
        pass


class HttpxFetcher(Fetcher):
    """
    ``Fetcher`` backed by a shared ``httpx.AsyncClient``.

    Parameters
    ----------
    client:
        Client to issue requests on.  When omitted one is created and owned
        by this fetcher; use it as an async context manager to close it.
    max_retries:
        Total attempts per URL before giving up.
    backoff:
        Base delay in seconds; the wait after attempt *n* is ``backoff × n``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = MAX_RETRIES,
        backoff: float = RETRY_BACKOFF_SECONDS,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._max_retries = max_retries
        self._backoff = backoff

    async def __aenter__(self) -> "HttpxFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get(self, url: str, as_json: bool = False) -> Any:
        last_exc: Exception = RuntimeError("No attempts made")
        for attempt in range(1, self._max_retries + 1):
            try:
                logger.debug("GET {} attempt={}/{}", url, attempt, self._max_retries)
                resp = await self._client.get(url)
                resp.raise_for_status()
                if not as_json:
                    return resp.text
                try:
                    return resp.json()
                except ValueError as exc:
                    raise MalformedResponseError(f"Response from {url} is not valid JSON: {exc}") from exc
            except httpx.TimeoutException as exc:
                logger.warning("Timeout (attempt {}): {}", attempt, exc)
                last_exc = exc
            except httpx.TransportError as exc:
                logger.warning("Connection error (attempt {}): {}", attempt, exc)
                last_exc = exc
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if 400 <= status < 500:
                    logger.error("Client error {} for {}", status, url)
                    raise FetchError(
                        f"HTTP {status} for {url}", url=url, attempts=attempt
                    ) from exc
                logger.warning("Server error {} (attempt {}): {}", status, attempt, exc)
                last_exc = exc
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                # Redirect loops, undecodable bodies and bad URLs will not recover on retry.
                logger.error("Request to {} failed: {!r}", url, exc)
                raise FetchError(
                    f"GET {url} failed: {exc}", url=url, attempts=attempt
                ) from exc

            if attempt < self._max_retries:
                wait = self._backoff * attempt
                logger.info("Retrying in {:.1f}s…", wait)
                await asyncio.sleep(wait)

        logger.error("GET {} failed after {} attempts: {}", url, self._max_retries, last_exc)
        raise FetchError(
            f"GET {url} failed after {self._max_retries} attempts: {last_exc}",
            url=url,
            attempts=self._max_retries,
        ) from last_exc


async def fetch_all(fetcher: Fetcher, urls: Iterable[str], as_json: bool = False) -> list[Any]:
    """
    Fetch every URL concurrently and return the bodies in input order.

    The first failure propagates; any fetches still in flight are cancelled.
    """
    tasks = [asyncio.ensure_future(fetcher.get(url, as_json=as_json)) for url in urls]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def resolve_resource(dataset: str, metadata: Any) -> RawResource:
    """
    Pick the CSV file reference out of a ``datapackage_show`` response.

    Raises ``MalformedResponseError`` if no resource carries a usable path.
    """
    result = metadata.get("result") if isinstance(metadata, dict) else None
    resources = result.get("resources") if isinstance(result, dict) else None
    if isinstance(resources, list):
        for resource in resources:
            path = resource.get("path") if isinstance(resource, dict) else None
            if isinstance(path, str) and path.strip():
                return RawResource(dataset=dataset, url=path.strip())

    raise MalformedResponseError(
        f"Missing CSV URL in API response for dataset '{dataset}'", dataset=dataset
    )
