from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from loguru import logger

from smartscraper.exceptions import (
    AggregateFailureError,
    NetworkError,
    ValidationError,
)
from smartscraper.models.interfaces import (
    AttemptFailure,
    AttemptResult,
    AttemptSuccess,
    Backend,
    FailurePolicy,
    RetrievalOutcome,
)
from smartscraper.models.schemas import RetrievalRequest, ScrapeItem
from smartscraper.research_core.strategy import resolve_order
from smartscraper.services.logger import log_scrape_attempt
from smartscraper.tools.direct_fetch import DirectFetchAdapter
from smartscraper.tools.firecrawl_scraper import FirecrawlAdapter
from smartscraper.tools.formatter import format_content
from smartscraper.tools.jina_reader import JinaReaderAdapter


class BackendAdapter(Protocol):
    backend: Backend

    async def fetch(self, request: RetrievalRequest) -> AttemptSuccess:
        ...


def default_adapters() -> dict[Backend, BackendAdapter]:
    return {
        Backend.DIRECT: DirectFetchAdapter(),
        Backend.READER: JinaReaderAdapter(),
        Backend.SCRAPE_API: FirecrawlAdapter(),
    }


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _retry_delay(attempt: int) -> float:
    return min(0.25 * attempt, 1.0)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ScrapeOrchestrator:
    """Failover over the retrieval backends for each URL.

    Per URL: resolve the backend order from the strategy, try each backend in
    turn (strictly one at a time), stop at the first success, and fold every
    failure into the error list. The winning raw content is formatted and
    stamped with provenance (method label, url, timestamp).
    """

    def __init__(
        self,
        *,
        adapters: dict[Backend, BackendAdapter] | None = None,
        max_parallel: int = 1,
        clock: Callable[[], str] = _utc_timestamp,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.adapters = adapters or default_adapters()
        self.max_parallel = max(int(max_parallel), 1)
        self._clock = clock
        self._sleep = sleep

    async def scrape_url(self, request: RetrievalRequest) -> RetrievalOutcome:
        """Run the failover chain for one validated request.

        Raises AggregateFailureError when every backend failed.
        """
        options = request.options
        order = resolve_order(options.strategy, options.enabled_backends())
        logger.debug(f"Failover order for {request.url}: {[b.value for b in order]}")

        failures: list[AttemptFailure] = []
        for backend in order:
            result = await self._attempt(backend, request)
            if isinstance(result, AttemptFailure):
                failures.append(result)
                continue

            formatted = format_content(
                result.raw_content,
                options.output,
                result.backend_metadata,
            )
            return RetrievalOutcome(
                formatted=formatted,
                backend=backend,
                url=request.url,
                timestamp=self._clock(),
                errors=failures,
            )

        raise AggregateFailureError(request.url, failures)

    async def _attempt(self, backend: Backend, request: RetrievalRequest) -> AttemptResult:
        """One backend, re-issued up to ``retry_count`` times on network errors."""
        adapter = self.adapters[backend]
        network = request.options.network
        max_attempts = network.retry_count + 1
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            started = time.monotonic()
            try:
                success = await asyncio.wait_for(
                    adapter.fetch(request),
                    timeout=network.timeout_seconds,
                )
            except asyncio.TimeoutError:
                last_error = NetworkError(
                    f"Request timed out after {network.timeout_ms}ms",
                    backend=backend.value,
                )
            except NetworkError as exc:
                last_error = exc
            except Exception as exc:
                # configuration errors and anything unexpected are not re-issued
                self._log(backend, request, attempt, started, exc)
                return AttemptFailure(backend, _error_message(exc), type(exc).__name__)
            else:
                self._log(backend, request, attempt, started, None)
                return success

            self._log(backend, request, attempt, started, last_error)
            if attempt < max_attempts:
                await self._sleep(_retry_delay(attempt))

        return AttemptFailure(backend, _error_message(last_error), type(last_error).__name__)

    def _log(
        self,
        backend: Backend,
        request: RetrievalRequest,
        attempt: int,
        started: float,
        error: Exception | None,
    ) -> None:
        log_scrape_attempt(
            backend=backend.value,
            url=request.url,
            attempt=attempt,
            duration_ms=int((time.monotonic() - started) * 1000),
            status="failed" if error else "success",
            error=_error_message(error) if error else None,
        )

    async def run_batch(
        self,
        items: Sequence[ScrapeItem],
        *,
        failure_policy: FailurePolicy = FailurePolicy.STOP,
    ) -> list[dict[str, Any]]:
        """Process input items in order and return one record per URL.

        Under ``STOP`` the first unrecoverable failure is raised. Under
        ``CONTINUE`` it becomes an ``{error, url}`` record and processing goes on.
        """
        tolerant = failure_policy == FailurePolicy.CONTINUE
        records: list[dict[str, Any]] = []

        for index, item in enumerate(items):
            urls = item.parsed_urls()
            if not urls:
                if not tolerant:
                    raise ValidationError("No valid URLs provided")
                logger.warning(f"Item {index} has no valid URLs")
                records.append({"error": "No valid URLs provided"})
                continue

            if tolerant and self.max_parallel > 1:
                records.extend(await self._run_parallel(urls, item))
                continue

            for url in urls:
                records.append(await self._run_one(url, item, tolerant=tolerant))

        return records

    async def _run_parallel(self, urls: list[str], item: ScrapeItem) -> list[dict[str, Any]]:
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def _bounded(url: str) -> dict[str, Any]:
            async with semaphore:
                return await self._run_one(url, item, tolerant=True)

        results = await asyncio.gather(
            *(_bounded(url) for url in urls),
            return_exceptions=True,
        )
        records: list[dict[str, Any]] = []
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                logger.warning(f"Scrape of {url} raised {type(result).__name__}: {result}")
                records.append({"error": _error_message(result), "url": url})
            else:
                records.append(result)
        return records

    async def _run_one(self, url: str, item: ScrapeItem, *, tolerant: bool) -> dict[str, Any]:
        try:
            request = RetrievalRequest(url=url, options=item.options)
            outcome = await self.scrape_url(request)
        except ValidationError as exc:
            if not tolerant:
                raise
            return {"error": str(exc), "url": url}
        except AggregateFailureError as exc:
            if not tolerant:
                raise
            logger.warning(f"All backends failed for {url}")
            return {
                "error": f"Failed to scrape URL with all available methods. Errors: {exc.joined_errors}",
                "url": url,
            }
        except Exception as exc:
            if not tolerant:
                raise
            logger.warning(f"Scrape of {url} raised {type(exc).__name__}: {exc}")
            return {"error": _error_message(exc), "url": url}

        logger.info(f"Scraped {url} via {outcome.scraping_method}")
        return outcome.to_dict()
