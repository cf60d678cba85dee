from __future__ import annotations

from fastapi import APIRouter, HTTPException

from smartscraper.config import settings
from smartscraper.exceptions import AggregateFailureError, ValidationError
from smartscraper.models.interfaces import FailurePolicy
from smartscraper.models.schemas import ScrapeItem, ScrapeOptions, ScrapeRequest, ScrapeResponse
from smartscraper.research_core.orchestrator import ScrapeOrchestrator

router = APIRouter(prefix="/api/scrape", tags=["scrape"])


def _build_options(request: ScrapeRequest) -> ScrapeOptions:
    """Server-side settings supply credentials; the request may override the rest."""
    options = ScrapeOptions.from_settings(settings)
    overrides = {}
    if request.strategy is not None:
        overrides["strategy"] = request.strategy
    if request.output is not None:
        overrides["output"] = request.output
    if request.network is not None:
        overrides["network"] = request.network
    return options.model_copy(update=overrides)


@router.post("", response_model=ScrapeResponse)
async def scrape(request: ScrapeRequest):
    """Scrape one or more URLs with failover and return one record per URL."""
    failure_policy = request.failure_policy or FailurePolicy(settings.failure_policy)
    orchestrator = ScrapeOrchestrator(max_parallel=settings.scrape_max_parallel)
    item = ScrapeItem(urls=request.urls, options=_build_options(request))

    try:
        results = await orchestrator.run_batch([item], failure_policy=failure_policy)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AggregateFailureError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return ScrapeResponse(results=results)
