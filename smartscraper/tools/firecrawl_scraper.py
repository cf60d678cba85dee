from __future__ import annotations

from typing import Any

from smartscraper.exceptions import ConfigurationError, NetworkError
from smartscraper.models.interfaces import AttemptSuccess, Backend
from smartscraper.models.schemas import RetrievalRequest
from smartscraper.services import http_client


def _extract_content(payload: dict) -> str:
    return str(payload.get("markdown") or payload.get("content") or payload.get("text") or "")


def _extract_metadata(payload: dict) -> dict[str, Any]:
    metadata = payload.get("metadata")
    return dict(metadata) if isinstance(metadata, dict) else {}


def unwrap_envelope(data: Any) -> dict:
    """Firecrawl nests the page under ``data``; older/self-hosted builds answer flat."""
    if not isinstance(data, dict):
        return {}
    body = data.get("data") or data
    return body if isinstance(body, dict) else {}


class FirecrawlAdapter:
    """Scrape a URL with the Firecrawl API (bearer-authenticated POST)."""

    backend = Backend.SCRAPE_API

    async def fetch(self, request: RetrievalRequest) -> AttemptSuccess:
        firecrawl = request.options.firecrawl
        output = request.options.output
        if not firecrawl.api_key:
            raise ConfigurationError("Firecrawl API key is required")

        endpoint = firecrawl.api_host.rstrip("/") + firecrawl.scrape_path
        request_body = {
            "url": request.url,
            "formats": [output.format.value or "markdown"],
            "onlyMainContent": output.extract_main_content,
        }
        response = await http_client.send(
            "POST",
            endpoint,
            backend=self.backend.value,
            json=request_body,
            headers={
                "Authorization": f"Bearer {firecrawl.api_key}",
                "Content-Type": "application/json",
            },
            timeout=request.options.network.timeout_seconds,
        )

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Firecrawl returned a non-JSON body: {exc}",
                backend=self.backend.value,
            ) from exc

        payload = unwrap_envelope(data)
        return AttemptSuccess(
            backend=self.backend,
            raw_content=_extract_content(payload),
            backend_metadata=_extract_metadata(payload),
        )
