from __future__ import annotations

from smartscraper.models.interfaces import AttemptSuccess, Backend
from smartscraper.models.schemas import RetrievalRequest
from smartscraper.services import http_client


def reader_url(api_host: str, url: str) -> str:
    return f"{api_host.rstrip('/')}/{url}"


class JinaReaderAdapter:
    """Fetch a URL through the Jina AI Reader proxy.

    API: GET https://r.jina.ai/<url>
    Headers:
        - Authorization: Bearer <api_key> (only when a key is configured;
          the public tier accepts unauthenticated requests)

    The reader already emits markdown-like text, so the body is returned as-is.
    """

    backend = Backend.READER

    async def fetch(self, request: RetrievalRequest) -> AttemptSuccess:
        jina = request.options.jina
        headers: dict[str, str] = {}
        if jina.api_key:
            headers["Authorization"] = f"Bearer {jina.api_key}"

        response = await http_client.send(
            "GET",
            reader_url(jina.api_host, request.url),
            backend=self.backend.value,
            headers=headers,
            timeout=request.options.network.timeout_seconds,
        )
        return AttemptSuccess(backend=self.backend, raw_content=response.text)
