from __future__ import annotations

import os

import httpx
import pytest

from smartscraper.exceptions import ConfigurationError, NetworkError
from smartscraper.models.interfaces import Backend
from smartscraper.models.schemas import (
    FirecrawlConfig,
    JinaConfig,
    NetworkConfig,
    OutputConfig,
    ProxyConfig,
    RetrievalRequest,
    ScrapeOptions,
)
from smartscraper.services.http_client import drop_unusable_keylog_path
from smartscraper.tools import direct_fetch
from smartscraper.tools.direct_fetch import DirectFetchAdapter
from smartscraper.tools.firecrawl_scraper import FirecrawlAdapter, unwrap_envelope
from smartscraper.tools.jina_reader import JinaReaderAdapter

ARTICLE_HTML = """
<html>
<head>
  <title>Example Article - Example Site</title>
  <meta name="author" content="Jane Writer">
  <meta name="description" content="A short summary of the article.">
  <meta property="og:site_name" content="Example Site">
</head>
<body>
  <nav><a href="/">Home</a> | <a href="/about">About</a></nav>
  <article>
    <h1>Example Article</h1>
    <p>This is the first paragraph of the article. It has enough words in it to look like real
    prose, which is what readability scores when it picks the main content of a page.</p>
    <p>This is the second paragraph, again with plenty of text, commas, and sentences, so the
    extraction has a clear winner among the candidate blocks on this page.</p>
    <p>A third paragraph rounds things out. Readability likes long paragraphs with commas, and
    this one has several of them, which keeps the article block well ahead.</p>
  </article>
  <footer>Copyright Example Site</footer>
</body>
</html>
"""


class _FakeResponse:
    def __init__(self, text: str = "", payload=None, status_code: int = 200):
        self.text = text
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        return None

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value")
        return self._payload


def _request(url: str = "https://example.com/a", **option_kwargs) -> RetrievalRequest:
    return RetrievalRequest(url=url, options=ScrapeOptions(**option_kwargs))


@pytest.fixture(autouse=True)
def _no_keylog(monkeypatch):
    monkeypatch.delenv("SSLKEYLOGFILE", raising=False)


# --- Direct fetch ---


@pytest.mark.asyncio
async def test_direct_fetch_sends_user_agent_and_custom_headers(monkeypatch):
    captured: dict = {}

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured["url"] = url
        captured["headers"] = kwargs.get("headers")
        return _FakeResponse(text="<html><body><p>raw</p></body></html>")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    request = _request(
        output=OutputConfig(extract_main_content=False),
        network=NetworkConfig(user_agent="TestAgent/1.0", extra_headers='{"X-Trace": "abc"}'),
    )
    result = await DirectFetchAdapter().fetch(request)

    assert captured["url"] == "https://example.com/a"
    assert captured["headers"] == {"User-Agent": "TestAgent/1.0", "X-Trace": "abc"}
    assert result.backend == Backend.DIRECT
    assert result.raw_content == "<html><body><p>raw</p></body></html>"
    assert result.backend_metadata == {}


@pytest.mark.asyncio
async def test_direct_fetch_returns_article_and_metadata(monkeypatch):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(text=ARTICLE_HTML)

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    result = await DirectFetchAdapter().fetch(_request())

    assert "first paragraph of the article" in result.raw_content
    assert "Copyright Example Site" not in result.raw_content
    metadata = result.backend_metadata
    assert "Example Article" in metadata["title"]
    assert metadata["author"] == "Jane Writer"
    assert metadata["excerpt"] == "A short summary of the article."
    assert metadata["siteName"] == "Example Site"
    assert metadata["length"] > 0


@pytest.mark.asyncio
async def test_direct_fetch_falls_back_to_raw_body_without_article(monkeypatch):
    raw = "<html><body><span>tiny</span></body></html>"

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(text=raw)

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)
    monkeypatch.setattr(direct_fetch, "extract_article", lambda *_args, **_kwargs: None)

    result = await DirectFetchAdapter().fetch(_request())

    assert result.raw_content == raw
    assert result.backend_metadata == {}


def test_extract_article_returns_none_for_empty_page():
    assert direct_fetch.extract_article("<html><body></body></html>", "https://example.com") is None


@pytest.mark.asyncio
async def test_direct_fetch_wraps_http_errors(monkeypatch):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    with pytest.raises(NetworkError) as exc_info:
        await DirectFetchAdapter().fetch(_request())

    assert exc_info.value.backend == "http"
    assert "connection refused" in str(exc_info.value)


@pytest.mark.asyncio
async def test_direct_fetch_reports_non_2xx_status(monkeypatch):
    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        request = httpx.Request("GET", url)
        return httpx.Response(503, request=request, text="unavailable")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    with pytest.raises(NetworkError, match="HTTP 503"):
        await DirectFetchAdapter().fetch(_request())


@pytest.mark.asyncio
async def test_direct_fetch_routes_through_configured_proxy(monkeypatch):
    observed: dict = {}
    original_init = httpx.AsyncClient.__init__

    def spy_init(self, *args, **kwargs):
        observed["proxy"] = kwargs.get("proxy")
        original_init(self, *args, **kwargs)

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        raise httpx.ProxyError("proxy unreachable")

    monkeypatch.setattr(httpx.AsyncClient, "__init__", spy_init)
    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    request = _request(
        proxy=ProxyConfig(host="proxy.local", port=3128, username="u", password="p"),
    )
    with pytest.raises(NetworkError, match="Proxy error"):
        await DirectFetchAdapter().fetch(request)

    assert observed["proxy"] == "http://u:p@proxy.local:3128"


# --- Jina reader ---


@pytest.mark.asyncio
async def test_jina_without_key_sends_no_authorization(monkeypatch):
    captured: dict = {}

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured["url"] = url
        captured["headers"] = kwargs.get("headers")
        return _FakeResponse(text="# Page\n\nBody")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    result = await JinaReaderAdapter().fetch(_request())

    assert captured["url"] == "https://r.jina.ai/https://example.com/a"
    assert "Authorization" not in captured["headers"]
    assert result.raw_content == "# Page\n\nBody"
    assert result.backend_metadata == {}


@pytest.mark.asyncio
async def test_jina_with_key_and_custom_host(monkeypatch):
    captured: dict = {}

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        captured["url"] = url
        captured["headers"] = kwargs.get("headers")
        return _FakeResponse(text="ok")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    request = _request(jina=JinaConfig(api_key="jina_123", api_host="https://reader.internal/"))
    await JinaReaderAdapter().fetch(request)

    assert captured["url"] == "https://reader.internal/https://example.com/a"
    assert captured["headers"]["Authorization"] == "Bearer jina_123"


# --- Firecrawl ---


@pytest.mark.asyncio
async def test_firecrawl_without_key_fails_before_network(monkeypatch):
    calls = 0

    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        nonlocal calls
        calls += 1
        return _FakeResponse(payload={})

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    with pytest.raises(ConfigurationError):
        await FirecrawlAdapter().fetch(_request(firecrawl=FirecrawlConfig(enabled=True)))

    assert calls == 0


@pytest.mark.asyncio
async def test_firecrawl_posts_payload_and_reads_nested_envelope(monkeypatch):
    captured: dict = {}

    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        captured["url"] = url
        captured["json"] = kwargs.get("json")
        captured["headers"] = kwargs.get("headers")
        return _FakeResponse(
            payload={
                "success": True,
                "data": {"markdown": "# Scraped", "metadata": {"title": "Scraped", "statusCode": 200}},
            }
        )

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    request = _request(
        firecrawl=FirecrawlConfig(enabled=True, api_key="fc-test"),
        output=OutputConfig(format="text", extract_main_content=False),
    )
    result = await FirecrawlAdapter().fetch(request)

    assert captured["url"] == "https://api.firecrawl.dev/v0/scrape"
    assert captured["json"] == {
        "url": "https://example.com/a",
        "formats": ["text"],
        "onlyMainContent": False,
    }
    assert captured["headers"]["Authorization"] == "Bearer fc-test"
    assert result.raw_content == "# Scraped"
    assert result.backend_metadata == {"title": "Scraped", "statusCode": 200}


@pytest.mark.asyncio
async def test_firecrawl_rejects_non_json_body(monkeypatch):
    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(text="<html>gateway</html>")

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    request = _request(firecrawl=FirecrawlConfig(enabled=True, api_key="fc-test"))
    with pytest.raises(NetworkError, match="non-JSON"):
        await FirecrawlAdapter().fetch(request)


def test_unwrap_envelope_handles_flat_and_nested_payloads():
    assert unwrap_envelope({"data": {"content": "nested"}}) == {"content": "nested"}
    assert unwrap_envelope({"text": "flat"}) == {"text": "flat"}
    assert unwrap_envelope(["not", "a", "dict"]) == {}


@pytest.mark.asyncio
async def test_firecrawl_content_priority_and_missing_metadata(monkeypatch):
    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(payload={"content": "content wins", "text": "text loses"})

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    request = _request(firecrawl=FirecrawlConfig(enabled=True, api_key="fc-test"))
    result = await FirecrawlAdapter().fetch(request)

    assert result.raw_content == "content wins"
    assert result.backend_metadata == {}


# --- SSL key log guard ---


@pytest.fixture
def _fresh_keylog_check():
    drop_unusable_keylog_path.cache_clear()
    yield
    drop_unusable_keylog_path.cache_clear()


def test_unusable_keylog_path_is_dropped_once(monkeypatch, tmp_path, _fresh_keylog_check):
    monkeypatch.setenv("SSLKEYLOGFILE", str(tmp_path / "missing" / "keys.log"))

    assert drop_unusable_keylog_path() is True
    assert "SSLKEYLOGFILE" not in os.environ

    # cached for the rest of the process; a later bad value is not re-checked
    monkeypatch.setenv("SSLKEYLOGFILE", str(tmp_path / "missing" / "other.log"))
    assert drop_unusable_keylog_path() is True
    assert os.environ["SSLKEYLOGFILE"].endswith("other.log")


def test_writable_keylog_path_is_kept(monkeypatch, tmp_path, _fresh_keylog_check):
    keylog = tmp_path / "keys.log"
    monkeypatch.setenv("SSLKEYLOGFILE", str(keylog))

    assert drop_unusable_keylog_path() is False
    assert os.environ["SSLKEYLOGFILE"] == str(keylog)
