from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import quote, urlparse

from pydantic import BaseModel, Field, field_validator

from smartscraper.config import Settings
from smartscraper.exceptions import ValidationError
from smartscraper.models.interfaces import (
    Backend,
    FailurePolicy,
    OutputFormat,
    ProxyProtocol,
    Strategy,
)

URL_SEPARATORS = re.compile(r"[,\n]+")

DEFAULT_USER_AGENT = Settings.model_fields["user_agent"].default


def parse_urls(raw: str | list[str]) -> list[str]:
    """Split a comma/newline separated URL string into trimmed, non-empty URLs."""
    if isinstance(raw, str):
        raw = URL_SEPARATORS.split(raw)
    return [url.strip() for url in raw if url and url.strip()]


def validate_url(url: str) -> str:
    if not isinstance(url, str):
        raise ValidationError("URL must be a string")
    url = url.strip()
    if not url:
        raise ValidationError("URL must not be empty")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Malformed URL: {url}")
    return url


# --- Backend configuration ---


class ProxyConfig(BaseModel):
    host: str
    port: int = Field(8080, gt=0, lt=65536)
    protocol: ProxyProtocol = ProxyProtocol.HTTP
    username: str | None = None
    password: str | None = None

    @property
    def url(self) -> str:
        auth = ""
        if self.username:
            auth = quote(self.username, safe="")
            if self.password:
                auth += ":" + quote(self.password, safe="")
            auth += "@"
        return f"{self.protocol.value}://{auth}{self.host}:{self.port}"


class JinaConfig(BaseModel):
    enabled: bool = True
    api_key: str | None = None
    api_host: str = "https://r.jina.ai"


class FirecrawlConfig(BaseModel):
    enabled: bool = False
    api_key: str | None = None
    api_host: str = "https://api.firecrawl.dev"
    scrape_path: str = "/v0/scrape"


class OutputConfig(BaseModel):
    format: OutputFormat = OutputFormat.MARKDOWN
    max_length: int = Field(0, ge=0)
    include_metadata: bool = True
    extract_main_content: bool = True


class NetworkConfig(BaseModel):
    timeout_ms: int = Field(30000, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: dict[str, str] = Field(default_factory=dict)
    retry_count: int = Field(2, ge=0)

    @field_validator("extra_headers", mode="before")
    @classmethod
    def _parse_headers(cls, value: Any) -> Any:
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValidationError(f"Custom headers are not valid JSON: {exc}") from exc
        if not isinstance(value, dict):
            raise ValidationError("Custom headers must be a JSON object")
        return {str(k): str(v) for k, v in value.items()}

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def request_headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, **self.extra_headers}


class ScrapeOptions(BaseModel):
    strategy: Strategy | str = Strategy.COST_EFFECTIVE
    jina: JinaConfig = Field(default_factory=JinaConfig)
    firecrawl: FirecrawlConfig = Field(default_factory=FirecrawlConfig)
    proxy: ProxyConfig | None = None
    output: OutputConfig = Field(default_factory=OutputConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)

    def enabled_backends(self) -> frozenset[Backend]:
        enabled = set()
        if self.jina.enabled:
            enabled.add(Backend.READER)
        if self.firecrawl.enabled:
            enabled.add(Backend.SCRAPE_API)
        return frozenset(enabled)

    @classmethod
    def from_settings(cls, settings: Settings) -> ScrapeOptions:
        proxy = None
        if settings.proxy_enabled and settings.proxy_host:
            proxy = ProxyConfig(
                host=settings.proxy_host,
                port=settings.proxy_port,
                protocol=settings.proxy_protocol,
                username=settings.proxy_username or None,
                password=settings.proxy_password or None,
            )
        return cls(
            strategy=settings.default_strategy,
            jina=JinaConfig(
                enabled=settings.enable_jina,
                api_key=settings.jina_api_key or None,
                api_host=settings.jina_api_host,
            ),
            firecrawl=FirecrawlConfig(
                enabled=settings.enable_firecrawl,
                api_key=settings.firecrawl_api_key or None,
                api_host=settings.firecrawl_api_host,
                scrape_path=settings.firecrawl_scrape_path,
            ),
            proxy=proxy,
            output=OutputConfig(
                format=settings.output_format,
                max_length=settings.max_length,
                include_metadata=settings.include_metadata,
                extract_main_content=settings.extract_main_content,
            ),
            network=NetworkConfig(
                timeout_ms=settings.request_timeout_ms,
                user_agent=settings.user_agent,
                retry_count=settings.retry_count,
            ),
        )


class RetrievalRequest(BaseModel):
    url: str
    options: ScrapeOptions = Field(default_factory=ScrapeOptions)

    @field_validator("url", mode="before")
    @classmethod
    def _check_url(cls, value: Any) -> str:
        return validate_url(value)


class ScrapeItem(BaseModel):
    """One input item; its URL string may hold several URLs."""

    urls: str | list[str]
    options: ScrapeOptions = Field(default_factory=ScrapeOptions)

    def parsed_urls(self) -> list[str]:
        return parse_urls(self.urls)


# --- Requests ---


class ScrapeRequest(BaseModel):
    urls: str | list[str]
    strategy: Strategy | None = None
    output: OutputConfig | None = None
    network: NetworkConfig | None = None
    failure_policy: FailurePolicy | None = None


# --- Responses ---


class ScrapeResponse(BaseModel):
    results: list[dict[str, Any]]
