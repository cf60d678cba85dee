from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Backend(str, Enum):
    DIRECT = "http"
    READER = "jina"
    SCRAPE_API = "firecrawl"

    @property
    def label(self) -> str:
        return BACKEND_LABELS[self]


BACKEND_LABELS = {
    Backend.DIRECT: "HTTP GET with content extraction",
    Backend.READER: "Jina AI Reader",
    Backend.SCRAPE_API: "Firecrawl API",
}


class Strategy(str, Enum):
    COST_EFFECTIVE = "cost_effective"
    SPEED_FIRST = "speed_first"
    QUALITY_FIRST = "quality_first"


class OutputFormat(str, Enum):
    MARKDOWN = "markdown"
    TEXT = "text"
    HTML = "html"
    JSON = "json"


class FailurePolicy(str, Enum):
    STOP = "stop"
    CONTINUE = "continue"


class ProxyProtocol(str, Enum):
    HTTP = "http"
    HTTPS = "https"
    SOCKS5 = "socks5"


@dataclass(slots=True)
class AttemptSuccess:
    backend: Backend
    raw_content: str
    backend_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class AttemptFailure:
    backend: Backend
    error_message: str
    error_type: str = "NetworkError"

    def describe(self) -> str:
        return f"{self.backend.value}: {self.error_message}"


AttemptResult = AttemptSuccess | AttemptFailure


@dataclass(slots=True)
class FormattedContent:
    """Formatter output before provenance is stamped on."""

    content: str
    metadata: dict[str, Any] | None = None
    flattened: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content": self.content}
        if self.metadata is not None:
            result["metadata"] = self.metadata
        result.update(self.flattened)
        return result


@dataclass(slots=True)
class RetrievalOutcome:
    formatted: FormattedContent
    backend: Backend
    url: str
    timestamp: str
    errors: list[AttemptFailure] = field(default_factory=list)

    @property
    def scraping_method(self) -> str:
        return self.backend.label

    def to_dict(self) -> dict[str, Any]:
        record = self.formatted.to_dict()
        record["scrapingMethod"] = self.scraping_method
        record["url"] = self.url
        record["timestamp"] = self.timestamp
        return record
