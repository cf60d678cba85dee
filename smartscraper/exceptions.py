"""Exception hierarchy for content retrieval."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartscraper.models.interfaces import AttemptFailure


class ScrapeError(Exception):
    """Base exception for all retrieval errors."""

    pass


class ValidationError(ScrapeError):
    """Raised for empty or malformed input. Never retried."""

    pass


class ConfigurationError(ScrapeError):
    """Raised when a backend is enabled without its required credential."""

    pass


class NetworkError(ScrapeError):
    """Raised for transport failures, timeouts and non-2xx responses."""

    def __init__(self, message: str, *, backend: str = "") -> None:
        super().__init__(message)
        self.backend = backend


class AggregateFailureError(ScrapeError):
    """Raised when every backend in the failover chain failed for a URL."""

    def __init__(self, url: str, failures: list[AttemptFailure]) -> None:
        self.url = url
        self.failures = list(failures)
        super().__init__(
            f"Failed to scrape URL {url} with all available methods. Errors: {self.joined_errors}"
        )

    @property
    def joined_errors(self) -> str:
        return "; ".join(failure.describe() for failure in self.failures)
