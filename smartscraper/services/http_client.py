"""Outbound HTTP capability shared by every backend adapter.

One ``httpx.AsyncClient`` is opened per request and closed right after, so no
connection state outlives an attempt. Every transport failure, timeout and
non-2xx status is surfaced as ``NetworkError`` tagged with the backend id.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from smartscraper.exceptions import NetworkError
from smartscraper.models.schemas import ProxyConfig


@lru_cache(maxsize=1)
def drop_unusable_keylog_path() -> bool:
    """Forget ``SSLKEYLOGFILE`` for this process if it cannot be appended to.

    httpx opens the key log while building its SSL context and fails every
    request when that path is bad. Checked once per process.
    """
    keylog = os.environ.get("SSLKEYLOGFILE", "").strip()
    if not keylog:
        return False
    try:
        Path(keylog).open("a", encoding="utf-8").close()
    except OSError as exc:
        logger.warning(f"Ignoring unusable SSLKEYLOGFILE {keylog!r}: {exc}")
        os.environ.pop("SSLKEYLOGFILE", None)
        return True
    return False


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} from {exc.request.url}"
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out: {exc}" if str(exc) else "Request timed out"
    if isinstance(exc, httpx.ProxyError):
        return f"Proxy error: {exc}"
    return str(exc) or exc.__class__.__name__


async def send(
    method: str,
    url: str,
    *,
    backend: str,
    headers: dict[str, str] | None = None,
    json: dict[str, Any] | None = None,
    timeout: float = 30.0,
    proxy: ProxyConfig | None = None,
) -> httpx.Response:
    """Send one GET or POST and return the successful response.

    When ``proxy`` is given the request only ever goes through it; a proxy
    that cannot be reached fails the request.
    """
    drop_unusable_keylog_path()
    method = method.upper()
    if method not in ("GET", "POST"):
        raise ValueError(f"Unsupported HTTP method: {method}")

    client_kwargs: dict[str, Any] = {"timeout": timeout, "follow_redirects": True}
    if proxy is not None:
        client_kwargs["proxy"] = proxy.url

    try:
        async with httpx.AsyncClient(**client_kwargs) as client:
            if method == "GET":
                response = await client.get(url, headers=headers)
            else:
                response = await client.post(url, json=json, headers=headers)
            response.raise_for_status()
            return response
    except httpx.HTTPError as exc:
        raise NetworkError(_describe(exc), backend=backend) from exc
