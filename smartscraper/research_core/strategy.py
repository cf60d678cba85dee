from __future__ import annotations

from collections.abc import Collection

from smartscraper.models.interfaces import Backend, Strategy


def _coerce_strategy(strategy: Strategy | str) -> Strategy:
    try:
        return Strategy(strategy)
    except ValueError:
        return Strategy.COST_EFFECTIVE


def resolve_order(
    strategy: Strategy | str,
    enabled_backends: Collection[Backend],
) -> list[Backend]:
    """Order in which backends are tried. Direct fetch is always included.

    Unknown strategies fall back to the cost-effective order.
    """
    jina = Backend.READER in enabled_backends
    firecrawl = Backend.SCRAPE_API in enabled_backends
    strategy = _coerce_strategy(strategy)

    order: list[Backend] = []
    if strategy == Strategy.QUALITY_FIRST:
        if firecrawl:
            order.append(Backend.SCRAPE_API)
        if jina:
            order.append(Backend.READER)
        order.append(Backend.DIRECT)
    elif strategy == Strategy.SPEED_FIRST:
        order.append(Backend.DIRECT)
        if firecrawl:
            order.append(Backend.SCRAPE_API)
        if jina:
            order.append(Backend.READER)
    else:
        order.append(Backend.DIRECT)
        if jina:
            order.append(Backend.READER)
        if firecrawl:
            order.append(Backend.SCRAPE_API)
    return order
