"""SmartScraper - web content retrieval with failover

Simple CLI for scraping one or more URLs.
"""

import argparse
import asyncio
import json
import sys

from pydantic import ValidationError as PydanticValidationError

from smartscraper.config import settings
from smartscraper.exceptions import ScrapeError
from smartscraper.models.interfaces import FailurePolicy, OutputFormat, Strategy
from smartscraper.models.schemas import (
    FirecrawlConfig,
    JinaConfig,
    NetworkConfig,
    OutputConfig,
    ScrapeItem,
    ScrapeOptions,
)
from smartscraper.research_core.orchestrator import ScrapeOrchestrator
from smartscraper.services.logger import logger


def build_options(args: argparse.Namespace) -> ScrapeOptions:
    """Settings defaults overlaid with the command-line flags.

    Every sub-config is rebuilt through its constructor so the flags get the
    same validation as the environment values.
    """
    options = ScrapeOptions.from_settings(settings)
    output = OutputConfig(
        **{
            **options.output.model_dump(),
            "format": args.format or options.output.format,
            "max_length": args.max_length if args.max_length is not None else options.output.max_length,
            "include_metadata": options.output.include_metadata and not args.no_metadata,
            "extract_main_content": options.output.extract_main_content and not args.no_extract,
        }
    )
    network = options.network
    if args.headers:
        network = NetworkConfig(**{**network.model_dump(), "extra_headers": args.headers})
    jina = JinaConfig(**{**options.jina.model_dump(), "enabled": options.jina.enabled and not args.no_jina})
    firecrawl = FirecrawlConfig(
        **{**options.firecrawl.model_dump(), "enabled": options.firecrawl.enabled or args.enable_firecrawl}
    )
    return ScrapeOptions(
        strategy=Strategy(args.strategy) if args.strategy else options.strategy,
        jina=jina,
        firecrawl=firecrawl,
        proxy=options.proxy,
        output=output,
        network=network,
    )


async def run_scrape(args: argparse.Namespace) -> list[dict]:
    """Scrape every URL given on the command line."""
    item = ScrapeItem(urls=",".join(args.urls), options=build_options(args))
    policy = FailurePolicy.CONTINUE if args.continue_on_fail else FailurePolicy(settings.failure_policy)
    orchestrator = ScrapeOrchestrator(max_parallel=settings.scrape_max_parallel)
    return await orchestrator.run_batch([item], failure_policy=policy)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SmartScraper - web content retrieval with failover")
    parser.add_argument("urls", nargs="+", help="URL(s) to scrape; comma separated lists are accepted")
    parser.add_argument("--strategy", choices=[s.value for s in Strategy], default=None)
    parser.add_argument("--format", choices=[f.value for f in OutputFormat], default=None)
    parser.add_argument("--max-length", type=int, default=None, help="Max content length (0 = unlimited)")
    parser.add_argument("--headers", default=None, help="Extra request headers as a JSON object")
    parser.add_argument("--no-metadata", action="store_true", help="Omit the metadata envelope")
    parser.add_argument("--no-extract", action="store_true", help="Skip main-content extraction")
    parser.add_argument("--no-jina", action="store_true", help="Disable the Jina AI Reader backend")
    parser.add_argument("--enable-firecrawl", action="store_true", help="Enable the Firecrawl backend")
    parser.add_argument("--continue-on-fail", action="store_true", help="Emit error records instead of aborting")
    return parser


def main():
    args = build_parser().parse_args()

    try:
        records = asyncio.run(run_scrape(args))
    except (ScrapeError, PydanticValidationError) as e:
        logger.error(str(e))
        sys.exit(1)

    print(json.dumps(records, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
