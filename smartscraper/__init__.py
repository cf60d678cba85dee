"""SmartScraper - web content retrieval with automatic failover.

Each URL is tried against a strategy-ordered chain of backends (direct HTTP
fetch with readability extraction, Jina AI Reader, Firecrawl API) until one
succeeds; the result is normalized to markdown, text, HTML or a flat JSON
record.

Components:
- research_core.strategy: backend ordering per strategy
- research_core.orchestrator: failover loop and batch driver
- tools: backend adapters and the content formatter
- services: outbound HTTP and logging
- main: FastAPI service
"""
