"""Turn raw backend content into the requested output representation.

Works purely on strings and the metadata mapping already produced upstream,
so every backend's output goes through the same rules.
"""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup
from markdownify import ATX, markdownify

from smartscraper.models.interfaces import FormattedContent, OutputFormat
from smartscraper.models.schemas import OutputConfig

ELLIPSIS = "..."
INVISIBLE_TAGS = ("script", "style", "noscript", "template")


def looks_like_markup(content: str) -> bool:
    return "<" in content and ">" in content


def _strip_invisible(soup: BeautifulSoup) -> BeautifulSoup:
    for tag in soup.find_all(INVISIBLE_TAGS):
        tag.decompose()
    return soup


def html_to_markdown(content: str) -> str:
    soup = _strip_invisible(BeautifulSoup(content, "html.parser"))
    markdown = markdownify(
        str(soup),
        heading_style=ATX,
        code_language="",
        bullets="-",
    )
    return markdown.strip()


def html_to_text(content: str) -> str:
    """Visible text of the document body, or ``content`` if parsing yields nothing."""
    if not looks_like_markup(content):
        return content
    soup = _strip_invisible(BeautifulSoup(content, "html.parser"))
    root = soup.body or soup
    text = root.get_text()
    return text if text.strip() else content


def truncate(content: str, max_length: int) -> str:
    if max_length <= 0 or len(content) <= max_length:
        return content
    return content[:max_length] + ELLIPSIS


def format_content(
    raw_content: str,
    output: OutputConfig,
    metadata: dict[str, Any] | None = None,
) -> FormattedContent:
    metadata = dict(metadata or {})
    fmt = output.format

    content = raw_content
    if fmt == OutputFormat.MARKDOWN and looks_like_markup(raw_content):
        content = html_to_markdown(raw_content)
    elif fmt == OutputFormat.TEXT:
        content = html_to_text(raw_content)

    content = truncate(content, output.max_length)

    return FormattedContent(
        content=content,
        metadata=metadata if output.include_metadata else None,
        flattened=dict(metadata) if fmt == OutputFormat.JSON else {},
    )
