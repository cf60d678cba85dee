from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup
from loguru import logger

from smartscraper.models.interfaces import AttemptSuccess, Backend
from smartscraper.models.schemas import RetrievalRequest
from smartscraper.services import http_client


@dataclass(slots=True)
class Article:
    """Main content isolated from a page by readability."""

    title: str
    byline: str
    excerpt: str
    site_name: str
    content_html: str
    length: int


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def _meta_content(soup: BeautifulSoup, *selectors: tuple[str, str]) -> str:
    for attr, value in selectors:
        tag = soup.find("meta", attrs={attr: value})
        if tag is not None and tag.get("content"):
            return _normalize_text(str(tag["content"]))
    return ""


def extract_article(raw_html: str, url: str) -> Article | None:
    """Run readability over ``raw_html``; ``None`` means no article was found."""
    from readability import Document

    try:
        doc = Document(raw_html, url=url)
        content_html = doc.summary(html_partial=True)
        title = doc.short_title()
    except Exception as exc:  # readability raises Unparseable and lxml errors alike
        logger.debug(f"Readability could not parse {url}: {exc}")
        return None

    article_soup = BeautifulSoup(content_html or "", "html.parser")
    article_text = _normalize_text(article_soup.get_text(" "))
    if not article_text:
        return None

    page_soup = BeautifulSoup(raw_html, "html.parser")
    excerpt = _meta_content(
        page_soup,
        ("name", "description"),
        ("property", "og:description"),
    )
    if not excerpt:
        first_paragraph = article_soup.find("p")
        if first_paragraph is not None:
            excerpt = _normalize_text(first_paragraph.get_text(" "))

    return Article(
        title=_normalize_text(title or ""),
        byline=_meta_content(
            page_soup,
            ("name", "author"),
            ("property", "article:author"),
        ),
        excerpt=excerpt,
        site_name=_meta_content(page_soup, ("property", "og:site_name")),
        content_html=content_html,
        length=len(article_text),
    )


def article_metadata(article: Article) -> dict[str, Any]:
    return {
        "title": article.title,
        "author": article.byline,
        "excerpt": article.excerpt,
        "siteName": article.site_name,
        "length": article.length,
    }


class DirectFetchAdapter:
    """Plain GET against the target URL, optionally through a proxy."""

    backend = Backend.DIRECT

    async def fetch(self, request: RetrievalRequest) -> AttemptSuccess:
        options = request.options
        response = await http_client.send(
            "GET",
            request.url,
            backend=self.backend.value,
            headers=options.network.request_headers(),
            timeout=options.network.timeout_seconds,
            proxy=options.proxy,
        )
        html = response.text

        if not options.output.extract_main_content:
            return AttemptSuccess(backend=self.backend, raw_content=html)

        article = extract_article(html, request.url)
        if article is None:
            return AttemptSuccess(backend=self.backend, raw_content=html)

        return AttemptSuccess(
            backend=self.backend,
            raw_content=article.content_html,
            backend_metadata=article_metadata(article),
        )
