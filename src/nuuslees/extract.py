"""Article extraction: fetch a page and keep its readable body.

Page chrome is stripped first. Semantic containers win; otherwise the block
whose direct paragraphs carry the most text is taken.
"""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup, Tag

from nuuslees.errors import FormatError, NetworkError
from nuuslees.models import DEFAULT_REQUEST_TIMEOUT
from nuuslees.sync import USER_AGENT

logger = logging.getLogger(__name__)

_CHROME_TAGS = [
    "script",
    "style",
    "noscript",
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "iframe",
    "svg",
]
_MIN_BODY_CHARS = 40


def _paragraph_text_length(tag: Tag) -> int:
    return sum(len(p.get_text(" ", strip=True)) for p in tag.find_all("p", recursive=False))


def extract_article_html(document: str) -> str:
    """Return the HTML of the most article-like element of ``document``."""
    soup = BeautifulSoup(document, "html.parser")
    for tag in soup.find_all(_CHROME_TAGS):
        tag.decompose()

    candidate: Tag | None = soup.find("article") or soup.find("main")
    if candidate is None or len(candidate.get_text(strip=True)) < _MIN_BODY_CHARS:
        best_score = 0
        for container in soup.find_all(["div", "section", "td", "body"]):
            score = _paragraph_text_length(container)
            if score > best_score:
                best_score = score
                candidate = container

    if candidate is None or len(candidate.get_text(strip=True)) < _MIN_BODY_CHARS:
        raise FormatError("No readable article content found")
    return str(candidate)


class ArticleExtractor:
    """Blocking page fetch + extraction; callers run it off the UI loop."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )

    def extract(self, url: str) -> str:
        if not url:
            raise NetworkError(url, "article has no link")
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkError(url, str(exc) or type(exc).__name__) from exc
        body = extract_article_html(response.text)
        logger.debug("Extracted %d chars from %s", len(body), url)
        return body

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = [
    "ArticleExtractor",
    "extract_article_html",
]
