from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from bs4 import BeautifulSoup

__all__ = [
    "Article",
    "ReadabilityBackend",
    "ReadabilityCapability",
    "ReadabilityUnavailableError",
    "html_to_text",
    "load_readability",
]

# Block elements that should start on a new line when collapsing to text.
BLOCK_LEVEL_TAGS = {
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5",
    "h6", "header", "hgroup", "hr", "li", "main", "nav", "ol", "p", "pre",
    "section", "table", "ul", "tr",
}
# Tags that should force a break even when nested inside another block.
FORCE_BREAK_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6", "li", "p", "dt", "dd", "tr"}
_NO_TITLE = "[no-title]"


class ReadabilityUnavailableError(RuntimeError):
    """Raised when the readability backend cannot be initialized."""


@dataclass(frozen=True)
class Article:
    title: str
    text_content: str


class ReadabilityCapability(Protocol):
    def parse(self, html: str, url: str) -> Article | None: ...


def html_to_text(markup: str) -> str:
    """Flatten an HTML fragment to text, keeping block boundaries as newlines."""
    soup = BeautifulSoup(markup, "lxml")
    for t in soup.find_all(["script", "style", "noscript", "template"]):
        t.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(BLOCK_LEVEL_TAGS):
        if tag.name in FORCE_BREAK_TAGS or not tag.find_parent(BLOCK_LEVEL_TAGS):
            tag.insert_before("\n")
    txt = soup.get_text(separator="")
    txt = txt.replace("\u00a0", " ")
    txt = re.sub(r"[ \t]+\n", "\n", txt)
    txt = re.sub(r"\n[ \t]+", "\n", txt)
    txt = re.sub(r"\n{3,}", "\n\n", txt).strip()
    return txt


def _with_base_url(html: str, url: str) -> str:
    soup = BeautifulSoup(html, "lxml")
    if soup.head is None:
        return html
    for existing in soup.head.find_all("base"):
        existing.decompose()
    base = soup.new_tag("base", href=url)
    soup.head.insert(0, base)
    return str(soup)


class ReadabilityBackend:
    """readability-lxml wrapped as a ``parse(html, url) -> Article`` capability."""

    def __init__(self) -> None:
        try:
            from readability import Document  # type: ignore
        except ImportError as exc:
            raise ReadabilityUnavailableError(
                "Article extraction requires 'readability-lxml' to be installed."
            ) from exc
        self._document_cls = Document

    def parse(self, html: str, url: str) -> Article | None:
        if not html or not html.strip():
            return None
        document = self._document_cls(_with_base_url(html, url), url=url)
        summary = document.summary(html_partial=True)
        text = html_to_text(summary)
        if not text:
            return None
        title = document.short_title() or ""
        if title.strip() == _NO_TITLE:
            title = ""
        return Article(title=title.strip(), text_content=text)


def load_readability() -> ReadabilityCapability:
    """
    Build the readability capability once.

    The caller keeps the returned handle and injects it into
    :class:`speedread.extraction.ArticleExtractor`.
    """
    return ReadabilityBackend()
