from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from urllib.parse import urlparse

from .capability import ReadabilityCapability
from .errors import (
    URL_REQUIRED_MESSAGE,
    URL_SCHEME_MESSAGE,
    Cancelled,
    ExtractionFailure,
    InvalidInput,
    UpstreamFetchFailure,
)
from .fetching import Fetcher, RequestsFetcher

__all__ = [
    "PLATFORM_HOSTS",
    "PLATFORM_TITLE",
    "ArticleExtractor",
    "ExtractionResult",
    "decode_json_string",
    "extract_platform_text",
    "validate_url",
]

logger = logging.getLogger(__name__)

PLATFORM_HOSTS = frozenset({"x.com", "www.x.com"})
PLATFORM_TITLE = "X (Tweet)"
_FULL_TEXT_RE = re.compile(r'"full_text"\s*:\s*"([^"]+)"')
_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExtractionResult:
    title: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "text": self.text}


def validate_url(url: object) -> str:
    """Return the trimmed URL or raise :class:`InvalidInput`."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidInput(URL_REQUIRED_MESSAGE)
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as exc:
        raise InvalidInput(URL_SCHEME_MESSAGE) from exc
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.netloc:
        raise InvalidInput(URL_SCHEME_MESSAGE)
    return candidate


def decode_json_string(raw: str) -> str:
    """
    Undo the escapes found inside an embedded JSON string literal.

    ``\\uXXXX`` escapes are UTF-16 code units; surrogate pairs are merged
    back into a single character.
    """
    decoded = raw.replace("\\n", "\n").replace('\\"', '"').replace("\\\\", "\\")
    decoded = _UNICODE_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), decoded)
    return decoded.encode("utf-16", "surrogatepass").decode("utf-16", "replace")


def _is_platform_url(url: str) -> bool:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    return host in PLATFORM_HOSTS


def extract_platform_text(url: str, html: str) -> ExtractionResult | None:
    """Pull a post's full text out of the page's embedded JSON, if present."""
    if not _is_platform_url(url):
        return None
    match = _FULL_TEXT_RE.search(html or "")
    if not match:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", decode_json_string(match.group(1))).strip()
    if not cleaned:
        return None
    return ExtractionResult(title=PLATFORM_TITLE, text=cleaned)


class ArticleExtractor:
    """URL in, ``ExtractionResult`` out; identical for every transport."""

    def __init__(
        self,
        capability: ReadabilityCapability,
        fetcher: Fetcher | None = None,
    ) -> None:
        self._capability = capability
        self._fetcher = fetcher or RequestsFetcher()

    @property
    def fetcher(self) -> Fetcher:
        return self._fetcher

    def extract(
        self,
        url: str,
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        target = validate_url(url)
        response = self._fetcher.fetch(target, cancel_event)
        if not response.ok:
            raise UpstreamFetchFailure(response.status_code)
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled()

        shortcut = extract_platform_text(target, response.text)
        if shortcut is not None:
            logger.debug("Used embedded post text for %s", target)
            return shortcut
        return self.extract_from_html(response.text, target)

    def extract_from_html(self, html: str, url: str) -> ExtractionResult:
        try:
            article = self._capability.parse(html, url)
        except Exception as exc:
            logger.warning("Readability failed for %s: %s", url, exc)
            raise ExtractionFailure() from exc
        text = (article.text_content or "").strip() if article is not None else ""
        if not text:
            raise ExtractionFailure()
        title = (article.title or "").strip() if article is not None else ""
        return ExtractionResult(title=title, text=text)
