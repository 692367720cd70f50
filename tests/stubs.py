from __future__ import annotations

import threading
from dataclasses import dataclass, field

from speedread.capability import Article
from speedread.fetching import FetchResponse


@dataclass
class StubFetcher:
    pages: dict[str, FetchResponse] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    error: Exception | None = None

    def add(self, url: str, text: str, status_code: int = 200) -> None:
        self.pages[url] = FetchResponse(url=url, status_code=status_code, text=text)

    def fetch(self, url: str, cancel_event: threading.Event | None = None) -> FetchResponse:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        try:
            return self.pages[url]
        except KeyError:
            return FetchResponse(url=url, status_code=404, text="")


@dataclass
class StubCapability:
    article: Article | None = None
    error: Exception | None = None
    calls: list[tuple[str, str]] = field(default_factory=list)

    def parse(self, html: str, url: str) -> Article | None:
        self.calls.append((html, url))
        if self.error is not None:
            raise self.error
        return self.article
