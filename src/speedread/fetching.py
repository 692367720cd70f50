from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol

import requests
from bs4 import UnicodeDammit

from .errors import Cancelled, NetworkFailure

__all__ = [
    "DEFAULT_ACCEPT",
    "DEFAULT_USER_AGENT",
    "FetchResponse",
    "Fetcher",
    "RequestsFetcher",
]

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (RSVP Speed Reader)"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml"
DEFAULT_TIMEOUT = 20.0
_READ_CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True)
class FetchResponse:
    url: str
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Fetcher(Protocol):
    def fetch(self, url: str, cancel_event: threading.Event | None = None) -> FetchResponse: ...


def _declared_charset(response: requests.Response) -> str | None:
    content_type = response.headers.get("Content-Type", "")
    if "charset=" not in content_type.lower():
        return None
    return response.encoding


def _decode_body(content: bytes, declared: str | None) -> str:
    if not content:
        return ""
    dammit = UnicodeDammit(content, [declared] if declared else [], is_html=True)
    if dammit.unicode_markup is not None:
        return dammit.unicode_markup
    return content.decode("utf-8", errors="replace")


def _raise_if_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise Cancelled()


class RequestsFetcher:
    """
    GET a page with requests, honouring a cancellation event.

    The body is streamed so a superseded request stops reading as soon as
    its event is set instead of running to completion.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        accept: str = DEFAULT_ACCEPT,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.accept = accept
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": self.accept}

    def fetch(self, url: str, cancel_event: threading.Event | None = None) -> FetchResponse:
        _raise_if_cancelled(cancel_event)
        try:
            response = self._session.get(
                url,
                headers=self.headers,
                timeout=self.timeout,
                stream=True,
            )
        except requests.Timeout as exc:
            raise NetworkFailure(f"Timed out fetching {url}.") from exc
        except requests.RequestException as exc:
            logger.debug("Request to %s failed: %s", url, exc)
            raise NetworkFailure(cors_likely=True) from exc

        try:
            _raise_if_cancelled(cancel_event)
            if not response.ok:
                return FetchResponse(url=url, status_code=response.status_code, text="")
            parts: list[bytes] = []
            try:
                for block in response.iter_content(chunk_size=_READ_CHUNK_BYTES):
                    _raise_if_cancelled(cancel_event)
                    if block:
                        parts.append(block)
            except requests.RequestException as exc:
                raise NetworkFailure(cors_likely=True) from exc
            _raise_if_cancelled(cancel_event)
            text = _decode_body(b"".join(parts), _declared_charset(response))
            return FetchResponse(url=url, status_code=response.status_code, text=text)
        finally:
            response.close()

    def close(self) -> None:
        self._session.close()
