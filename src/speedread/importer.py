from __future__ import annotations

import asyncio
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .errors import (
    CORS_BLOCKED_MESSAGE,
    URL_SCHEME_MESSAGE,
    Cancelled,
    ExtractionError,
    InvalidInput,
    NetworkFailure,
)
from .extraction import ArticleExtractor, ExtractionResult
from .scheduler import AsyncioTicker, ScheduledTask, Ticker

__all__ = [
    "DEBOUNCE_MS",
    "ArticleImporter",
    "UrlFetchStatus",
    "load_text_file",
]

logger = logging.getLogger(__name__)

DEBOUNCE_MS = 600
LOADING_MESSAGE = "Fetching article…"
SUCCESS_MESSAGE = "Article loaded."
FALLBACK_ERROR_MESSAGE = "Failed to fetch this URL. Check CORS or try again."
UNSUPPORTED_FILE_MESSAGE = "Please drop a plain text file (.txt)"
_HTTP_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class UrlFetchStatus:
    state: str = "idle"
    message: str = ""

    @property
    def loading(self) -> bool:
        return self.state == "loading"


IDLE = UrlFetchStatus()


def load_text_file(path: Path | str, content_type: str | None = None) -> str:
    """Read a dropped file; only ``.txt`` / ``text/plain`` is accepted."""
    path = Path(path)
    is_plain = (content_type or "").split(";")[0].strip().lower() == "text/plain"
    if not is_plain and path.suffix.lower() != ".txt":
        raise InvalidInput(UNSUPPORTED_FILE_MESSAGE)
    try:
        return path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        raise InvalidInput(f"Error reading file: {exc.strerror or exc}") from exc


def _error_message(exc: Exception) -> str:
    if isinstance(exc, NetworkFailure) and exc.cors_likely:
        return CORS_BLOCKED_MESSAGE
    if isinstance(exc, ExtractionError):
        return exc.message or FALLBACK_ERROR_MESSAGE
    return str(exc) or FALLBACK_ERROR_MESSAGE


class ArticleImporter:
    """
    URL box behaviour: wait for typing to settle, then fetch in the background.

    Each fetch gets a generation number and a cancellation event. Starting a
    new fetch sets the previous event, and results are only applied while
    their generation is still the latest, so the last submitted URL wins.
    """

    def __init__(
        self,
        extractor: ArticleExtractor,
        *,
        ticker: Ticker | None = None,
        debounce_ms: float = DEBOUNCE_MS,
        on_status: Callable[[UrlFetchStatus], None] | None = None,
        on_result: Callable[[ExtractionResult], None] | None = None,
        on_start: Callable[[str], None] | None = None,
    ) -> None:
        self._extractor = extractor
        self._debounce = ScheduledTask(ticker or AsyncioTicker())
        self.debounce_ms = debounce_ms
        self._on_status = on_status
        self._on_result = on_result
        self._on_start = on_start
        self._status = IDLE
        self._generation = 0
        self._inflight: threading.Event | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def status(self) -> UrlFetchStatus:
        return self._status

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    @property
    def debounce_pending(self) -> bool:
        return self._debounce.pending

    def submit(self, url: str) -> None:
        """Register a keystroke in the URL box."""
        self._set_status(IDLE)
        trimmed = (url or "").strip()
        if not trimmed:
            self._debounce.cancel()
            return
        self._debounce.arm(self.debounce_ms, lambda: self.import_now(trimmed))

    def import_now(self, url: str) -> asyncio.Task[None] | None:
        """Supersede any running fetch and start one for ``url``."""
        self._debounce.cancel()
        self._cancel_inflight()
        self._generation += 1
        generation = self._generation
        trimmed = (url or "").strip()

        if not trimmed:
            self._set_status(IDLE)
            return None
        if not _HTTP_PREFIX_RE.match(trimmed):
            self._set_status(UrlFetchStatus("error", URL_SCHEME_MESSAGE))
            return None

        if self._on_start is not None:
            self._on_start(trimmed)
        cancel_event = threading.Event()
        self._inflight = cancel_event
        self._set_status(UrlFetchStatus("loading", LOADING_MESSAGE))
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(trimmed, generation, cancel_event))
        return self._task

    def reset(self) -> None:
        """Drop any pending or running import and go back to idle."""
        self._debounce.cancel()
        self._cancel_inflight()
        self._generation += 1
        self._set_status(IDLE)

    def close(self) -> None:
        self._debounce.cancel()
        self._cancel_inflight()
        self._generation += 1
        self._on_status = None
        self._on_result = None
        self._on_start = None

    def _is_current(self, generation: int, cancel_event: threading.Event) -> bool:
        return generation == self._generation and not cancel_event.is_set()

    async def _run(self, url: str, generation: int, cancel_event: threading.Event) -> None:
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self._extractor.extract, url, cancel_event)
        except Cancelled:
            logger.debug("Discarded superseded fetch for %s", url)
            return
        except Exception as exc:
            if not self._is_current(generation, cancel_event):
                return
            logger.debug("Import of %s failed: %s", url, exc)
            self._set_status(UrlFetchStatus("error", _error_message(exc)))
            return
        finally:
            if self._inflight is cancel_event and generation == self._generation:
                self._inflight = None

        if generation != self._generation or cancel_event.is_set():
            logger.debug("Discarded stale result for %s", url)
            return
        self._set_status(UrlFetchStatus("success", SUCCESS_MESSAGE))
        if self._on_result is not None:
            self._on_result(result)

    def _cancel_inflight(self) -> None:
        if self._inflight is not None:
            self._inflight.set()
            self._inflight = None

    def _set_status(self, status: UrlFetchStatus) -> None:
        self._status = status
        if self._on_status is not None:
            self._on_status(status)
