from __future__ import annotations

from pathlib import Path
from typing import Callable

from .extraction import ArticleExtractor, ExtractionResult
from .importer import ArticleImporter, UrlFetchStatus, load_text_file
from .scheduler import PlaybackConfig, PlaybackScheduler, PlaybackState, StartResult, Ticker
from .tokenizer import strip_text

__all__ = ["STILL_FETCHING_MESSAGE", "ReaderSession"]

STILL_FETCHING_MESSAGE = "Still fetching the article, please wait."


class ReaderSession:
    """One reader: the text box, the URL import box and the playback engine."""

    def __init__(
        self,
        extractor: ArticleExtractor,
        config: PlaybackConfig | None = None,
        *,
        ticker: Ticker | None = None,
        on_chunk: Callable[[list[str]], None] | None = None,
        on_state: Callable[[PlaybackState], None] | None = None,
        on_status: Callable[[UrlFetchStatus], None] | None = None,
        on_finish: Callable[[], None] | None = None,
    ) -> None:
        self.text = ""
        self.title = ""
        self._on_status = on_status
        self.scheduler = PlaybackScheduler(
            config,
            ticker=ticker,
            on_chunk=on_chunk,
            on_state=on_state,
            on_finish=on_finish,
        )
        self.importer = ArticleImporter(
            extractor,
            ticker=ticker,
            on_status=self._status_changed,
            on_result=self._article_loaded,
            on_start=self._import_started,
        )

    @property
    def fetch_status(self) -> UrlFetchStatus:
        return self.importer.status

    def set_text(self, text: str) -> None:
        """Replace the text as if it had been pasted."""
        self.importer.reset()
        self.scheduler.stop()
        self.text = text or ""
        self.title = ""

    def load_file(self, path: Path | str, content_type: str | None = None) -> None:
        self.set_text(load_text_file(path, content_type))

    def submit_url(self, url: str) -> None:
        self.importer.submit(url)

    def start(self) -> StartResult:
        if not strip_text(self.text) and self.importer.status.loading:
            return StartResult(ok=False, message=STILL_FETCHING_MESSAGE)
        return self.scheduler.start(self.text)

    def toggle_pause(self) -> bool:
        return self.scheduler.toggle_pause()

    def stop(self) -> None:
        self.scheduler.stop()

    def update_config(
        self,
        speed_wpm: float | None = None,
        chunk_size: int | None = None,
        pause_seconds: float | None = None,
    ) -> None:
        self.scheduler.update_config(speed_wpm, chunk_size, pause_seconds)

    def close(self) -> None:
        self.importer.close()
        self.scheduler.close()

    def _import_started(self, url: str) -> None:
        self.text = ""
        self.title = ""
        if self.scheduler.running:
            self.scheduler.stop()

    def _article_loaded(self, result: ExtractionResult) -> None:
        self.text = result.text
        self.title = result.title

    def _status_changed(self, status: UrlFetchStatus) -> None:
        if status.state == "error":
            self.title = ""
        if self._on_status is not None:
            self._on_status(status)
