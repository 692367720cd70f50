from __future__ import annotations

import asyncio
from typing import Sequence

from rich.cells import cell_len
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .extraction import ArticleExtractor
from .importer import UrlFetchStatus
from .orp import split_orp
from .scheduler import PlaybackConfig, PlaybackScheduler, StartResult
from .session import ReaderSession

__all__ = ["TerminalDisplay", "aligned_chunk", "play_text", "play_url", "render_chunk"]

PIVOT_STYLE = "bold red"


def render_chunk(chunk: Sequence[str], *, pivot_style: str = PIVOT_STYLE) -> Text:
    text = Text(no_wrap=True)
    for index, token in enumerate(chunk):
        slices = split_orp(token)
        text.append(slices.left)
        text.append(slices.pivot, style=pivot_style)
        text.append(slices.right)
        if index < len(chunk) - 1:
            text.append(" ")
    return text


def aligned_chunk(chunk: Sequence[str], width: int, *, pivot_style: str = PIVOT_STYLE) -> Text:
    """Pad the chunk so the first token's pivot sits on the centre column."""
    rendered = render_chunk(chunk, pivot_style=pivot_style)
    if not chunk:
        return rendered
    first = split_orp(chunk[0])
    if first.has_pivot:
        offset = width // 2 - cell_len(first.left) - cell_len(first.pivot) // 2
    else:
        # Nothing to align on; centre the whole chunk.
        offset = (width - cell_len(rendered.plain)) // 2
    if offset > 0:
        rendered = Text(" " * offset, no_wrap=True) + rendered
    return rendered


class TerminalDisplay:
    """Focus box drawn with rich.Live; ``show`` is the scheduler's chunk callback."""

    def __init__(self, console: Console | None = None, *, title: str = "", width: int = 60) -> None:
        self.console = console or Console()
        self.title = title
        self.width = width
        self._chunk: list[str] = []
        self._status = ""
        self._live: Live | None = None

    def __enter__(self) -> "TerminalDisplay":
        self._live = Live(self._renderable(), console=self.console, auto_refresh=False, transient=True)
        self._live.__enter__()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._live is not None:
            self._live.__exit__(*exc_info)
            self._live = None

    def show(self, chunk: list[str]) -> None:
        self._chunk = list(chunk)
        self._refresh()

    def set_status(self, status: UrlFetchStatus) -> None:
        self._status = status.message
        self._refresh()

    def _renderable(self) -> Panel:
        body = aligned_chunk(self._chunk, self.width - 4)
        parts: list[Text] = [body]
        if self._status:
            parts.append(Text(self._status, style="dim"))
        return Panel(Group(*parts), title=self.title or None, width=self.width)

    def _refresh(self) -> None:
        if self._live is not None:
            self._live.update(self._renderable(), refresh=True)


async def play_text(
    text: str,
    config: PlaybackConfig,
    *,
    console: Console | None = None,
    title: str = "",
) -> StartResult:
    done = asyncio.Event()
    display = TerminalDisplay(console, title=title)
    scheduler = PlaybackScheduler(config, on_chunk=display.show, on_finish=done.set)
    try:
        with display:
            result = scheduler.start(text)
            if result.ok:
                await done.wait()
            return result
    finally:
        scheduler.close()


async def play_url(
    url: str,
    extractor: ArticleExtractor,
    config: PlaybackConfig,
    *,
    console: Console | None = None,
) -> StartResult:
    done = asyncio.Event()
    display = TerminalDisplay(console)
    session = ReaderSession(
        extractor,
        config,
        on_chunk=display.show,
        on_status=display.set_status,
        on_finish=done.set,
    )
    try:
        task = session.importer.import_now(url)
        if task is not None:
            await task
        status = session.fetch_status
        if status.state == "error":
            return StartResult(ok=False, message=status.message)
        display.title = session.title
        with display:
            result = session.start()
            if result.ok:
                await done.wait()
        return result
    finally:
        session.close()
