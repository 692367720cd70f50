from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Protocol, Sequence

from .tokenizer import ends_with_pause, strip_text, take_chunk, tokenize

__all__ = [
    "DEFAULT_SPEED_WPM",
    "AsyncioTicker",
    "ManualTicker",
    "PlaybackConfig",
    "PlaybackScheduler",
    "PlaybackState",
    "ScheduledTask",
    "StartResult",
    "Ticker",
    "compute_delay_ms",
]

logger = logging.getLogger(__name__)

DEFAULT_SPEED_WPM = 300
MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 3
EMPTY_TEXT_MESSAGE = "Paste some text first!"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Ticker(Protocol):
    """Anything that can run ``callback`` once after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioTicker:
    """Ticker backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)


@dataclass(eq=False)
class _ManualHandle:
    due: float
    delay: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTicker:
    """
    Deterministic virtual clock.

    Timers only fire when the owner calls :meth:`run_next` or :meth:`advance`,
    which keeps playback reproducible in tests and offline renders.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        delay = max(0.0, delay)
        handle = _ManualHandle(due=self.now + delay, delay=delay, callback=callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def _discard_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)

    @property
    def pending(self) -> list[_ManualHandle]:
        return [entry[2] for entry in sorted(self._queue) if not entry[2].cancelled]

    def run_next(self) -> float | None:
        """Fire the earliest live timer; return its delay in seconds."""
        self._discard_cancelled()
        if not self._queue:
            return None
        due, _, handle = heapq.heappop(self._queue)
        self.now = max(self.now, due)
        handle.callback()
        return handle.delay

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that comes due."""
        target = self.now + max(0.0, seconds)
        fired = 0
        while True:
            self._discard_cancelled()
            if not self._queue or self._queue[0][0] > target:
                break
            self.run_next()
            fired += 1
        self.now = target
        return fired


class ScheduledTask:
    """
    Single-owner handle around one pending timer.

    Arming always cancels the previous timer first, so at most one callback
    is ever outstanding for the owner.
    """

    def __init__(self, ticker: Ticker) -> None:
        self._ticker = ticker
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, delay_ms: float, callback: Callable[[], None]) -> None:
        self.cancel()
        handle: TimerHandle | None = None

        def fire() -> None:
            if self._handle is not handle:
                return
            self._handle = None
            callback()

        handle = self._ticker.call_later(max(0.0, delay_ms) / 1000.0, fire)
        self._handle = handle

    def cancel(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()


def _normalize_chunk_size(value: object) -> int:
    try:
        size = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return MIN_CHUNK_SIZE
    return max(MIN_CHUNK_SIZE, min(MAX_CHUNK_SIZE, size))


def _effective_speed(speed_wpm: float | None) -> float:
    if not speed_wpm or speed_wpm <= 0:
        return float(DEFAULT_SPEED_WPM)
    return float(speed_wpm)


@dataclass(frozen=True)
class PlaybackConfig:
    speed_wpm: float = DEFAULT_SPEED_WPM
    chunk_size: int = 1
    pause_seconds: float = 0.25

    def normalized(self) -> "PlaybackConfig":
        return PlaybackConfig(
            speed_wpm=_effective_speed(self.speed_wpm),
            chunk_size=_normalize_chunk_size(self.chunk_size),
            pause_seconds=max(0.0, float(self.pause_seconds or 0.0)),
        )


def compute_delay_ms(
    chunk: Sequence[str],
    speed_wpm: float | None,
    pause_seconds: float | None = 0.0,
) -> float:
    """Milliseconds a chunk stays on screen before the next one."""
    delay = 60000.0 / _effective_speed(speed_wpm)
    if ends_with_pause(chunk):
        delay += float(pause_seconds or 0.0) * 1000.0
    return max(0.0, delay)


@dataclass
class PlaybackState:
    tokens: list[str] = field(default_factory=list)
    cursor: int = 0
    speed_wpm: float = DEFAULT_SPEED_WPM
    chunk_size: int = 1
    pause_seconds: float = 0.25
    running: bool = False
    paused: bool = False

    @property
    def status(self) -> str:
        if not self.running:
            return "idle"
        return "paused" if self.paused else "running"

    @property
    def remaining(self) -> int:
        return max(0, len(self.tokens) - self.cursor)


@dataclass(frozen=True)
class StartResult:
    ok: bool
    message: str | None = None


class PlaybackScheduler:
    """
    Timed RSVP presentation over a token list.

    The scheduler is the only writer of its :class:`PlaybackState`. Chunks
    are pushed to ``on_chunk``; an empty list means the display was cleared.
    """

    def __init__(
        self,
        config: PlaybackConfig | None = None,
        *,
        ticker: Ticker | None = None,
        on_chunk: Callable[[list[str]], None] | None = None,
        on_state: Callable[[PlaybackState], None] | None = None,
        on_finish: Callable[[], None] | None = None,
    ) -> None:
        config = (config or PlaybackConfig()).normalized()
        self._state = PlaybackState(
            speed_wpm=config.speed_wpm,
            chunk_size=config.chunk_size,
            pause_seconds=config.pause_seconds,
        )
        self._task = ScheduledTask(ticker or AsyncioTicker())
        self._current: list[str] = []
        self._on_chunk = on_chunk
        self._on_state = on_state
        self._on_finish = on_finish

    @property
    def state(self) -> PlaybackState:
        return self.snapshot()

    @property
    def current_chunk(self) -> list[str]:
        return list(self._current)

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def timer_pending(self) -> bool:
        return self._task.pending

    def snapshot(self) -> PlaybackState:
        return replace(self._state, tokens=list(self._state.tokens))

    def start(self, text: str, config: PlaybackConfig | None = None) -> StartResult:
        trimmed = strip_text(text)
        if not trimmed:
            return StartResult(ok=False, message=EMPTY_TEXT_MESSAGE)
        if config is not None:
            self._apply_config(config.speed_wpm, config.chunk_size, config.pause_seconds)

        state = self._state
        if not state.running:
            state.tokens = tokenize(trimmed)
            state.cursor = 0
            logger.debug("Starting playback with %d tokens", len(state.tokens))
        state.running = True
        state.paused = False
        self._notify_state()
        self.advance()
        return StartResult(ok=True)

    def advance(self) -> None:
        state = self._state
        if not state.running or state.paused:
            return
        if state.cursor >= len(state.tokens):
            logger.debug("Playback reached the end of %d tokens", len(state.tokens))
            self._reset()
            if self._on_finish is not None:
                self._on_finish()
            return

        chunk = take_chunk(state.tokens, state.cursor, state.chunk_size)
        state.cursor += len(chunk)
        self._current = chunk
        delay = compute_delay_ms(chunk, state.speed_wpm, state.pause_seconds)
        self._task.arm(delay, self.advance)
        self._emit_chunk(chunk)

    def pause(self) -> bool:
        state = self._state
        if not state.running or state.paused:
            return False
        state.paused = True
        self._task.cancel()
        self._notify_state()
        return True

    def resume(self) -> bool:
        state = self._state
        if not state.running or not state.paused:
            return False
        state.paused = False
        self._notify_state()
        self.advance()
        return True

    def toggle_pause(self) -> bool:
        """Pause when playing, resume when paused. Returns the new paused flag."""
        if not self._state.running:
            return False
        if self._state.paused:
            self.resume()
        else:
            self.pause()
        return self._state.paused

    def stop(self) -> None:
        self._reset()

    def update_config(
        self,
        speed_wpm: float | None = None,
        chunk_size: int | None = None,
        pause_seconds: float | None = None,
    ) -> None:
        self._apply_config(speed_wpm, chunk_size, pause_seconds)
        state = self._state
        if state.running and not state.paused:
            self._task.cancel()
            self.advance()

    def close(self) -> None:
        self._task.cancel()
        self._on_chunk = None
        self._on_state = None
        self._on_finish = None
        self._current = []
        self._state.tokens = []
        self._state.cursor = 0
        self._state.running = False
        self._state.paused = False

    def _apply_config(
        self,
        speed_wpm: float | None,
        chunk_size: int | None,
        pause_seconds: float | None,
    ) -> None:
        state = self._state
        if speed_wpm is not None:
            state.speed_wpm = _effective_speed(speed_wpm)
        if chunk_size is not None:
            state.chunk_size = _normalize_chunk_size(chunk_size)
        if pause_seconds is not None:
            state.pause_seconds = max(0.0, float(pause_seconds))

    def _reset(self) -> None:
        self._task.cancel()
        state = self._state
        state.tokens = []
        state.cursor = 0
        state.running = False
        state.paused = False
        self._current = []
        self._emit_chunk([])
        self._notify_state()

    def _emit_chunk(self, chunk: list[str]) -> None:
        if self._on_chunk is not None:
            self._on_chunk(list(chunk))

    def _notify_state(self) -> None:
        if self._on_state is not None:
            self._on_state(self.snapshot())
