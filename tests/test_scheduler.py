from __future__ import annotations

import asyncio

import pytest

from speedread.scheduler import (
    AsyncioTicker,
    ManualTicker,
    PlaybackConfig,
    PlaybackScheduler,
    ScheduledTask,
    compute_delay_ms,
)


class _Recorder:
    def __init__(self) -> None:
        self.chunks: list[list[str]] = []
        self.finished = 0

    def on_chunk(self, chunk: list[str]) -> None:
        self.chunks.append(chunk)

    def on_finish(self) -> None:
        self.finished += 1

    @property
    def shown(self) -> list[list[str]]:
        return [chunk for chunk in self.chunks if chunk]


def _scheduler(
    config: PlaybackConfig | None = None,
) -> tuple[PlaybackScheduler, ManualTicker, _Recorder]:
    ticker = ManualTicker()
    recorder = _Recorder()
    scheduler = PlaybackScheduler(
        config,
        ticker=ticker,
        on_chunk=recorder.on_chunk,
        on_finish=recorder.on_finish,
    )
    return scheduler, ticker, recorder


def test_chunks_are_presented_in_order_then_auto_stop() -> None:
    scheduler, ticker, recorder = _scheduler(PlaybackConfig(chunk_size=2))

    result = scheduler.start("a b c d e")

    assert result.ok
    assert recorder.chunks == [["a", "b"]]
    while ticker.run_next() is not None:
        pass
    assert recorder.chunks == [["a", "b"], ["c", "d"], ["e"], []]
    assert recorder.finished == 1
    state = scheduler.state
    assert state.status == "idle"
    assert state.tokens == []
    assert state.cursor == 0
    assert ticker.pending == []


def test_cursor_advances_by_tokens_actually_taken() -> None:
    scheduler, ticker, _ = _scheduler(PlaybackConfig(chunk_size=3))
    scheduler.start("a b c d")
    ticker.run_next()
    assert scheduler.state.cursor == 4
    assert scheduler.current_chunk == ["d"]


def test_blank_text_is_reported_not_raised() -> None:
    scheduler, ticker, recorder = _scheduler()
    result = scheduler.start("   \n ")
    assert not result.ok
    assert result.message == "Paste some text first!"
    assert recorder.chunks == []
    assert ticker.pending == []
    assert not scheduler.running


def test_pause_and_resume_neither_repeat_nor_skip() -> None:
    scheduler, ticker, recorder = _scheduler()
    scheduler.start("a b c d")
    ticker.run_next()
    assert recorder.shown[-1] == ["b"]

    assert scheduler.pause()
    assert scheduler.paused
    assert ticker.pending == []
    assert not scheduler.timer_pending
    assert ticker.run_next() is None
    assert scheduler.current_chunk == ["b"]

    assert scheduler.resume()
    assert recorder.shown[-1] == ["c"]
    ticker.run_next()
    ticker.run_next()
    assert recorder.shown == [["a"], ["b"], ["c"], ["d"]]
    assert recorder.finished == 1


def test_toggle_pause_flips_state() -> None:
    scheduler, _, _ = _scheduler()
    assert scheduler.toggle_pause() is False
    scheduler.start("a b c")
    assert scheduler.toggle_pause() is True
    assert scheduler.toggle_pause() is False
    assert scheduler.state.status == "running"


def test_start_while_running_resumes_instead_of_retokenizing() -> None:
    scheduler, _, recorder = _scheduler()
    scheduler.start("a b c d")
    scheduler.pause()

    scheduler.start("x y z")

    assert recorder.shown == [["a"], ["b"]]
    assert scheduler.state.tokens == ["a", "b", "c", "d"]


def test_stop_resets_everything() -> None:
    scheduler, ticker, recorder = _scheduler()
    scheduler.start("a b c d")
    ticker.run_next()

    scheduler.stop()

    assert recorder.chunks[-1] == []
    assert ticker.pending == []
    state = scheduler.state
    assert (state.tokens, state.cursor, state.running, state.paused) == ([], 0, False, False)
    assert recorder.finished == 0

    scheduler.start("x y")
    assert recorder.shown[-1] == ["x"]


def test_delay_includes_punctuation_pause() -> None:
    scheduler, ticker, _ = _scheduler(PlaybackConfig(speed_wpm=300, pause_seconds=0.5))
    scheduler.start("one two. three")

    assert ticker.pending[0].delay == pytest.approx(0.2)
    ticker.run_next()
    assert scheduler.current_chunk == ["two."]
    assert ticker.pending[0].delay == pytest.approx(0.7)
    ticker.run_next()
    assert ticker.pending[0].delay == pytest.approx(0.2)


def test_speed_change_rearms_immediately_with_new_delay() -> None:
    scheduler, ticker, recorder = _scheduler(PlaybackConfig(speed_wpm=300))
    scheduler.start("a b c d")
    in_flight = ticker.pending[0]
    assert in_flight.delay == pytest.approx(0.2)

    scheduler.update_config(speed_wpm=600)

    assert in_flight.cancelled
    assert in_flight.delay == pytest.approx(0.2)
    assert recorder.shown == [["a"], ["b"]]
    assert len(ticker.pending) == 1
    assert ticker.pending[0].delay == pytest.approx(0.1)


def test_config_change_while_paused_waits_for_resume() -> None:
    scheduler, ticker, recorder = _scheduler(PlaybackConfig(speed_wpm=300))
    scheduler.start("a b c d e")
    scheduler.pause()

    scheduler.update_config(speed_wpm=1200, chunk_size=2)

    assert ticker.pending == []
    assert recorder.shown == [["a"]]
    scheduler.resume()
    assert recorder.shown[-1] == ["b", "c"]
    assert ticker.pending[0].delay == pytest.approx(0.05)


def test_only_one_timer_is_ever_pending() -> None:
    scheduler, ticker, _ = _scheduler()
    scheduler.start("a b c d e f")
    for _ in range(3):
        scheduler.update_config(speed_wpm=500)
        assert len(ticker.pending) == 1
    scheduler.pause()
    scheduler.resume()
    assert len(ticker.pending) == 1


def test_close_cancels_timer_and_silences_callbacks() -> None:
    scheduler, ticker, recorder = _scheduler()
    scheduler.start("a b c")
    scheduler.close()
    assert ticker.pending == []
    assert ticker.run_next() is None
    assert recorder.chunks == [["a"]]
    assert not scheduler.running


def test_compute_delay_ms() -> None:
    assert compute_delay_ms(["word"], 300, 0.25) == pytest.approx(200.0)
    assert compute_delay_ms(["end."], 300, 0.25) == pytest.approx(450.0)
    assert compute_delay_ms(["終わり。"], 600, 1) == pytest.approx(1100.0)
    assert compute_delay_ms(["word"], 0, 0.25) == pytest.approx(200.0)
    assert compute_delay_ms(["word"], None) == pytest.approx(200.0)
    assert compute_delay_ms(["word"], 7) == pytest.approx(60000 / 7)
    assert compute_delay_ms(["end."], 300, -5) == 0.0


def test_playback_config_normalization() -> None:
    config = PlaybackConfig(speed_wpm=0, chunk_size=7, pause_seconds=-1).normalized()
    assert config == PlaybackConfig(speed_wpm=300.0, chunk_size=3, pause_seconds=0.0)
    assert PlaybackConfig(chunk_size=0).normalized().chunk_size == 1


def test_scheduled_task_keeps_single_handle() -> None:
    ticker = ManualTicker()
    task = ScheduledTask(ticker)
    fired: list[str] = []

    task.arm(100, lambda: fired.append("first"))
    task.arm(50, lambda: fired.append("second"))

    assert len(ticker.pending) == 1
    assert ticker.advance(1.0) == 1
    assert fired == ["second"]
    assert not task.pending


def test_manual_ticker_advance_fires_due_timers_in_order() -> None:
    ticker = ManualTicker()
    fired: list[int] = []
    ticker.call_later(0.3, lambda: fired.append(3))
    ticker.call_later(0.1, lambda: fired.append(1))
    ticker.call_later(0.2, lambda: fired.append(2))

    assert ticker.advance(0.25) == 2
    assert fired == [1, 2]
    assert ticker.now == pytest.approx(0.25)
    ticker.advance(1)
    assert fired == [1, 2, 3]


def test_asyncio_ticker_plays_to_completion() -> None:
    async def scenario() -> list[list[str]]:
        done = asyncio.Event()
        chunks: list[list[str]] = []
        scheduler = PlaybackScheduler(
            PlaybackConfig(speed_wpm=3000, pause_seconds=0),
            ticker=AsyncioTicker(),
            on_chunk=chunks.append,
            on_finish=done.set,
        )
        scheduler.start("one two three")
        await asyncio.wait_for(done.wait(), timeout=5)
        return chunks

    assert asyncio.run(scenario()) == [["one"], ["two"], ["three"], []]


def test_byte_order_mark_never_becomes_a_chunk() -> None:
    scheduler, _, recorder = _scheduler(PlaybackConfig(chunk_size=2))
    assert scheduler.start("\ufeffHello world").ok
    assert scheduler.state.tokens == ["Hello", "world"]
    assert recorder.chunks == [["Hello", "world"]]

    scheduler.stop()
    result = scheduler.start("\ufeff \n")
    assert not result.ok
    assert result.message == "Paste some text first!"
