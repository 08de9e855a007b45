"""Unit tests for the real-time frame loop, driven by a fake clock."""

import pytest

from animscore.animated_score import AnimatedScore
from animscore.playback import FrameLoop
from animscore.renderers import GlyphProvider, SvgRenderer
from animscore.score_models import NoteEvent
from animscore.viewport import PlaybackState


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class _NoGlyphs(GlyphProvider):
    def resolve(self, name: str) -> str | None:
        return None


def _score(framerate: float = 50.0) -> AnimatedScore:
    score = AnimatedScore(
        {"containerId": "staff", "framerate": framerate},
        containers={"staff": 800},
        glyphs=_NoGlyphs(),
    )
    # Four quarter notes from x=400 to x=700; the last leaves the canvas after 3.55 s.
    score.set_music_actions([NoteEvent(0, 3, 16)] * 4)
    return score


def test_run_plays_until_the_timeline_ends() -> None:
    clock = _FakeClock()
    loop = FrameLoop(_score(), clock=clock, sleep=clock.sleep)

    ticks = loop.run()

    assert loop.score.state is PlaybackState.STOPPED
    assert 175 <= ticks <= 180
    assert all(s == pytest.approx(0.02) for s in clock.sleeps)


def test_run_pauses_after_max_seconds() -> None:
    clock = _FakeClock()
    loop = FrameLoop(_score(), clock=clock, sleep=clock.sleep)

    ticks = loop.run(max_seconds=1.0)

    assert loop.score.state is PlaybackState.PAUSED
    assert ticks == pytest.approx(50, abs=1)
    assert loop.score.scheduler.elapsed_ms == pytest.approx(ticks * 20.0)


def test_tick_uses_time_since_previous_tick() -> None:
    clock = _FakeClock()
    score = _score()
    loop = FrameLoop(score, clock=clock, sleep=clock.sleep)
    score.start()

    assert loop.tick().elapsed_ms == 0.0
    clock.now += 0.25
    frame = loop.tick()
    assert frame.elapsed_ms == pytest.approx(250.0)
    assert frame.dx == pytest.approx(50.0)


def test_overlapping_ticks_are_refused() -> None:
    clock = _FakeClock()
    score = _score()
    loop = FrameLoop(score, clock=clock, sleep=clock.sleep)

    class _ReentrantRenderer(SvgRenderer):
        def clear_region(self, x: float, y: float, w: float, h: float) -> None:
            loop.tick()

    score.renderer = _ReentrantRenderer(score.width, score.height)
    score.start()

    with pytest.raises(RuntimeError):
        loop.tick()

    # The guard is released after the failed tick.
    score.renderer = SvgRenderer(score.width, score.height)
    loop.tick()
