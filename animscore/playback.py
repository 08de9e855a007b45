"""FrameLoop: Real-time host that ticks an AnimatedScore at its framerate."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from animscore.animated_score import AnimatedScore
from animscore.viewport import PlaybackState, VisibleFrame

logger = logging.getLogger(__name__)


class FrameLoop:
    """
    Drives ``AnimatedScore.update_and_draw`` from a monotonic clock.

    Ticks never overlap: a tick requested while another one is running
    raises RuntimeError. The loop ends as soon as the score leaves the
    playing state, whether through ``pause()``, ``stop()`` or the end of
    the timeline.

    Usage:

        loop = FrameLoop(score)
        loop.run()
    """

    def __init__(
        self,
        score: AnimatedScore,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Args:
            score: Score to drive. Its config's framerate sets the tick rate.
            clock: Seconds from an arbitrary origin; must never go backwards.
            sleep: Blocks for the given number of seconds.
        """
        self.score = score
        self.interval = 1.0 / score.config.framerate
        self._clock = clock
        self._sleep = sleep
        self._last_tick: float | None = None
        self._in_tick = False

    def tick(self) -> VisibleFrame:
        """Advance the score by the time elapsed since the previous tick."""
        if self._in_tick:
            raise RuntimeError("FrameLoop.tick() called while a tick is still running.")

        self._in_tick = True
        try:
            now = self._clock()
            delta_ms = 0.0 if self._last_tick is None else (now - self._last_tick) * 1000.0
            self._last_tick = now
            return self.score.update_and_draw(delta_ms)
        finally:
            self._in_tick = False

    def run(self, max_seconds: float | None = None) -> int:
        """
        Start playback and tick until it stops or pauses.

        Args:
            max_seconds: Pause playback after this much wall-clock time.

        Returns:
            Number of ticks performed.
        """
        self.score.start()
        started = self._clock()
        self._last_tick = started
        deadline = started
        ticks = 0

        while self.score.state is PlaybackState.PLAYING:
            deadline += self.interval
            wait = deadline - self._clock()
            if wait > 0:
                self._sleep(wait)
            self.tick()
            ticks += 1

            if max_seconds is not None and self._clock() - started >= max_seconds:
                self.score.pause()

        logger.info("Frame loop ended after %d tick(s) in state %s", ticks, self.score.state.value)
        return ticks
