"""ViewportScheduler: Time-driven scrolling and incremental visibility windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

import numpy as np

from animscore.score_models import Clef, NoteView, Segment, Timeline
from animscore.symbol_resolver import render_view

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class VisibleFrame:
    """
    Everything on screen after a tick, in timeline coordinates.

    The renderer shifts the drawing by ``-dx`` to place it on the canvas.
    """

    dx: float
    elapsed_ms: float
    notes: tuple[NoteView, ...]
    stems: tuple[Segment, ...]
    beams: tuple[Segment, ...]
    clef: Clef | None
    state: PlaybackState


class ViewportScheduler:
    """
    Advances the scroll offset and tracks which elements are on screen.

    Notes, stems and beam segments each have a ``[first, last)`` window over
    their x-sorted list, and the clef regions have a single index. Every
    cursor only moves forward while playing, so a whole playback costs time
    proportional to the number of elements rather than ticks × elements.

    An element enters when its left edge is inside the right edge of the
    canvas, and leaves once its right edge is more than ``LEFT_MARGIN``
    pixels past the left edge.

    Beam segments are ordered by their left edge, so a long beam at the
    front of the window can hold the cursor back while shorter segments
    behind it have already left. Those are dropped from the frame.
    """

    LEFT_MARGIN = 10.0
    BEAM_ADMIT_PER_TICK = 4

    def __init__(
        self,
        timeline: Timeline,
        *,
        canvas_width: float,
        playing_velocity: float,
    ) -> None:
        """
        Args:
            timeline:         Laid-out score to scroll through.
            canvas_width:     Visible width in pixels.
            playing_velocity: Scroll speed in pixels per second.
        """
        self.timeline = timeline
        self.canvas_width = canvas_width
        self.playing_velocity = playing_velocity
        self.state = PlaybackState.STOPPED

        self._views = [render_view(note) for note in timeline.notes]
        self._note_x = np.array([note.x for note in timeline.notes], dtype=float)
        self._stem_x = np.array([stem.x0 for stem in timeline.stems], dtype=float)
        self._beam_x0 = np.array([seg.x0 for seg in timeline.beam_segments], dtype=float)
        self._beam_x1 = np.array([seg.x1 for seg in timeline.beam_segments], dtype=float)

        self._reset()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self.dx = 0.0
        self.elapsed_ms = 0.0
        self._first_note = self._last_note = 0
        self._first_line = self._last_line = 0
        self._first_beam = self._last_beam = 0
        self._clef_index = 0

    def _advance_pair(self, xs: np.ndarray, first: int, last: int) -> tuple[int, int]:
        right = self.dx + self.canvas_width
        left = self.dx - self.LEFT_MARGIN
        while last < len(xs) and xs[last] < right:
            last += 1
        while first < last and xs[first] < left:
            first += 1
        return first, last

    def _advance_beams(self, budget: int | None) -> None:
        right = self.dx + self.canvas_width
        left = self.dx - self.LEFT_MARGIN
        admitted = 0
        while (
            self._last_beam < len(self._beam_x0)
            and self._beam_x0[self._last_beam] < right
            and (budget is None or admitted < budget)
        ):
            self._last_beam += 1
            admitted += 1
        while self._first_beam < self._last_beam and self._beam_x1[self._first_beam] < left:
            self._first_beam += 1

    def _advance_clef(self) -> None:
        regions = self.timeline.clef_regions
        while (
            self._clef_index + 1 < len(regions)
            and regions[self._clef_index + 1].activation_time_ms < self.elapsed_ms
        ):
            self._clef_index += 1

    def _advance_windows(self, beam_budget: int | None) -> None:
        self._first_note, self._last_note = self._advance_pair(
            self._note_x, self._first_note, self._last_note
        )
        self._first_line, self._last_line = self._advance_pair(
            self._stem_x, self._first_line, self._last_line
        )
        self._advance_beams(beam_budget)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def note_window(self) -> tuple[int, int]:
        return self._first_note, self._last_note

    @property
    def line_window(self) -> tuple[int, int]:
        return self._first_line, self._last_line

    @property
    def beam_window(self) -> tuple[int, int]:
        return self._first_beam, self._last_beam

    @property
    def clef_index(self) -> int:
        return self._clef_index

    @property
    def finished(self) -> bool:
        total = len(self._note_x)
        return self._first_note == self._last_note == total

    def start(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            logger.debug("Playback %s -> playing", self.state.value)
            self.state = PlaybackState.PLAYING

    def pause(self) -> None:
        if self.state is PlaybackState.PLAYING:
            logger.debug("Playback paused at %.1f ms", self.elapsed_ms)
            self.state = PlaybackState.PAUSED

    def stop(self) -> None:
        """Stop playback and rewind every cursor to the beginning; the timeline is kept."""
        self.state = PlaybackState.STOPPED
        self._reset()

    def refresh(self) -> None:
        """Recompute the visible windows at the current offset without advancing time."""
        self._advance_windows(beam_budget=None)
        self._advance_clef()

    def tick(self, delta_ms: float) -> VisibleFrame:
        """
        Advance playback by ``delta_ms`` and return what is on screen.

        Does nothing but report the current frame unless playing. Stops
        playback once every note has scrolled past the left edge.
        """
        if self.state is not PlaybackState.PLAYING:
            return self.frame()

        self.dx += self.playing_velocity * delta_ms / 1000.0
        self._advance_windows(beam_budget=self.BEAM_ADMIT_PER_TICK)
        self._advance_clef()
        self.elapsed_ms += delta_ms

        if self.finished:
            frame = self.frame()
            logger.info("Playback finished after %.1f ms", self.elapsed_ms)
            self.stop()
            return replace(frame, state=PlaybackState.STOPPED)
        return self.frame()

    def frame(self) -> VisibleFrame:
        regions = self.timeline.clef_regions
        left = self.dx - self.LEFT_MARGIN
        beams = tuple(
            seg
            for seg in self.timeline.beam_segments[self._first_beam:self._last_beam]
            if seg.x1 >= left
        )
        return VisibleFrame(
            dx=self.dx,
            elapsed_ms=self.elapsed_ms,
            notes=tuple(self._views[self._first_note:self._last_note]),
            stems=self.timeline.stems[self._first_line:self._last_line],
            beams=beams,
            clef=regions[self._clef_index].clef if regions else None,
            state=self.state,
        )
