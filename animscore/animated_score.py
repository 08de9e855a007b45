"""AnimatedScore: ties configuration, layout, scrolling and drawing together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

from animscore.action_sequencer import DEFAULT_PLAYING_VELOCITY, sequence
from animscore.errors import ConfigError, PlaybackError
from animscore.renderers import (
    CANVAS_HEIGHT,
    DirectoryGlyphProvider,
    GlyphProvider,
    Renderer,
    SvgRenderer,
    draw_frame,
)
from animscore.score_models import Timeline, TimelineAction
from animscore.viewport import PlaybackState, ViewportScheduler, VisibleFrame

logger = logging.getLogger(__name__)

DEFAULT_FRAMERATE: Final[float] = 60.0

RendererFactory = Callable[[float, float, GlyphProvider], Renderer]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class ScoreConfig:
    """
    Construction options of an AnimatedScore.

    Attributes:
        container_id:     Id of the container the canvas is placed in.
        framerate:        Ticks per second requested from the host loop.
        playing_velocity: Scroll speed in pixels per second. Affects note
                          spacing only, never note duration.
    """

    container_id: str
    framerate: float = DEFAULT_FRAMERATE
    playing_velocity: float = DEFAULT_PLAYING_VELOCITY

    @classmethod
    def from_mapping(cls, args: Any) -> ScoreConfig:
        """
        Build a config from ``{"containerId", "framerate", "playingVelocity"}``.

        A missing or malformed ``containerId`` is fatal. Invalid optional
        values are replaced by their defaults with a warning.

        Raises:
            ConfigError: If ``args`` is not a mapping or ``containerId`` is not a string.
        """
        if not isinstance(args, Mapping):
            raise ConfigError(f"Score configuration must be a mapping, got {type(args).__name__}.")

        container_id = args.get("containerId")
        if not isinstance(container_id, str):
            raise ConfigError("containerId must be a string.")

        framerate = args.get("framerate", DEFAULT_FRAMERATE)
        if not (_is_number(framerate) and framerate > 0):
            logger.warning("Ignoring invalid framerate %r; using %s.", framerate, DEFAULT_FRAMERATE)
            framerate = DEFAULT_FRAMERATE

        velocity = args.get("playingVelocity", DEFAULT_PLAYING_VELOCITY)
        if not (_is_number(velocity) and velocity > 0):
            logger.warning(
                "Ignoring invalid playingVelocity %r; using %s.", velocity, DEFAULT_PLAYING_VELOCITY
            )
            velocity = DEFAULT_PLAYING_VELOCITY

        return cls(container_id=container_id, framerate=float(framerate), playing_velocity=float(velocity))


class AnimatedScore:
    """
    A scrolling staff bound to one container.

    The canvas is as wide as its container and ``STAFF_HEIGHT + 2 * PADDING``
    pixels tall. Notes are written starting at the player line in the middle
    of the canvas and scroll left past it during playback.

    The host owns the clock: it calls ``update_and_draw`` once per frame (see
    ``animscore.playback.FrameLoop``) and must not overlap calls.
    """

    def __init__(
        self,
        config: ScoreConfig | Mapping[str, Any],
        *,
        containers: Mapping[str, float],
        renderer_factory: RendererFactory | None = None,
        glyphs: GlyphProvider | None = None,
    ) -> None:
        """
        Args:
            config:           ScoreConfig, or its mapping form.
            containers:       Available containers by id, valued by pixel width.
            renderer_factory: Builds the drawing surface from (width, height, glyphs).
                              Defaults to SvgRenderer.
            glyphs:           Glyph asset provider. Defaults to a provider with no
                              assets, so notes are laid out but not drawn.

        Raises:
            ConfigError: If the configuration is malformed or the container does not exist.
        """
        self.config = config if isinstance(config, ScoreConfig) else ScoreConfig.from_mapping(config)

        width = containers.get(self.config.container_id)
        if width is None:
            raise ConfigError(f"No container found with id '{self.config.container_id}'.")
        if not (_is_number(width) and width > 0):
            raise ConfigError(f"Container '{self.config.container_id}' has invalid width {width!r}.")

        self.width = float(width)
        self.height = float(CANVAS_HEIGHT)
        self.player_x = self.width / 2

        self.glyphs = glyphs if glyphs is not None else DirectoryGlyphProvider(None)
        factory = renderer_factory or SvgRenderer
        self.renderer = factory(self.width, self.height, self.glyphs)

        self.timeline = Timeline()
        self.scheduler = self._build_scheduler(self.timeline)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_scheduler(self, timeline: Timeline) -> ViewportScheduler:
        return ViewportScheduler(
            timeline,
            canvas_width=self.width,
            playing_velocity=self.config.playing_velocity,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self.scheduler.state

    def set_music_actions(self, actions: Sequence[TimelineAction]) -> Timeline:
        """
        Replace the timeline and draw its first frame.

        Raises:
            TimelineError: If ``actions`` is not a list or contains an invalid action.
            PlaybackError: If playback is in progress; stop it first.
        """
        if self.state is not PlaybackState.STOPPED:
            raise PlaybackError("Cannot replace the timeline while playback is in progress.")

        self.timeline = sequence(
            actions,
            playing_velocity=self.config.playing_velocity,
            start_x=self.player_x,
        )
        self.scheduler = self._build_scheduler(self.timeline)
        self.scheduler.refresh()
        self.draw()
        return self.timeline

    def start(self) -> None:
        self.scheduler.start()

    def pause(self) -> None:
        self.scheduler.pause()

    def stop(self) -> None:
        self.scheduler.stop()

    def update(self, delta_ms: float) -> VisibleFrame:
        return self.scheduler.tick(delta_ms)

    def draw(self, frame: VisibleFrame | None = None) -> None:
        draw_frame(
            self.renderer,
            frame if frame is not None else self.scheduler.frame(),
            width=self.width,
            player_x=self.player_x,
        )

    def update_and_draw(self, delta_ms: float) -> VisibleFrame:
        """One host tick: advance playback, then redraw."""
        frame = self.update(delta_ms)
        self.draw(frame)
        return frame
