"""Renderer contract, glyph providers, and an SVG renderer for staff frames."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from animscore.score_models import Clef, SymbolId
from animscore.symbol_resolver import (
    PADDING,
    STAFF_HEIGHT,
    STAFF_LINES,
    glyph_name,
    staff_line_y,
)
from animscore.viewport import VisibleFrame

logger = logging.getLogger(__name__)

CANVAS_HEIGHT = STAFF_HEIGHT + 2 * PADDING

CLEF_GLYPHS: dict[Clef, str] = {
    Clef.TREBLE: "clef-treble",
    Clef.BASS: "clef-bass",
}

#: Every asset name the frame drawer may ask for.
GLYPH_NAMES: list[str] = sorted(
    {glyph_name(symbol, flipped) for symbol in SymbolId for flipped in (False, True)}
    | set(CLEF_GLYPHS.values())
)

GLYPH_SUFFIXES = (".svg", ".png")


def _escape_xml(text: str) -> str:
    """Escape the characters that are unsafe in XML attribute values."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


# ── Glyph assets ─────────────────────────────────────────────────────────────

class GlyphProvider(ABC):
    """Resolves glyph names to drawable image references."""

    @abstractmethod
    def resolve(self, name: str) -> str | None:
        """Image reference for ``name``, or None when the asset is unavailable."""


class DirectoryGlyphProvider(GlyphProvider):
    """
    Looks glyphs up as ``<name>.svg`` or ``<name>.png`` files in a directory.

    Missing assets never abort construction: each one is logged once as a
    warning and later draws of that glyph are skipped.
    """

    def __init__(self, directory: str | Path | None) -> None:
        self.directory = Path(directory) if directory is not None else None
        self._paths: dict[str, Path] = {}
        self.missing: list[str] = []

        for name in GLYPH_NAMES:
            path = self._find(name)
            if path is None:
                logger.warning("Glyph asset '%s' not found; it will not be drawn.", name)
                self.missing.append(name)
            else:
                self._paths[name] = path

    def _find(self, name: str) -> Path | None:
        if self.directory is None:
            return None
        for suffix in GLYPH_SUFFIXES:
            candidate = self.directory / f"{name}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, name: str) -> str | None:
        path = self._paths.get(name)
        return path.resolve().as_uri() if path is not None else None


# ── Renderers ────────────────────────────────────────────────────────────────

class Renderer(ABC):
    """Abstract 2D drawing surface."""

    @abstractmethod
    def draw_glyph(self, name: str, x: float, y: float) -> None:
        """Draw glyph ``name`` with its top-left corner at (x, y)."""

    @abstractmethod
    def draw_line(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        color: str = "black",
        width: float = 1.0,
    ) -> None:
        """Draw a straight line."""

    @abstractmethod
    def clear_region(self, x: float, y: float, w: float, h: float) -> None:
        """Clear a rectangle to the background."""

    @abstractmethod
    def translate(self, dx: float, dy: float = 0.0) -> None:
        """Shift the origin of every later draw call."""


class SvgRenderer(Renderer):
    """Record draw calls and serialize them as a standalone SVG document."""

    def __init__(self, width: float, height: float = CANVAS_HEIGHT, glyphs: GlyphProvider | None = None) -> None:
        self.width = width
        self.height = height
        self.glyphs = glyphs
        self._origin = (0.0, 0.0)
        self._elements: list[str] = []

    @property
    def elements(self) -> list[str]:
        return list(self._elements)

    def draw_glyph(self, name: str, x: float, y: float) -> None:
        href = self.glyphs.resolve(name) if self.glyphs is not None else None
        if href is None:
            return
        ox, oy = self._origin
        self._elements.append(
            f'<image href="{_escape_xml(href)}" x="{_fmt(x + ox)}" y="{_fmt(y + oy)}" />'
        )

    def draw_line(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        color: str = "black",
        width: float = 1.0,
    ) -> None:
        ox, oy = self._origin
        self._elements.append(
            f'<line x1="{_fmt(x0 + ox)}" y1="{_fmt(y0 + oy)}" '
            f'x2="{_fmt(x1 + ox)}" y2="{_fmt(y1 + oy)}" '
            f'stroke="{_escape_xml(color)}" stroke-width="{_fmt(width)}" />'
        )

    def clear_region(self, x: float, y: float, w: float, h: float) -> None:
        ox, oy = self._origin
        if x + ox <= 0 and y + oy <= 0 and x + ox + w >= self.width and y + oy + h >= self.height:
            self._elements.clear()
            return
        self._elements.append(
            f'<rect x="{_fmt(x + ox)}" y="{_fmt(y + oy)}" '
            f'width="{_fmt(w)}" height="{_fmt(h)}" fill="white" />'
        )

    def translate(self, dx: float, dy: float = 0.0) -> None:
        ox, oy = self._origin
        self._origin = (ox + dx, oy + dy)

    def to_svg(self) -> str:
        body = "\n".join(f"  {element}" for element in self._elements)
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" '
            f'width="{_fmt(self.width)}" height="{_fmt(self.height)}" '
            f'style="background-color: white">\n{body}\n</svg>\n'
        )


# ── Frame drawing ────────────────────────────────────────────────────────────

def draw_frame(
    renderer: Renderer,
    frame: VisibleFrame,
    *,
    width: float,
    player_x: float,
    player_color: str = "blue",
) -> None:
    """
    Draw one frame: staff, clef, the visible notes with their stems and
    beams shifted by the scroll offset, and the player line on top.
    """
    renderer.clear_region(0, 0, width, CANVAS_HEIGHT)

    for line in range(STAFF_LINES):
        y = staff_line_y(line)
        renderer.draw_line(0, y, width, y, "black", 1)

    if frame.clef is not None:
        renderer.draw_glyph(CLEF_GLYPHS[frame.clef], 2, PADDING - 10)

    renderer.translate(-frame.dx, 0)
    for stem in frame.stems:
        renderer.draw_line(stem.x0, stem.y0, stem.x1, stem.y1, "black", stem.width)
    for beam in frame.beams:
        renderer.draw_line(beam.x0, beam.y0, beam.x1, beam.y1, "black", beam.width)
    for view in frame.notes:
        renderer.draw_glyph(view.glyph, view.x, view.y)
    renderer.translate(frame.dx, 0)

    renderer.draw_line(
        player_x, PADDING - 10, player_x, PADDING + STAFF_HEIGHT + 10, player_color, 2
    )
