"""Data models for timeline input and laid-out score geometry."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Union

DEFAULT_TEMPO: float = 120.0


# ── Timeline input ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NoteEvent:
    """
    A single note to be played.

    Attributes:
        pitch_class: 0=C, 1=C#, ..., 11=B.
        octave:      0..6. Octave 3 holds middle C.
        duration:    Length in sixty-fourth notes (64 = whole note).
    """

    pitch_class: int
    octave: int
    duration: int


@dataclass(frozen=True)
class TempoChange:
    """Tempo change in quarter-note beats per minute, effective for later notes."""

    bpm: float = DEFAULT_TEMPO


TimelineAction = Union[NoteEvent, TempoChange]


# ── Notation vocabulary ──────────────────────────────────────────────────────

class DurationClass(IntEnum):
    """Standard notation durations, valued in sixty-fourth notes."""

    WHOLE = 64
    HALF = 32
    QUARTER = 16
    EIGHTH = 8
    SIXTEENTH = 4
    THIRTY_SECOND = 2
    SIXTY_FOURTH = 1


class SymbolId(Enum):
    """The eight drawable note symbols."""

    WHOLE = "note-1"
    HALF = "note-2"
    QUARTER = "note-4"
    EIGHTH = "note-8"
    SIXTEENTH = "note-16"
    THIRTY_SECOND = "note-32"
    SIXTY_FOURTH = "note-64"
    BEAMED_BASE = "note-base"

    @classmethod
    def for_duration(cls, duration_class: DurationClass) -> SymbolId:
        return cls[duration_class.name]


class Clef(Enum):
    TREBLE = "treble"
    BASS = "bass"


class BeamDirection(Enum):
    UP = "up"
    DOWN = "down"


# ── Laid-out geometry ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VisualNote:
    """
    One drawable notation symbol positioned on the staff.

    A NoteEvent whose duration is not a single duration class expands into
    several VisualNotes sharing pitch, clef and vertical position.

    Attributes:
        symbol_id:         Glyph class derived from the duration class.
        duration_class:    Notated duration of this symbol.
        vertical_position: Staff step, clef-relative; 0 is the bottom line.
        x:                 Horizontal pixel coordinate in timeline space.
        y:                 Pixel y of the note head.
        duration_seconds:  Playback length at the tempo active when registered.
        flipped:           True when the glyph variant with a downward stem is used.
        clef:              Clef the note is positioned against.
        beam_group_id:     Owning BeamGroup, or None for unbeamed notes.
    """

    symbol_id: SymbolId
    duration_class: DurationClass
    vertical_position: int
    x: float
    y: float
    duration_seconds: float
    flipped: bool
    clef: Clef
    beam_group_id: int | None = None


@dataclass(frozen=True)
class NoteView:
    """Read-only render view of a VisualNote: which glyph to draw, and where."""

    glyph: str
    x: float
    y: float


@dataclass(frozen=True)
class ClefRegion:
    """The clef in force from ``activation_time_ms`` until the next region."""

    clef: Clef
    activation_time_ms: float


@dataclass(frozen=True)
class Segment:
    """A straight line, stored with ``x0 <= x1``."""

    x0: float
    y0: float
    x1: float
    y1: float
    width: float = 1.0


@dataclass(frozen=True)
class BeamGroup:
    """
    Two or more short notes joined by a beam.

    Attributes:
        group_id:     Sequential id, referenced by VisualNote.beam_group_id.
        note_indices: Indices of the members in the timeline's flat note list.
        direction:    Stem direction shared by all members.
        primary:      The main beam.
        secondaries:  Sixteenth-level beams and stubs.
        stems:        One stem per member, in member order.
    """

    group_id: int
    note_indices: tuple[int, ...]
    direction: BeamDirection
    primary: Segment
    secondaries: tuple[Segment, ...] = ()
    stems: tuple[Segment, ...] = ()

    @property
    def segments(self) -> tuple[Segment, ...]:
        """Primary and secondary beams."""
        return (self.primary, *self.secondaries)


@dataclass(frozen=True)
class Timeline:
    """Immutable result of sequencing a list of TimelineActions."""

    notes: tuple[VisualNote, ...] = ()
    clef_regions: tuple[ClefRegion, ...] = ()
    beam_groups: tuple[BeamGroup, ...] = ()
    stems: tuple[Segment, ...] = field(init=False, repr=False)
    beam_segments: tuple[Segment, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        stems = [stem for group in self.beam_groups for stem in group.stems]
        beams = [segment for group in self.beam_groups for segment in group.segments]
        object.__setattr__(self, "stems", tuple(sorted(stems, key=lambda s: s.x0)))
        object.__setattr__(self, "beam_segments", tuple(sorted(beams, key=lambda s: s.x0)))

    @property
    def duration_ms(self) -> float:
        return sum(note.duration_seconds for note in self.notes) * 1000.0
