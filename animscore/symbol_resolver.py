"""SymbolResolver: duration decomposition, staff positions and glyph selection."""

from animscore.errors import TimelineError
from animscore.score_models import Clef, DurationClass, NoteView, SymbolId, VisualNote

# ── Staff geometry (pixels) ──────────────────────────────────────────────────
STAFF_HEIGHT = 29    # top line to bottom line, plus the half-pixel line offset
PADDING = 20         # blank space above and below the staff
LINE_SPACING = 7     # distance between two staff lines
STEP_HEIGHT = 3.5    # one diatonic step: line to adjacent space
STAFF_LINES = 5

#: Staff step treated as the middle of the staff when choosing stem sides.
REFERENCE_STEP = 4

# ── Time ─────────────────────────────────────────────────────────────────────
REFERENCE_TEMPO = 120.0
SEMITONES_PER_OCTAVE = 12

#: Lowest absolute note id (pitch_class + 12 * octave) drawn on the treble staff.
TREBLE_LOWEST_ID = 3 * SEMITONES_PER_OCTAVE

#: Seconds per duration class at REFERENCE_TEMPO.
BASE_DURATION_SECONDS: dict[DurationClass, float] = {
    DurationClass.WHOLE: 2.0,
    DurationClass.HALF: 1.0,
    DurationClass.QUARTER: 0.5,
    DurationClass.EIGHTH: 0.25,
    DurationClass.SIXTEENTH: 0.125,
    DurationClass.THIRTY_SECOND: 0.0625,
    DurationClass.SIXTY_FOURTH: 0.03125,
}

#: Diatonic step of each of the 12 pitch classes; sharps share their natural's step.
PITCH_CLASS_STEPS: list[int] = [0, 0, 1, 1, 2, 3, 3, 4, 4, 5, 5, 6]

STEPS_PER_OCTAVE = 7

# Distance in pixels from a glyph's top edge to the centre of its note head.
_CORNER_STEM_UP = 26
_CORNER_HEAD_ONLY = 6


def decompose(duration: int) -> list[DurationClass]:
    """
    Split a duration into the notation symbols that sum to it.

    Greedy over the duration classes from whole note down to sixty-fourth.
    The classes are powers of two, so the result is the binary representation
    of ``duration`` and is unique.

    Args:
        duration: Length in sixty-fourth notes.

    Returns:
        Duration classes, largest first. Strictly decreasing for durations
        up to 127.

    Raises:
        TimelineError: If ``duration`` is not a positive integer.
    """
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise TimelineError(f"Note duration must be a positive integer, got {duration!r}.")

    classes: list[DurationClass] = []
    remaining = duration
    for duration_class in DurationClass:
        # Only the whole note can repeat, for durations longer than 64.
        while duration_class <= remaining:
            classes.append(duration_class)
            remaining -= duration_class
        if remaining == 0:
            break
    return classes


def clef_for(pitch_class: int, octave: int) -> Clef:
    """Bass clef for the three lowest octaves, treble clef for everything above."""
    note_id = pitch_class + octave * SEMITONES_PER_OCTAVE
    return Clef.BASS if note_id < TREBLE_LOWEST_ID else Clef.TREBLE


def vertical_position(pitch_class: int, octave: int, clef: Clef) -> int:
    """
    Staff step of a note, relative to the bottom line of the given clef.

    Treble: step 0 is E in octave 3 (bottom line). Bass: step 0 is G in octave 1.
    """
    step = PITCH_CLASS_STEPS[pitch_class]
    if clef is Clef.TREBLE:
        return step - 2 + (octave - 3) * STEPS_PER_OCTAVE
    return step - 4 + (octave - 1) * STEPS_PER_OCTAVE


def tempo_scale(bpm: float) -> float:
    """Factor applied to durations measured at REFERENCE_TEMPO; faster tempo, shorter notes."""
    return REFERENCE_TEMPO / bpm


def base_duration_seconds(duration_class: DurationClass) -> float:
    return BASE_DURATION_SECONDS[duration_class]


def duration_seconds(duration_class: DurationClass, bpm: float) -> float:
    """Playback length of one symbol at ``bpm``."""
    return BASE_DURATION_SECONDS[duration_class] * tempo_scale(bpm)


def is_flipped(position: int) -> bool:
    """Notes above the middle line use the glyph whose stem points down."""
    return position > REFERENCE_STEP


def head_y(position: int) -> float:
    """Pixel y of a note head centred on staff step ``position``."""
    return PADDING + STAFF_HEIGHT - position * STEP_HEIGHT


def staff_line_y(index: int) -> float:
    """Pixel y of staff line ``index`` (0 = top line)."""
    return PADDING + index * LINE_SPACING + 0.5


def glyph_name(symbol_id: SymbolId, flipped: bool) -> str:
    """Asset name for a symbol; stemmed symbols have a ``t`` variant with the stem turned down."""
    if flipped and symbol_id not in (SymbolId.WHOLE, SymbolId.BEAMED_BASE):
        return f"{symbol_id.value}t"
    return symbol_id.value


def glyph_corner(symbol_id: SymbolId, flipped: bool) -> int:
    if symbol_id in (SymbolId.WHOLE, SymbolId.BEAMED_BASE) or flipped:
        return _CORNER_HEAD_ONLY
    return _CORNER_STEM_UP


def render_view(note: VisualNote) -> NoteView:
    """
    Derive the drawable view of a note.

    Beamed notes lose their own flag and stem and are drawn with the bare
    note head; their stems come from the BeamGroup.
    """
    symbol_id = SymbolId.BEAMED_BASE if note.beam_group_id is not None else note.symbol_id
    corner = glyph_corner(symbol_id, note.flipped)
    return NoteView(
        glyph=glyph_name(symbol_id, note.flipped),
        x=note.x,
        y=note.y - corner + 2.5,
    )
