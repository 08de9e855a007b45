"""ActionSequencer: Folds timeline actions into positioned notes, clef regions and beams."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from animscore.beam_grouper import BeamGrouper, OpenGroup
from animscore.errors import TimelineError
from animscore.score_models import (
    DEFAULT_TEMPO,
    BeamGroup,
    Clef,
    ClefRegion,
    NoteEvent,
    SymbolId,
    TempoChange,
    Timeline,
    TimelineAction,
    VisualNote,
)
from animscore.symbol_resolver import (
    clef_for,
    decompose,
    duration_seconds,
    head_y,
    is_flipped,
    vertical_position,
)

logger = logging.getLogger(__name__)

DEFAULT_PLAYING_VELOCITY = 200.0  # pixels per second

MAX_PITCH_CLASS = 11
MAX_OCTAVE = 6


@dataclass(frozen=True)
class SequencerState:
    """
    Generation state threaded through the fold.

    Finished geometry leaves through each step's ``StepOutput``; the state
    only keeps what the next step needs, so a step costs the same at the
    end of a long timeline as at its start.

    Attributes:
        current_tempo:  Tempo applied to the next registered note.
        active_clef:    Clef of the most recent note, None before the first one.
        x_cursor:       Pixel x of the next note.
        time_cursor_ms: Playback time of the next note.
        note_count:     Notes registered so far; the index of the next note.
        group_count:    Beam groups closed so far; the id of the next group.
        open_group:     Beam candidates not yet closed.
        pending:        Notes of ``open_group``, held back until it closes.
    """

    current_tempo: float = DEFAULT_TEMPO
    active_clef: Clef | None = None
    x_cursor: float = 0.0
    time_cursor_ms: float = 0.0
    note_count: int = 0
    group_count: int = 0
    open_group: OpenGroup = OpenGroup()
    pending: tuple[VisualNote, ...] = ()


@dataclass(frozen=True)
class StepOutput:
    """
    Geometry emitted by a single step.

    Notes come out in index order once they are final. A beam candidate is
    emitted by the step (or ``finish``) that closes its group.
    """

    notes: tuple[VisualNote, ...] = ()
    clef_region: ClefRegion | None = None
    beam_groups: tuple[BeamGroup, ...] = ()


def initial_state(start_x: float = 0.0) -> SequencerState:
    return SequencerState(x_cursor=start_x)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_note(note: NoteEvent) -> None:
    """
    Raises:
        TimelineError: If pitch class, octave or duration is out of range.
            Zero and negative durations are rejected rather than dropped.
    """
    for name, value, upper in (
        ("pitch_class", note.pitch_class, MAX_PITCH_CLASS),
        ("octave", note.octave, MAX_OCTAVE),
    ):
        if not _is_int(value) or not 0 <= value <= upper:
            raise TimelineError(f"Note {name} must be an integer in 0..{upper}, got {value!r}.")
    if not _is_int(note.duration) or note.duration <= 0:
        raise TimelineError(f"Note duration must be a positive integer, got {note.duration!r}.")


def validate_tempo(change: TempoChange) -> None:
    bpm = change.bpm
    if isinstance(bpm, bool) or not isinstance(bpm, (int, float)) or not bpm > 0:
        raise TimelineError(f"Tempo must be a positive number of beats per minute, got {bpm!r}.")


def _release(
    candidates: dict[int, VisualNote],
    open_group: OpenGroup,
    group: BeamGroup | None,
) -> tuple[list[VisualNote], tuple[VisualNote, ...]]:
    """Split candidates into notes that are now final and notes still held by ``open_group``."""
    members = set(group.note_indices) if group is not None else set()
    held = open_group.note_indices
    released = [
        replace(note, beam_group_id=group.group_id) if group is not None and i in members else note
        for i, note in sorted(candidates.items())
        if i not in held
    ]
    return released, tuple(candidates[i] for i in held)


def _register_note(
    state: SequencerState,
    note: NoteEvent,
    playing_velocity: float,
    grouper: BeamGrouper,
) -> tuple[SequencerState, StepOutput]:
    validate_note(note)
    classes = decompose(note.duration)

    clef = clef_for(note.pitch_class, note.octave)
    clef_region: ClefRegion | None = None
    clef_changed = clef is not state.active_clef
    if clef_changed:
        clef_region = ClefRegion(clef=clef, activation_time_ms=state.time_cursor_ms)
        logger.debug("Clef %s from %.1f ms", clef.value, state.time_cursor_ms)

    position = vertical_position(note.pitch_class, note.octave, clef)
    flipped = is_flipped(position)
    y = head_y(position)

    index = state.note_count
    group_count = state.group_count
    open_group = state.open_group
    pending = state.pending
    x = state.x_cursor
    time_ms = state.time_cursor_ms
    emitted: list[VisualNote] = []
    closed: list[BeamGroup] = []

    for i, duration_class in enumerate(classes):
        seconds = duration_seconds(duration_class, state.current_tempo)
        visual = VisualNote(
            symbol_id=SymbolId.for_duration(duration_class),
            duration_class=duration_class,
            vertical_position=position,
            x=x,
            y=y,
            duration_seconds=seconds,
            flipped=flipped,
            clef=clef,
        )
        x += seconds * playing_velocity
        time_ms += seconds * 1000.0

        candidates = dict(zip(open_group.note_indices, pending))
        candidates[index] = visual
        open_group, group = grouper.fold(
            open_group,
            index,
            candidates,
            clef_changed=clef_changed and i == 0,
            tempo=state.current_tempo,
            next_group_id=group_count,
        )
        if group is not None:
            closed.append(group)
            group_count += 1
        released, pending = _release(candidates, open_group, group)
        emitted.extend(released)
        index += 1

    new_state = replace(
        state,
        active_clef=clef,
        x_cursor=x,
        time_cursor_ms=time_ms,
        note_count=index,
        group_count=group_count,
        open_group=open_group,
        pending=pending,
    )
    return new_state, StepOutput(tuple(emitted), clef_region, tuple(closed))


def step(
    state: SequencerState,
    action: TimelineAction,
    *,
    playing_velocity: float = DEFAULT_PLAYING_VELOCITY,
    grouper: BeamGrouper | None = None,
) -> tuple[SequencerState, StepOutput]:
    """
    Apply one action to the generation state.

    Args:
        state:            State after the previous action.
        action:           NoteEvent or TempoChange.
        playing_velocity: Scroll speed in pixels per second; only affects spacing.
        grouper:          Beam grouper to fold notes through.

    Returns:
        (next state, geometry emitted by this action)

    Raises:
        TimelineError: If the action is malformed or of an unknown type.
    """
    if isinstance(action, TempoChange):
        validate_tempo(action)
        return replace(state, current_tempo=float(action.bpm)), StepOutput()
    if isinstance(action, NoteEvent):
        return _register_note(state, action, playing_velocity, grouper or BeamGrouper())
    raise TimelineError(f"Unknown timeline action: {action!r}.")


def finish(
    state: SequencerState,
    grouper: BeamGrouper | None = None,
) -> tuple[SequencerState, StepOutput]:
    """Close the beam group still open at the end of the timeline and release its notes."""
    if not state.open_group:
        return state, StepOutput()

    candidates = dict(zip(state.open_group.note_indices, state.pending))
    group = (grouper or BeamGrouper()).close(state.open_group, candidates, state.group_count)
    released, _ = _release(candidates, OpenGroup(), group)

    new_state = replace(
        state,
        group_count=state.group_count + (1 if group is not None else 0),
        open_group=OpenGroup(),
        pending=(),
    )
    return new_state, StepOutput(tuple(released), None, (group,) if group is not None else ())


def sequence(
    actions: Sequence[TimelineAction],
    *,
    playing_velocity: float = DEFAULT_PLAYING_VELOCITY,
    start_x: float = 0.0,
    grouper: BeamGrouper | None = None,
) -> Timeline:
    """
    Lay out a whole timeline.

    Args:
        actions:          Actions in temporal order.
        playing_velocity: Scroll speed in pixels per second.
        start_x:          Pixel x of the first note.
        grouper:          Beam grouper; a default one is used when omitted.

    Returns:
        The immutable Timeline.

    Raises:
        TimelineError: If ``actions`` is not a list or tuple, or any action is invalid.
    """
    if not isinstance(actions, (list, tuple)):
        raise TimelineError(
            f"Timeline must be a list of actions, got {type(actions).__name__}."
        )

    grouper = grouper or BeamGrouper()
    notes: list[VisualNote] = []
    clef_regions: list[ClefRegion] = []
    beam_groups: list[BeamGroup] = []

    def collect(output: StepOutput) -> None:
        notes.extend(output.notes)
        if output.clef_region is not None:
            clef_regions.append(output.clef_region)
        beam_groups.extend(output.beam_groups)

    state = initial_state(start_x)
    for action in actions:
        state, output = step(state, action, playing_velocity=playing_velocity, grouper=grouper)
        collect(output)
    state, output = finish(state, grouper)
    collect(output)

    logger.info(
        "Sequenced %d action(s) into %d note(s), %d clef region(s), %d beam group(s)",
        len(actions),
        len(notes),
        len(clef_regions),
        len(beam_groups),
    )
    return Timeline(
        notes=tuple(notes),
        clef_regions=tuple(clef_regions),
        beam_groups=tuple(beam_groups),
    )
