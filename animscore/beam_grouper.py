"""BeamGrouper: Joins runs of short notes into beamed groups with stem and beam geometry."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Union

import numpy as np

from animscore.score_models import BeamDirection, BeamGroup, DurationClass, Segment, VisualNote
from animscore.symbol_resolver import REFERENCE_STEP, base_duration_seconds, tempo_scale

# Durations accumulate as floats across tempo changes.
_EPSILON = 1e-9

# Indexable by global note index: the flat note list, or just the open members.
NoteLookup = Union[Sequence[VisualNote], Mapping[int, VisualNote]]


@dataclass(frozen=True)
class OpenGroup:
    """
    Beam candidates collected so far.

    Attributes:
        note_indices:     Members, as global note indices.
        duration_seconds: Sum of the members' playback durations.
    """

    note_indices: tuple[int, ...] = ()
    duration_seconds: float = 0.0

    def __bool__(self) -> bool:
        return bool(self.note_indices)


class BeamGrouper:
    """
    Groups consecutive short notes and computes their beam geometry.

    Algorithm overview
    ------------------
    Notes are folded in one at a time:

    1. **Threshold** – A note longer than an eighth note (at the current
       tempo) is never beamed. It closes any open group and stands alone.

    2. **Group limit** – A short note joins the open group unless the group
       would then last longer than one quarter note, or the note starts a
       new clef. In either case the open group is closed and the note opens
       the next one.

    3. **Closing** – A group with a single member is dropped. Otherwise the
       beam direction is chosen from the members furthest above and below
       the middle line, and a primary beam, one stem per member and the
       sixteenth-level secondary beams are emitted.
    """

    BEAM_CLEARANCE = 18.0      # beam distance from the outermost note head
    UP_STEM_NUDGE = 8.5        # up-stems sit on the right side of the head
    SECONDARY_OFFSET = 5.0     # secondary beams sit inside the primary
    BEAM_WIDTH = 3.0
    STEM_WIDTH = 1.0

    def __init__(self, beam_clearance: float = BEAM_CLEARANCE) -> None:
        """
        Args:
            beam_clearance: Distance in pixels between the outermost note head
                            of a group and its primary beam.
        """
        self.beam_clearance = beam_clearance

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _direction(self, positions: np.ndarray) -> tuple[BeamDirection, int, int]:
        """
        Pick the stem direction of a group.

        Returns:
            (direction, index of the highest member, index of the lowest member)
        """
        major_idx = int(np.argmax(positions))
        minor_idx = int(np.argmin(positions))
        major_pos = int(positions[major_idx])
        minor_pos = int(positions[minor_idx])

        major_dist = major_pos - REFERENCE_STEP if major_pos > 3 else REFERENCE_STEP - major_pos
        minor_dist = minor_pos - REFERENCE_STEP if minor_pos > 3 else REFERENCE_STEP - minor_pos

        if major_pos > 3 and major_dist >= minor_dist:
            return BeamDirection.DOWN, major_idx, minor_idx
        return BeamDirection.UP, major_idx, minor_idx

    def _secondary_beams(
        self,
        members: list[VisualNote],
        stem_xs: list[float],
        y: float,
    ) -> list[Segment]:
        """
        Sixteenth-level beams.

        Consecutive sixteenths share a full beam drawn from the earlier one,
        so a run of sixteenths gets one joined beam per adjacent pair. A
        sixteenth ending a run draws nothing more. A sixteenth next to a
        longer note gets a half-length stub pointing at its following
        neighbour, or at its preceding one when it ends the group.
        """
        is_sixteenth = [m.duration_class == DurationClass.SIXTEENTH for m in members]
        last = len(members) - 1
        segments: list[Segment] = []

        for k, sixteenth in enumerate(is_sixteenth):
            if not sixteenth:
                continue
            x = stem_xs[k]
            if k < last and is_sixteenth[k + 1]:
                segments.append(Segment(x, y, stem_xs[k + 1], y, self.BEAM_WIDTH))
            elif k > 0 and is_sixteenth[k - 1]:
                continue
            elif k < last:
                segments.append(Segment(x, y, x + (stem_xs[k + 1] - x) / 2, y, self.BEAM_WIDTH))
            elif k > 0:
                segments.append(Segment(x - (x - stem_xs[k - 1]) / 2, y, x, y, self.BEAM_WIDTH))
        return segments

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fold(
        self,
        open_group: OpenGroup,
        index: int,
        notes: NoteLookup,
        *,
        clef_changed: bool,
        tempo: float,
        next_group_id: int,
    ) -> tuple[OpenGroup, BeamGroup | None]:
        """
        Offer one newly registered note to the open group.

        Args:
            open_group:    Accumulator from the previous fold.
            index:         Position of the new note in ``notes``.
            notes:         Notes by index, including the new note and every open member.
            clef_changed:  True when the new note starts a new clef region.
            tempo:         Tempo the note was registered at.
            next_group_id: Id given to a group closed by this fold.

        Returns:
            (new accumulator, the group closed by this note or None)
        """
        duration = notes[index].duration_seconds
        scale = tempo_scale(tempo)
        threshold = base_duration_seconds(DurationClass.EIGHTH) * scale
        limit = base_duration_seconds(DurationClass.QUARTER) * scale

        if duration > threshold + _EPSILON:
            closed = self.close(open_group, notes, next_group_id) if open_group else None
            return OpenGroup(), closed

        if not open_group:
            return OpenGroup((index,), duration), None

        if clef_changed or open_group.duration_seconds + duration > limit + _EPSILON:
            closed = self.close(open_group, notes, next_group_id)
            return OpenGroup((index,), duration), closed

        return (
            OpenGroup(
                open_group.note_indices + (index,),
                open_group.duration_seconds + duration,
            ),
            None,
        )

    def close(
        self,
        open_group: OpenGroup,
        notes: NoteLookup,
        group_id: int,
    ) -> BeamGroup | None:
        """
        Build the geometry of a finished group.

        Returns:
            The BeamGroup, or None when fewer than two notes were collected.
        """
        if len(open_group.note_indices) < 2:
            return None

        members = [notes[i] for i in open_group.note_indices]
        positions = np.array([m.vertical_position for m in members])
        direction, major_idx, minor_idx = self._direction(positions)

        if direction is BeamDirection.UP:
            nudge = self.UP_STEM_NUDGE
            beam_y = members[major_idx].y - self.beam_clearance
            secondary_y = beam_y + self.SECONDARY_OFFSET
        else:
            nudge = 0.0
            beam_y = members[minor_idx].y + self.beam_clearance
            secondary_y = beam_y - self.SECONDARY_OFFSET

        stem_xs = [m.x + nudge for m in members]
        primary = Segment(stem_xs[0], beam_y, stem_xs[-1], beam_y, self.BEAM_WIDTH)
        stems = tuple(
            Segment(x, m.y, x, beam_y, self.STEM_WIDTH) for x, m in zip(stem_xs, members)
        )

        return BeamGroup(
            group_id=group_id,
            note_indices=open_group.note_indices,
            direction=direction,
            primary=primary,
            secondaries=tuple(self._secondary_beams(members, stem_xs, secondary_y)),
            stems=stems,
        )
