"""Unit tests for beam grouping and beam geometry."""

from animscore.beam_grouper import BeamGrouper, OpenGroup
from animscore.score_models import BeamDirection, Clef, DurationClass, Segment, SymbolId, VisualNote
from animscore.symbol_resolver import duration_seconds, head_y


def _note(position: int, x: float, duration_class: DurationClass = DurationClass.EIGHTH) -> VisualNote:
    return VisualNote(
        symbol_id=SymbolId.for_duration(duration_class),
        duration_class=duration_class,
        vertical_position=position,
        x=x,
        y=head_y(position),
        duration_seconds=duration_seconds(duration_class, 120),
        flipped=position > 4,
        clef=Clef.TREBLE,
    )


def _group(*indices: int) -> OpenGroup:
    return OpenGroup(note_indices=indices, duration_seconds=0.0)


def test_close_drops_groups_smaller_than_two() -> None:
    grouper = BeamGrouper()
    notes = [_note(0, 0.0)]
    assert grouper.close(OpenGroup(), notes, 0) is None
    assert grouper.close(_group(0), notes, 0) is None


def test_low_notes_are_beamed_up() -> None:
    notes = [_note(0, 0.0), _note(2, 100.0)]
    group = BeamGrouper().close(_group(0, 1), notes, 7)

    assert group is not None
    assert group.group_id == 7
    assert group.direction is BeamDirection.UP
    assert group.primary == Segment(8.5, 24.0, 108.5, 24.0, BeamGrouper.BEAM_WIDTH)
    assert group.stems == (
        Segment(8.5, 49.0, 8.5, 24.0, BeamGrouper.STEM_WIDTH),
        Segment(108.5, 42.0, 108.5, 24.0, BeamGrouper.STEM_WIDTH),
    )
    assert group.secondaries == ()


def test_high_notes_are_beamed_down() -> None:
    notes = [_note(8, 0.0), _note(6, 100.0)]
    group = BeamGrouper().close(_group(0, 1), notes, 0)

    assert group is not None
    assert group.direction is BeamDirection.DOWN
    # Beam hangs below the lowest member, without the up-stem nudge.
    assert group.primary == Segment(0.0, 46.0, 100.0, 46.0, BeamGrouper.BEAM_WIDTH)
    assert [stem.x0 for stem in group.stems] == [0.0, 100.0]


def test_direction_follows_furthest_note_from_middle_line() -> None:
    grouper = BeamGrouper()
    up = grouper.close(_group(0, 1), [_note(9, 0.0), _note(-3, 50.0)], 0)
    tie = grouper.close(_group(0, 1), [_note(6, 0.0), _note(2, 50.0)], 0)

    assert up is not None and up.direction is BeamDirection.UP
    assert tie is not None and tie.direction is BeamDirection.DOWN


def test_consecutive_sixteenths_share_full_secondary_beams() -> None:
    notes = [_note(0, x * 25.0, DurationClass.SIXTEENTH) for x in range(4)]
    group = BeamGrouper().close(_group(0, 1, 2, 3), notes, 0)

    assert group is not None
    # Up beam over step 0: primary at 31, secondary 5px lower.
    # Each inner sixteenth beams to its successor, so the run reads as one
    # continuous secondary beam (see "Secondary beams across a run of
    # sixteenths" in DESIGN.md).
    assert [(s.x0, s.x1, s.y0) for s in group.secondaries] == [
        (8.5, 33.5, 36.0),
        (33.5, 58.5, 36.0),
        (58.5, 83.5, 36.0),
    ]


def test_sixteenth_pair_alone_draws_one_full_secondary() -> None:
    notes = [_note(0, 0.0, DurationClass.SIXTEENTH), _note(0, 50.0, DurationClass.SIXTEENTH)]
    group = BeamGrouper().close(_group(0, 1), notes, 0)

    assert group is not None
    assert group.secondaries == (Segment(8.5, 36.0, 58.5, 36.0, BeamGrouper.BEAM_WIDTH),)


def test_sixteenth_before_longer_note_gets_forward_stub() -> None:
    notes = [_note(0, 0.0, DurationClass.SIXTEENTH), _note(0, 100.0)]
    group = BeamGrouper().close(_group(0, 1), notes, 0)

    assert group is not None
    assert group.secondaries == (Segment(8.5, 36.0, 58.5, 36.0, BeamGrouper.BEAM_WIDTH),)


def test_trailing_sixteenth_gets_backward_stub() -> None:
    notes = [_note(0, 0.0), _note(0, 100.0, DurationClass.SIXTEENTH)]
    group = BeamGrouper().close(_group(0, 1), notes, 0)

    assert group is not None
    assert group.secondaries == (Segment(58.5, 36.0, 108.5, 36.0, BeamGrouper.BEAM_WIDTH),)


def test_sixteenth_pair_followed_by_eighth_draws_one_secondary() -> None:
    notes = [
        _note(0, 0.0, DurationClass.SIXTEENTH),
        _note(0, 100.0, DurationClass.SIXTEENTH),
        _note(0, 200.0),
    ]
    group = BeamGrouper().close(_group(0, 1, 2), notes, 0)

    assert group is not None
    assert len(group.secondaries) == 1
    assert (group.secondaries[0].x0, group.secondaries[0].x1) == (8.5, 108.5)


def test_fold_long_note_closes_open_group() -> None:
    grouper = BeamGrouper()
    notes = [_note(0, 0.0), _note(2, 50.0), _note(4, 100.0, DurationClass.QUARTER)]

    open_group, closed = grouper.fold(OpenGroup(), 0, notes, clef_changed=False, tempo=120, next_group_id=0)
    assert closed is None and open_group.note_indices == (0,)

    open_group, closed = grouper.fold(open_group, 1, notes, clef_changed=False, tempo=120, next_group_id=0)
    assert closed is None and open_group.note_indices == (0, 1)
    assert open_group.duration_seconds == 0.5

    open_group, closed = grouper.fold(open_group, 2, notes, clef_changed=False, tempo=120, next_group_id=0)
    assert not open_group
    assert closed is not None and closed.note_indices == (0, 1)


def test_fold_clef_change_starts_new_group() -> None:
    grouper = BeamGrouper()
    notes = [_note(0, 0.0), _note(2, 50.0)]

    open_group, _ = grouper.fold(OpenGroup(), 0, notes, clef_changed=False, tempo=120, next_group_id=0)
    open_group, closed = grouper.fold(open_group, 1, notes, clef_changed=True, tempo=120, next_group_id=0)

    assert closed is None  # a single-note group is dropped
    assert open_group.note_indices == (1,)


def test_fold_closes_group_that_would_exceed_a_beat() -> None:
    grouper = BeamGrouper()
    notes = [_note(0, x * 25.0, DurationClass.SIXTEENTH) for x in range(5)]
    open_group = OpenGroup()
    closed_groups = []
    for i in range(5):
        open_group, closed = grouper.fold(open_group, i, notes, clef_changed=False, tempo=120, next_group_id=0)
        if closed is not None:
            closed_groups.append(closed)

    assert [g.note_indices for g in closed_groups] == [(0, 1, 2, 3)]
    assert open_group.note_indices == (4,)
