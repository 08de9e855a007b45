"""Unit tests for the scrolling viewport scheduler, fed with synthetic tick deltas."""

from animscore.action_sequencer import sequence
from animscore.score_models import Clef, NoteEvent
from animscore.viewport import PlaybackState, ViewportScheduler


def _quarters(count: int = 4, start_x: float = 400.0):
    # Quarter notes at 120 bpm are 0.5 s, i.e. 100 px apart at 200 px/s.
    return sequence([NoteEvent(0, 3, 16)] * count, start_x=start_x)


def _scheduler(timeline, width: float = 800.0) -> ViewportScheduler:
    return ViewportScheduler(timeline, canvas_width=width, playing_velocity=200.0)


def test_refresh_admits_notes_inside_canvas() -> None:
    scheduler = _scheduler(_quarters(), width=800.0)
    assert scheduler.note_window == (0, 0)

    scheduler.refresh()
    assert scheduler.note_window == (0, 4)
    assert [view.x for view in scheduler.frame().notes] == [400.0, 500.0, 600.0, 700.0]


def test_tick_does_nothing_unless_playing() -> None:
    scheduler = _scheduler(_quarters())
    frame = scheduler.tick(500)

    assert frame.dx == 0.0
    assert frame.elapsed_ms == 0.0
    assert frame.state is PlaybackState.STOPPED


def test_notes_enter_on_the_right_and_leave_on_the_left() -> None:
    scheduler = _scheduler(_quarters(start_x=50.0), width=100.0)
    scheduler.refresh()
    assert scheduler.note_window == (0, 1)

    scheduler.start()
    frame = scheduler.tick(500)

    assert frame.dx == 100.0
    assert frame.elapsed_ms == 500.0
    # x=150 entered (150 - 100 < 100); x=50 left (50 - 100 < -10).
    assert scheduler.note_window == (1, 2)
    assert [view.x for view in frame.notes] == [150.0]


def test_playback_stops_after_last_note_scrolls_past() -> None:
    scheduler = _scheduler(_quarters())
    scheduler.start()

    frame = scheduler.tick(1000)
    assert frame.state is PlaybackState.PLAYING
    assert scheduler.note_window == (0, 4)

    frame = scheduler.tick(4000)
    assert frame.state is PlaybackState.STOPPED
    assert frame.notes == ()
    assert scheduler.state is PlaybackState.STOPPED
    assert scheduler.elapsed_ms == 0.0
    assert scheduler.note_window == (0, 0)


def test_pause_freezes_and_start_resumes() -> None:
    scheduler = _scheduler(_quarters())
    scheduler.start()
    scheduler.tick(250)
    scheduler.pause()
    frame = scheduler.tick(250)

    assert frame.state is PlaybackState.PAUSED
    assert frame.dx == 50.0

    scheduler.start()
    scheduler.start()
    assert scheduler.tick(250).dx == 100.0


def test_stop_rewinds_every_cursor() -> None:
    timeline = sequence([NoteEvent(0, 3, 8)] * 8 + [NoteEvent(0, 2, 16)] * 4, start_x=100.0)
    scheduler = _scheduler(timeline, width=200.0)
    scheduler.start()
    for _ in range(40):
        scheduler.tick(50)

    assert scheduler.line_window != (0, 0)
    scheduler.stop()

    assert scheduler.state is PlaybackState.STOPPED
    assert scheduler.elapsed_ms == 0.0
    assert scheduler.dx == 0.0
    assert scheduler.note_window == (0, 0)
    assert scheduler.line_window == (0, 0)
    assert scheduler.beam_window == (0, 0)
    assert scheduler.clef_index == 0

    scheduler.stop()
    assert scheduler.state is PlaybackState.STOPPED


def test_stop_keeps_the_timeline_for_replay() -> None:
    timeline = _quarters()
    scheduler = _scheduler(timeline)
    scheduler.start()
    first = scheduler.tick(100)
    scheduler.stop()
    scheduler.start()
    replay = scheduler.tick(100)

    assert scheduler.timeline is timeline
    assert replay == first


def test_clef_index_follows_elapsed_time() -> None:
    timeline = sequence([NoteEvent(0, 3, 16), NoteEvent(0, 2, 16), NoteEvent(0, 2, 16)], start_x=400.0)
    scheduler = _scheduler(timeline)
    scheduler.refresh()
    scheduler.start()

    assert scheduler.tick(400).clef is Clef.TREBLE
    assert scheduler.tick(200).clef is Clef.TREBLE
    frame = scheduler.tick(1)
    assert scheduler.clef_index == 1
    assert frame.clef is Clef.BASS


def test_beam_segments_are_admitted_at_most_four_per_tick() -> None:
    # Twenty eighths pair up into ten beam groups.
    timeline = sequence([NoteEvent(0, 3, 8)] * 20)
    assert len(timeline.beam_segments) == 10

    scheduler = _scheduler(timeline, width=10_000.0)
    scheduler.start()
    scheduler.tick(0)
    assert scheduler.beam_window == (0, 4)
    scheduler.tick(0)
    assert scheduler.beam_window == (0, 8)
    frame = scheduler.tick(0)
    assert scheduler.beam_window == (0, 10)
    assert len(frame.beams) == 10
    assert len(frame.stems) == 20


def test_cursors_only_move_forward() -> None:
    timeline = sequence(
        [NoteEvent(pc % 12, 3 - pc % 2, d) for pc, d in enumerate([4, 4, 8, 16, 2, 2, 4, 8, 32, 8, 8] * 3)],
        start_x=150.0,
    )
    scheduler = _scheduler(timeline, width=300.0)
    scheduler.start()

    previous = (scheduler.note_window, scheduler.line_window, scheduler.beam_window, scheduler.clef_index)
    while scheduler.state is PlaybackState.PLAYING:
        scheduler.tick(1000 / 60)
        if scheduler.state is not PlaybackState.PLAYING:
            break
        current = (scheduler.note_window, scheduler.line_window, scheduler.beam_window, scheduler.clef_index)
        for before, after in zip(previous[:3], current[:3]):
            assert after[0] >= before[0] and after[1] >= before[1]
            assert after[0] <= after[1]
        assert current[3] >= previous[3]
        previous = current

    assert scheduler.state is PlaybackState.STOPPED


def test_passed_stub_leaves_while_longer_beam_stays() -> None:
    # Sixteenth + eighth beam together: primary 8.5 -> 33.5, forward stub 8.5 -> 21.
    timeline = sequence([NoteEvent(0, 3, 4), NoteEvent(0, 3, 8), NoteEvent(0, 3, 16)])
    group = timeline.beam_groups[0]
    stub = group.secondaries[0]
    assert (stub.x0, stub.x1) == (8.5, 21.0)

    scheduler = _scheduler(timeline, width=200.0)
    scheduler.refresh()
    scheduler.start()

    frame = scheduler.tick(200)  # dx = 40, left edge at 30
    assert frame.beams == (group.primary,)

    frame = scheduler.tick(50)  # dx = 50, left edge at 40
    assert frame.beams == ()
    assert scheduler.beam_window == (2, 2)
