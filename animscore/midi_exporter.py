"""MidiExporter: Writes a timeline of notes and tempo changes to a MIDI file."""

from __future__ import annotations

from collections.abc import Sequence

from midiutil import MIDIFile

from animscore.action_sequencer import validate_note, validate_tempo
from animscore.errors import TimelineError
from animscore.score_models import DEFAULT_TEMPO, NoteEvent, TempoChange, TimelineAction
from animscore.symbol_resolver import SEMITONES_PER_OCTAVE

# In midiutil Format 1 MIDI, track 0 is the conductor/tempo track.
TRACK_CONDUCTOR = 0  # Tempo changes only
TRACK_MELODY = 1

CHANNEL_MELODY = 0

#: Sixty-fourth notes per quarter-note beat.
UNITS_PER_BEAT = 16

#: Timeline octave 3 holds middle C (MIDI 60).
MIDI_OCTAVE_OFFSET = 2


def note_to_midi(note: NoteEvent) -> int:
    """MIDI number of a timeline note: C in octave 3 is middle C (60)."""
    return (note.octave + MIDI_OCTAVE_OFFSET) * SEMITONES_PER_OCTAVE + note.pitch_class


class MidiExporter:
    """
    Writes a two-track MIDI file from a timeline.

    Track 0 carries the tempo map (an initial tempo plus one event per
    TempoChange). Track 1 carries the notes back to back, in timeline order.
    Beat positions are counted in quarter notes, so the written tempo map
    reproduces the playback durations shown on the staff.
    """

    DEFAULT_VELOCITY = 80  # MIDI velocity (0-127)

    def __init__(self, velocity: int = DEFAULT_VELOCITY, track_name: str = "Melody") -> None:
        """
        Args:
            velocity:   MIDI note-on velocity for every note.
            track_name: Name of the note track.
        """
        self.velocity = velocity
        self.track_name = track_name

    def build(self, actions: Sequence[TimelineAction]) -> MIDIFile:
        """
        Build the MIDI structure without writing it.

        Raises:
            TimelineError: If an action is invalid.
        """
        midi = MIDIFile(numTracks=2, removeDuplicates=False, deinterleave=False)
        midi.addTempo(TRACK_CONDUCTOR, 0, DEFAULT_TEMPO)
        midi.addTrackName(TRACK_MELODY, 0, self.track_name)

        beat = 0.0
        for action in actions:
            if isinstance(action, TempoChange):
                validate_tempo(action)
                midi.addTempo(TRACK_CONDUCTOR, beat, action.bpm)
            elif isinstance(action, NoteEvent):
                validate_note(action)
                length = action.duration / UNITS_PER_BEAT
                midi.addNote(
                    track=TRACK_MELODY,
                    channel=CHANNEL_MELODY,
                    pitch=note_to_midi(action),
                    time=beat,
                    duration=length,
                    volume=self.velocity,
                )
                beat += length
            else:
                raise TimelineError(f"Unknown timeline action: {action!r}.")
        return midi

    def export(self, actions: Sequence[TimelineAction], output_path: str) -> None:
        """
        Render actions to a Standard MIDI File.

        Raises:
            TimelineError: If an action is invalid.
            OSError: If the output file cannot be opened for writing.
        """
        midi = self.build(actions)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
