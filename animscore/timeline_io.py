"""Load timelines from JSON action lists, or import them from MIDI/MusicXML via music21."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Final

from animscore.errors import TimelineError
from animscore.score_models import DEFAULT_TEMPO, NoteEvent, TempoChange, TimelineAction

logger = logging.getLogger(__name__)

JSON_SUFFIXES: Final[set[str]] = {".json"}
MUSIC21_SUFFIXES: Final[set[str]] = {".mid", ".midi", ".musicxml", ".mxl", ".xml"}

UNITS_PER_QUARTER = 16
MIN_OCTAVE = 0
MAX_OCTAVE = 6


def action_from_dict(item: Any) -> TimelineAction:
    """
    Convert one JSON object into a TimelineAction.

    Accepted shapes:
        {"type": "note", "pitch": 0..11, "octave": 0..6, "duration": n}
        {"type": "tempo", "bpm": x}   (bpm defaults to 120)
    """
    if not isinstance(item, dict):
        raise TimelineError(f"Timeline entry must be an object, got {item!r}.")

    kind = item.get("type")
    if kind == "tempo":
        return TempoChange(bpm=item.get("bpm", DEFAULT_TEMPO))
    if kind == "note":
        try:
            return NoteEvent(
                pitch_class=item["pitch"],
                octave=item["octave"],
                duration=item["duration"],
            )
        except KeyError as exc:
            raise TimelineError(f"Note entry is missing field {exc.args[0]!r}: {item!r}.") from exc
    raise TimelineError(f"Unknown timeline entry type {kind!r}.")


def action_to_dict(action: TimelineAction) -> dict[str, Any]:
    if isinstance(action, TempoChange):
        return {"type": "tempo", "bpm": action.bpm}
    return {
        "type": "note",
        "pitch": action.pitch_class,
        "octave": action.octave,
        "duration": action.duration,
    }


def actions_from_json(data: Any) -> list[TimelineAction]:
    if not isinstance(data, list):
        raise TimelineError("Timeline JSON must be a list of actions.")
    return [action_from_dict(item) for item in data]


def dump_actions(actions: list[TimelineAction], path: str | Path) -> None:
    """
    Write actions as a JSON timeline file.

    Raises:
        OSError: If the file cannot be written.
    """
    payload = [action_to_dict(action) for action in actions]
    Path(path).write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


# ------------------------------------------------------------------
# music21 import
# ------------------------------------------------------------------

def _parse_music21(path: Path) -> Any:
    from music21 import converter

    return converter.parse(str(path))


def _melody_part(score: Any) -> Any:
    """First part containing notes; the whole score when it has no parts."""
    parts = list(getattr(score, "parts", []))
    for part in parts:
        if part.flatten().notes:
            return part
    return score


def _tempo_marks(score: Any) -> list[tuple[float, float]]:
    marks: list[tuple[float, float]] = []
    for mark in score.flatten().getElementsByClass("MetronomeMark"):
        bpm = mark.getQuarterBPM()
        if bpm:
            marks.append((float(mark.offset), float(bpm)))
    return sorted(marks)


def music21_to_actions(score: Any) -> list[TimelineAction]:
    """
    Convert a music21 score into a monophonic timeline.

    Only the first part with notes is used. Chords keep their highest
    pitch, rests are dropped, overlapping notes are skipped, durations are
    rounded to the nearest sixty-fourth note, and metronome marks become
    tempo changes placed before the first note at or after their offset.
    """
    marks = _tempo_marks(score)
    actions: list[TimelineAction] = []
    mark_idx = 0
    previous_end = float("-inf")
    skipped = 0

    for element in _melody_part(score).flatten().notes:
        offset = float(element.offset)
        while mark_idx < len(marks) and marks[mark_idx][0] <= offset:
            actions.append(TempoChange(bpm=marks[mark_idx][1]))
            mark_idx += 1

        if offset < previous_end:
            skipped += 1
            continue

        pitch = max(element.pitches, key=lambda p: p.midi) if element.isChord else element.pitch
        octave = int(pitch.octave) - 1
        duration = round(float(element.duration.quarterLength) * UNITS_PER_QUARTER)

        if duration < 1 or not MIN_OCTAVE <= octave <= MAX_OCTAVE:
            logger.warning("Skipping %s at offset %.3f: outside the drawable range.", pitch, offset)
            skipped += 1
            continue

        actions.append(NoteEvent(pitch_class=int(pitch.pitchClass), octave=octave, duration=duration))
        previous_end = offset + float(element.duration.quarterLength)

    if skipped:
        logger.info("Skipped %d note(s) that could not be placed on a single staff.", skipped)
    return actions


def load_actions(path: str | Path) -> list[TimelineAction]:
    """
    Load a timeline from a file, chosen by extension.

    Raises:
        TimelineError: If the file type is unsupported or its content is invalid.
        OSError: If the file cannot be read.
    """
    file_path = Path(path)
    suffix = file_path.suffix.lower()

    if suffix in JSON_SUFFIXES:
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise TimelineError(f"Invalid timeline JSON in '{file_path}': {exc}") from exc
        except UnicodeDecodeError as exc:
            raise TimelineError(f"Timeline '{file_path}' is not valid UTF-8: {exc}") from exc
        return actions_from_json(data)

    if suffix in MUSIC21_SUFFIXES:
        return music21_to_actions(_parse_music21(file_path))

    supported = ", ".join(sorted(JSON_SUFFIXES | MUSIC21_SUFFIXES))
    raise TimelineError(f"Unsupported timeline file '{file_path.name}'. Use one of: {supported}.")
