"""animscore CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import cast

import click

from animscore import __version__
from animscore.animated_score import DEFAULT_FRAMERATE, AnimatedScore
from animscore.errors import AnimScoreError
from animscore.renderers import DirectoryGlyphProvider, SvgRenderer
from animscore.score_models import TimelineAction
from animscore.timeline_io import load_actions
from animscore.viewport import PlaybackState

DEFAULT_WIDTH = 800
CONTAINER_ID = "score"


def _load(timeline_file: str) -> list[TimelineAction]:
    """Load a timeline file, exiting with an error message on failure."""
    try:
        return load_actions(timeline_file)
    except OSError as exc:
        click.echo(f"  ERROR: Could not read timeline — {exc}", err=True)
        sys.exit(1)
    except AnimScoreError as exc:
        click.echo(f"  ERROR: Invalid timeline — {exc}", err=True)
        sys.exit(1)


def _build_score(
    width: int,
    framerate: float,
    velocity: float,
    glyph_dir: str | None,
) -> AnimatedScore:
    return AnimatedScore(
        {"containerId": CONTAINER_ID, "framerate": framerate, "playingVelocity": velocity},
        containers={CONTAINER_ID: width},
        glyphs=DirectoryGlyphProvider(glyph_dir),
    )


def _default_midi_output(timeline_file: str) -> str:
    """<timeline>.mid, or <timeline>.animscore.mid when that would overwrite the input."""
    source = Path(timeline_file)
    candidate = source.with_suffix(".mid")
    if source.suffix.lower() == ".mid":
        candidate = source.with_name(f"{source.stem}.animscore.mid")
    return str(candidate)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="animscore")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def main(verbose: bool) -> None:
    """animscore — scrolling staff animation and notation layout."""
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


# ── layout subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("timeline_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--velocity",
    type=click.FloatRange(min=1.0),
    default=200.0,
    show_default=True,
    help="Scroll speed in pixels per second (sets note spacing).",
)
def layout(timeline_file: str, velocity: float) -> None:
    """
    Print the laid-out notes, clef regions and beam groups of a timeline.

    TIMELINE_FILE is a JSON action list, or a MIDI/MusicXML file.

    \b
    Examples:
      animscore layout melody.json
      animscore layout song.mid --velocity 120
    """
    from animscore.action_sequencer import sequence

    actions = _load(timeline_file)
    try:
        timeline = sequence(actions, playing_velocity=velocity)
    except AnimScoreError as exc:
        click.echo(f"  ERROR: Invalid timeline — {exc}", err=True)
        sys.exit(1)

    click.echo(f"animscore v{__version__}")
    click.echo(f"  Timeline : {timeline_file}")
    click.echo(f"  Actions  : {len(actions)}  |  Length: {timeline.duration_ms / 1000:.2f} s")
    click.echo()

    click.echo(f"Notes ({len(timeline.notes)}):")
    for i, note in enumerate(timeline.notes):
        beam = f"beam {note.beam_group_id}" if note.beam_group_id is not None else ""
        click.echo(
            f"  {i:4d}  x={note.x:9.2f}  {note.symbol_id.value:<8}  "
            f"{note.clef.value:<6}  step={note.vertical_position:+3d}  "
            f"{note.duration_seconds:6.3f}s  {beam}".rstrip()
        )

    click.echo(f"Clef regions ({len(timeline.clef_regions)}):")
    for region in timeline.clef_regions:
        click.echo(f"  {region.activation_time_ms:9.1f} ms  {region.clef.value}")

    click.echo(f"Beam groups ({len(timeline.beam_groups)}):")
    for group in timeline.beam_groups:
        members = ", ".join(str(i) for i in group.note_indices)
        click.echo(
            f"  {group.group_id:4d}  {group.direction.value:<4}  notes [{members}]  "
            f"secondary beams: {len(group.secondaries)}"
        )


# ── render subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("timeline_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination SVG path. Defaults to <timeline>.svg.",
)
@click.option(
    "--at",
    "at_seconds",
    type=click.FloatRange(min=0.0),
    default=0.0,
    show_default=True,
    metavar="SECS",
    help="Playback time of the rendered frame.",
)
@click.option("--width", type=click.IntRange(min=1), default=DEFAULT_WIDTH, show_default=True)
@click.option(
    "--framerate",
    type=click.FloatRange(min=1.0),
    default=DEFAULT_FRAMERATE,
    show_default=True,
    help="Ticks per second used to reach the requested time.",
)
@click.option("--velocity", type=click.FloatRange(min=1.0), default=200.0, show_default=True)
@click.option(
    "--glyph-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory with note glyph images (note-4.svg, note-4t.svg, ...).",
)
def render(
    timeline_file: str,
    output: str | None,
    at_seconds: float,
    width: int,
    framerate: float,
    velocity: float,
    glyph_dir: str | None,
) -> None:
    """
    Play a timeline up to a point in time and save that frame as SVG.

    Time advances in fixed ticks of 1/FRAMERATE seconds, the same way the
    live animation advances.

    \b
    Examples:
      animscore render melody.json --at 2.5
      animscore render song.mid --at 10 -o frame.svg --glyph-dir assets/
    """
    actions = _load(timeline_file)
    resolved_output = output if output is not None else str(Path(timeline_file).with_suffix(".svg"))

    score = _build_score(width, framerate, velocity, glyph_dir)
    try:
        score.set_music_actions(actions)
    except AnimScoreError as exc:
        click.echo(f"  ERROR: Invalid timeline — {exc}", err=True)
        sys.exit(1)

    interval_ms = 1000.0 / framerate
    ticks = int(round(at_seconds * framerate))
    score.start()
    frame = score.scheduler.frame()
    for _ in range(ticks):
        frame = score.update(interval_ms)
        if frame.state is not PlaybackState.PLAYING:
            break
    # An auto-stop rewinds the scheduler; the returned frame keeps the last position.
    score.draw(frame)

    renderer = cast(SvgRenderer, score.renderer)
    try:
        Path(resolved_output).write_text(renderer.to_svg(), encoding="utf-8")
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file — {exc}", err=True)
        sys.exit(1)

    ended = " (timeline ended)" if frame.state is PlaybackState.STOPPED else ""
    click.echo(f"Done!  Frame at {frame.elapsed_ms / 1000:.2f} s{ended} written to '{resolved_output}'.")


# ── export-midi subcommand ─────────────────────────────────────────────────────

@main.command("export-midi")
@click.argument("timeline_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to <timeline>.mid (<timeline>.animscore.mid for MIDI input).",
)
def export_midi(timeline_file: str, output: str | None) -> None:
    """
    Write a JSON timeline as a MIDI file with its tempo changes.

    \b
    Examples:
      animscore export-midi melody.json
      animscore export-midi melody.json -o melody.mid
    """
    from animscore.midi_exporter import MidiExporter

    actions = _load(timeline_file)
    resolved_output = output if output is not None else _default_midi_output(timeline_file)

    try:
        MidiExporter().export(actions, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)
    except AnimScoreError as exc:
        click.echo(f"  ERROR: Invalid timeline — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Done!  {len(actions)} action(s) written to '{resolved_output}'.")
