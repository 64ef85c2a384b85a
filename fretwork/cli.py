"""fretwork CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from fretwork import __version__
from fretwork.errors import FretworkError, UnknownScale
from fretwork.fingering_strategy import describe_positions
from fretwork.fretboard import STRING_COUNT, STRING_NAMES
from fretwork.jianpu import JianpuParser
from fretwork.midi_exporter import MidiSink
from fretwork.note_models import Note
from fretwork.pitch import midi_to_label
from fretwork.playback import TimeSignature, VirtualScheduler, create_playback
from fretwork.scales import get_scale, resolve_scale_id, scale_notes
from fretwork.score import Score

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _fail(message: str) -> NoReturn:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def _check_mode(ctx: click.Context, param: click.Parameter, value: str) -> str:
    try:
        resolve_scale_id(value)
    except UnknownScale as exc:
        raise click.BadParameter(str(exc)) from None
    return value


def _check_time_signature(ctx: click.Context, param: click.Parameter, value: str) -> str:
    try:
        TimeSignature.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from None
    return value


def _describe_note(note: Note) -> str:
    if note.is_pitched:
        return f"{note.note_name:<3} {midi_to_label(note.midi):<4} MIDI {note.midi}"
    return note.kind.value


# ── Shared options ─────────────────────────────────────────────────────────────

_key_option = click.option("--key", "-k", default="C", show_default=True, help="Key (tonic of degree 1).")
_mode_option = click.option(
    "--mode",
    "-m",
    default="major",
    show_default=True,
    callback=_check_mode,
    help="Scale id or alias, e.g. major, aeolian, Minor, harmonic-minor.",
)
_octave_option = click.option(
    "--octave",
    type=int,
    default=0,
    show_default=True,
    help="Global octave offset; 0 puts an unmarked 1 on octave 4.",
)
_start_string_option = click.option(
    "--start-string",
    type=click.IntRange(0, STRING_COUNT - 1),
    default=5,
    show_default=True,
    help="String carrying the first three degrees (0 = high E, 5 = low E).",
)
_shift_option = click.option(
    "--shift",
    type=int,
    default=0,
    show_default=True,
    help="Extra octaves added on top of the automatic octave alignment.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="fretwork")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stderr.")
def main(verbose: bool) -> None:
    """fretwork: jianpu melodies, scales and 3NPS guitar fingerings."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)


# ── scale subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.argument("root")
@click.argument("scale_id")
def scale(root: str, scale_id: str) -> None:
    """
    List the notes of a scale with their degrees and intervals.

    \b
    Examples:
      fretwork scale A aeolian
      fretwork scale Eb major-pentatonic
    """
    try:
        entry = get_scale(scale_id)
        names = scale_notes(root, scale_id)
    except FretworkError as exc:
        _fail(str(exc))

    click.echo(f"{names[0]} {entry.display_name}")
    for name, degree, interval in zip(names, entry.degrees, entry.interval_names):
        click.echo(f"  {name:<3} {degree:<5} {interval}")


# ── parse subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.argument("text")
@_key_option
@_mode_option
@_octave_option
@click.option(
    "--save",
    default=None,
    metavar="PATH",
    help="Also write the parsed melody as a JSON score.",
)
def parse(text: str, key: str, mode: str, octave: int, save: str | None) -> None:
    """
    Parse jianpu TEXT and list the notes it contains.

    \b
    Examples:
      fretwork parse "1 2 3 | 5 - - 0"
      fretwork parse "_6 1 2 3#" --key G --mode aeolian --save tune.json
    """
    try:
        parser = JianpuParser(key=key, mode=mode, global_octave_offset=octave)
    except FretworkError as exc:
        _fail(str(exc))

    notes = parser.parse(text)
    if not notes:
        _fail("No jianpu found in the input text.")

    click.echo(parser.stringify(notes))
    for note in notes:
        click.echo(f"  [{note.index:>3}] {note.display_str:<5} {_describe_note(note)}")

    if save is not None:
        score = Score(text=text, notes=notes, key=key, mode=mode, octave_offset=octave)
        try:
            score.save(save)
        except OSError as exc:
            _fail(f"Could not write score file: {exc}")
        click.echo(f"Saved score to '{save}'.")


# ── fingering subcommand ───────────────────────────────────────────────────────

@main.command()
@click.argument("text")
@_key_option
@_mode_option
@_octave_option
@_start_string_option
@_shift_option
def fingering(text: str, key: str, mode: str, octave: int, start_string: int, shift: int) -> None:
    """
    Show where each note of jianpu TEXT falls in a 3NPS fingering.

    \b
    Examples:
      fretwork fingering "6 7 1. 2. 3." --key C --mode aeolian
      fretwork fingering "1 2 3 4 5" --key G --start-string 4 --shift 1
    """
    try:
        score = Score.parse(text, key=key, mode=mode, octave_offset=octave, start_string=start_string)
        positions = score.fingering(user_octave_shift=shift)
    except FretworkError as exc:
        _fail(str(exc))

    for note, position in zip(score.notes, positions):
        if not note.is_pitched:
            continue
        if position is None:
            where = "unreachable"
        else:
            where = (f"string {position.string} ({STRING_NAMES[position.string]}) "
                     f"fret {position.fret:<2} -> {midi_to_label(position.midi)}")
        click.echo(f"  [{note.index:>3}] {note.display_str:<5} {where}")

    click.echo(describe_positions(positions).text)


# ── play subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("text", required=False)
@click.option(
    "--score",
    "score_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    default=None,
    help="Play a saved JSON score instead of TEXT.",
)
@click.option(
    "--output",
    "-o",
    default="melody.mid",
    show_default=True,
    metavar="PATH",
    help="Destination MIDI file path.",
)
@_key_option
@_mode_option
@_octave_option
@_start_string_option
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=120,
    show_default=True,
    help="Playback tempo in BPM.",
)
@click.option(
    "--time-signature",
    default="4/4",
    show_default=True,
    callback=_check_time_signature,
    help="Bar length for accents, e.g. 3/4.",
)
@click.option("--no-count-in", is_flag=True, help="Start without the four-click count-in.")
def play(
    text: str | None,
    score_path: str | None,
    output: str,
    key: str,
    mode: str,
    octave: int,
    start_string: int,
    tempo: int,
    time_signature: str,
    no_count_in: bool,
) -> None:
    """
    Play jianpu TEXT through the playback engine into a MIDI file.

    Settings stored in a --score file win over the command-line options.

    \b
    Examples:
      fretwork play "1 2 3 | 5 - -" -o melody.mid
      fretwork play "3 3 4 5 | 5 4 3 2" --tempo 90 --time-signature 3/4
      fretwork play --score tune.json --no-count-in
    """
    if (text is None) == (score_path is None):
        _fail("Give either jianpu TEXT or --score PATH.")

    click.echo(f"fretwork v{__version__}")

    # ── Step 1: Parse ───────────────────────────────────────────────────
    click.echo("[1/3] Parsing melody...")
    try:
        if score_path is not None:
            score = Score.load(score_path)
        else:
            score = Score.parse(
                text,
                key=key,
                mode=mode,
                tempo=tempo,
                time_signature=time_signature,
                start_string=start_string,
                octave_offset=octave,
            )
    except (FretworkError, ValueError) as exc:
        _fail(f"Could not read melody: {exc}")
    except OSError as exc:
        _fail(f"Could not read score file: {exc}")

    pitched = sum(1 for note in score.notes if note.is_pitched)
    if not pitched:
        _fail("The melody has no notes to play.")
    click.echo(f"      {len(score.notes)} item(s), {pitched} note(s) in {score.key} {score.mode}")

    # ── Step 2: Fingering ───────────────────────────────────────────────
    click.echo("[2/3] Assigning 3NPS fingering...")
    try:
        positions = score.fingering()
    except ValueError as exc:
        _fail(f"Could not finger melody: {exc}")
    click.echo(f"      {describe_positions(positions).text}")

    # ── Step 3: Render ──────────────────────────────────────────────────
    click.echo(f"[3/3] Writing MIDI file → '{output}'...")
    try:
        scheduler = VirtualScheduler()
        sink = MidiSink(scheduler, tempo=score.tempo, time_signature=score.time_signature)
        controller = create_playback(
            sink,
            scheduler,
            bpm=score.tempo,
            time_signature=score.time_signature,
            count_in=not no_count_in,
        )
        controller.load(score.notes, positions)
        controller.play()
        scheduler.run_until_idle()
        sink.export(Path(output))
    except OSError as exc:
        _fail(f"Could not write MIDI file: {exc}")
    except ValueError as exc:
        _fail(f"Could not render melody: {exc}")

    click.echo()
    click.echo(f"Done!  {len(sink.note_events)} note(s) written to '{output}'.")
