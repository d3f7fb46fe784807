"""chordlab CLI entry point."""

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

import click

from chordlab import __version__
from chordlab.chord_analyzer import ChordAnalyzer
from chordlab.config import ConfigLoadError, load_voicing_config
from chordlab.harmonizer import HarmonizationResult, Harmonizer
from chordlab.midi_exporter import MidiExporter
from chordlab.pitch import midi_to_name
from chordlab.snapshot import build_snapshot
from chordlab.theory_key import Mode, TheoryKey
from chordlab.timeline import TimelineSpec
from chordlab.voicing_strategy import VoicingConfig

MODE_CHOICES = [mode.name.lower() for mode in Mode] + ["major", "minor"]


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str) -> NoReturn:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def _run(
    progression: str,
    key_name: str,
    mode: str | None,
    melody: str | None,
    tpq: int,
    tempo: float | None,
    config_path: str | None,
) -> HarmonizationResult:
    """Parse options, run the harmonizer and report parse errors."""
    try:
        key = TheoryKey.parse(key_name, mode)
        spec = TimelineSpec(ticks_per_quarter=tpq, tempo_bpm=tempo)
    except ValueError as exc:
        _fail(str(exc))

    config = VoicingConfig()
    if config_path is not None:
        try:
            config = load_voicing_config(config_path)
        except ConfigLoadError as exc:
            _fail(str(exc))

    try:
        result = Harmonizer(key, spec, config).harmonize(progression, melody)
    except ValueError as exc:
        _fail(str(exc))

    for error in result.parse.errors:
        click.echo(f"  WARNING: skipped chord {error}", err=True)
    if not result.regions:
        _fail("No chords could be parsed.")
    return result


def _shared_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options common to every subcommand."""
    options = [
        click.argument("progression"),
        click.option("--key", "-k", "key_name", default="C", show_default=True,
                     help="Tonic, optionally with a mode: 'C', 'F# dorian', 'Bb minor', 'Am'."),
        click.option("--mode", "-m", type=click.Choice(MODE_CHOICES, case_sensitive=False),
                     default=None, help="Mode; overrides any mode named in --key."),
        click.option("--melody", default=None, metavar="NOTES",
                     help="Melody line, e.g. \"E5:2 D5 C5\". Pins the soprano."),
        click.option("--tpq", type=click.IntRange(1, 960), default=4, show_default=True,
                     help="Timeline ticks per quarter note."),
        click.option("--tempo", type=click.FloatRange(20, 300), default=None,
                     help="Playback tempo in BPM (MIDI export only)."),
        click.option("--config", "config_path", default=None, metavar="PATH",
                     type=click.Path(exists=True, dir_okay=False, readable=True),
                     help="YAML file of solver settings."),
        click.option("--verbose", "-v", count=True, help="-v for info, -vv for debug logging."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="chordlab")
def main() -> None:
    """chordlab — four-part (SATB) harmonization of chord progressions."""


# ── voice subcommand ───────────────────────────────────────────────────────────

@main.command()
@_shared_options
@click.option("--midi", "midi_path", default=None, metavar="PATH", help="Write the voicing as MIDI.")
@click.option("--musicxml", "musicxml_path", default=None, metavar="PATH",
              help="Write the voicing as a MusicXML score (needs music21).")
@click.option("--snapshot", "snapshot_path", default=None, metavar="PATH",
              help="Write a JSON analysis snapshot.")
def voice(
    progression: str,
    key_name: str,
    mode: str | None,
    melody: str | None,
    tpq: int,
    tempo: float | None,
    config_path: str | None,
    verbose: int,
    midi_path: str | None,
    musicxml_path: str | None,
    snapshot_path: str | None,
) -> None:
    """
    Voice a progression in four parts.

    PROGRESSION is a quoted list of Roman numerals or chord symbols, each
    optionally followed by :N quarters.

    \b
    Examples:
      chordlab voice "I vi ii7 V7 I"
      chordlab voice "C Caug F" --melody "E4 E4 C4"
      chordlab voice "i iv V7:2 i" --key "A minor" --midi cadence.mid
    """
    _configure_logging(verbose)
    result = _run(progression, key_name, mode, melody, tpq, tempo, config_path)

    click.echo(f"chordlab v{__version__}")
    click.echo(f"  Key    : {result.key}")
    click.echo(f"  Chords : {len(result.regions)}")
    click.echo()

    steps = 1 + sum(path is not None for path in (midi_path, musicxml_path, snapshot_path))
    step = 1
    click.echo(f"[{step}/{steps}] Voicing (B T A S):")
    for region, analysis, voiced, motion in zip(
        result.regions, result.analyses, result.voiced, result.voicing.motions
    ):
        names = "  ".join(f"{name:<4}" for name in voiced.names(analysis=analysis))
        leaps = "".join("!" if leap else " " for leap in motion.large_leaps)
        click.echo(
            f"  {region.start_tick:5d}  {region.debug_label:<10} {analysis.roman:<12} {names} {leaps}"
        )
    for event in result.diagnostics:
        click.echo(f"      {event}")

    if midi_path is not None:
        step += 1
        click.echo(f"[{step}/{steps}] Writing MIDI file → '{midi_path}'...")
        exporter = MidiExporter(result.timeline_spec, tempo=tempo)
        try:
            exporter.export(result.regions, result.voiced, midi_path, result.melody_events)
        except OSError as exc:
            _fail(f"Could not write MIDI file — {exc}")

    if musicxml_path is not None:
        step += 1
        click.echo(f"[{step}/{steps}] Writing MusicXML score → '{musicxml_path}'...")
        from chordlab.score_exporter import ScoreExporter

        score = ScoreExporter(result.key, result.timeline_spec, title=progression)
        try:
            score.export(
                result.regions, result.voiced, musicxml_path, result.melody_events, result.analyses
            )
        except (OSError, ValueError) as exc:
            _fail(f"Could not write score — {exc}")

    if snapshot_path is not None:
        step += 1
        click.echo(f"[{step}/{steps}] Writing snapshot → '{snapshot_path}'...")
        try:
            Path(snapshot_path).write_text(build_snapshot(result, progression).to_json(), encoding="utf-8")
        except OSError as exc:
            _fail(f"Could not write snapshot — {exc}")

    click.echo()
    click.echo("Done!")


# ── analyze subcommand ─────────────────────────────────────────────────────────

@main.command()
@_shared_options
def analyze(
    progression: str,
    key_name: str,
    mode: str | None,
    melody: str | None,
    tpq: int,
    tempo: float | None,
    config_path: str | None,
    verbose: int,
) -> None:
    """
    Print the harmonic analysis of a progression.

    Shows the Roman numeral, chord symbol, diatonic status and function of
    every chord, plus the scale degree of each melody note.

    \b
    Examples:
      chordlab analyze "I bVII IV I" --key D
      chordlab analyze "Cmaj7 A7 Dm7 G7" --melody "E5 C#5 F5 B4"
    """
    _configure_logging(verbose)
    result = _run(progression, key_name, mode, melody, tpq, tempo, config_path)
    analyzer = ChordAnalyzer()

    click.echo(f"chordlab v{__version__}")
    click.echo(f"  Key : {result.key}")
    click.echo()
    for region, analysis in zip(result.regions, result.analyses):
        status = "diatonic" if analysis.is_diatonic else analysis.function_label
        line = f"  {region.start_tick:5d}  {analysis.roman:<12} {analysis.symbol:<12} {status}"
        midi = region.chord_event.melody_midi
        if midi is not None:
            note = analyzer.analyze_melody(result.key, midi, analysis.tones)
            tone = "chord tone" if note.is_chord_tone else "non-chord tone"
            line += f"  | melody {note.name} ({note.label}, {tone})"
        click.echo(line)


# ── harmonize subcommand ───────────────────────────────────────────────────────

@main.command()
@click.argument("melody")
@click.option("--key", "-k", "key_name", default="C", show_default=True,
              help="Tonic, optionally with a mode: 'C', 'F# dorian', 'Bb minor', 'Am'.")
@click.option("--mode", "-m", type=click.Choice(MODE_CHOICES, case_sensitive=False),
              default=None, help="Mode; overrides any mode named in --key.")
@click.option("--continuity/--no-continuity", default=False,
              help="Keep a chord while it still holds the melody.")
@click.option("--tpq", type=click.IntRange(1, 960), default=4, show_default=True,
              help="Timeline ticks per quarter note.")
@click.option("--midi", "midi_path", default=None, metavar="PATH", help="Write the voicing as MIDI.")
@click.option("--verbose", "-v", count=True, help="-v for info, -vv for debug logging.")
def harmonize(
    melody: str,
    key_name: str,
    mode: str | None,
    continuity: bool,
    tpq: int,
    midi_path: str | None,
    verbose: int,
) -> None:
    """
    Choose chords for a melody and voice them.

    Accidentals in the melody ("Ab4", "F#5") let a major key reach for
    chromatic chords such as bVI or II.

    \b
    Examples:
      chordlab harmonize "E5 F5 G5 E5 D5 C5"
      chordlab harmonize "C5 Ab4:2 G4" --key C --midi tune.mid
    """
    _configure_logging(verbose)
    try:
        key = TheoryKey.parse(key_name, mode)
        result = Harmonizer(key, TimelineSpec(ticks_per_quarter=tpq)).harmonize_melody(
            melody, prefer_continuity=continuity
        )
    except ValueError as exc:
        _fail(str(exc))
    if not result.regions:
        _fail("No melody note could be harmonized.")

    click.echo(f"chordlab v{__version__}")
    click.echo(f"  Key    : {result.key}")
    click.echo()
    click.echo("[1/2] Choosing chords:")
    for step in result.melody_steps:
        roman = step.chosen.roman if step.chosen is not None else "-"
        flats = step.event.accidental < 0 or (step.event.accidental == 0 and key.uses_flats)
        note = midi_to_name(step.event.midi, flats)
        click.echo(f"  {step.event.start_tick:5d}  {note:<4} {roman:<8} {step.reason}")

    click.echo("[2/2] Voicing (B T A S):")
    for region, analysis, voiced in zip(result.regions, result.analyses, result.voiced):
        names = "  ".join(f"{name:<4}" for name in voiced.names(analysis=analysis))
        click.echo(f"  {region.start_tick:5d}  {analysis.roman:<12} {names}")
    for event in result.diagnostics:
        click.echo(f"      {event}")

    if midi_path is not None:
        try:
            MidiExporter(result.timeline_spec).export(
                result.regions, result.voiced, midi_path, result.melody_events
            )
        except OSError as exc:
            _fail(f"Could not write MIDI file — {exc}")
        click.echo(f"  Wrote MIDI file → '{midi_path}'")

    click.echo()
    click.echo("Done!")
