"""TimelineBuilder: places chord regions and melody events on a shared tick axis."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from chordlab.chord_parser import ChordRecipe
from chordlab.pitch import parse_note_name, written_accidental

logger = logging.getLogger(__name__)

REST_TOKENS = frozenset({"r", "rest", "-"})


@dataclass(frozen=True)
class TimelineSpec:
    """
    Tick resolution and optional metre/tempo metadata.

    Attributes:
        ticks_per_quarter:    Ticks in one quarter note (>= 1).
        tempo_bpm:            Optional tempo, carried through to exporters only.
        time_sig_numerator:   Optional time-signature numerator.
        time_sig_denominator: Optional time-signature denominator.
    """

    ticks_per_quarter: int = 4
    tempo_bpm: float | None = None
    time_sig_numerator: int | None = None
    time_sig_denominator: int | None = None

    def __post_init__(self) -> None:
        if self.ticks_per_quarter < 1:
            raise ValueError(f"ticks_per_quarter must be >= 1, got {self.ticks_per_quarter}.")
        if self.tempo_bpm is not None and self.tempo_bpm <= 0:
            raise ValueError(f"tempo_bpm must be positive, got {self.tempo_bpm}.")
        for value in (self.time_sig_numerator, self.time_sig_denominator):
            if value is not None and value < 1:
                raise ValueError(f"Time signature values must be >= 1, got {value}.")

    def quarters_to_ticks(self, quarters: float) -> int:
        """Convert a duration in quarters to ticks (never less than one tick)."""
        return max(1, round(quarters * self.ticks_per_quarter))

    def ticks_to_quarters(self, ticks: int) -> float:
        return ticks / self.ticks_per_quarter


@dataclass(frozen=True)
class ChordEvent:
    """
    A chord to be voiced.

    Attributes:
        recipe:      The parsed chord.
        melody_midi: When set, pins the soprano to this MIDI note.
    """

    recipe: ChordRecipe
    melody_midi: int | None = None


@dataclass(frozen=True)
class ChordRegion:
    """A contiguous timeline span holding exactly one chord event."""

    start_tick: int
    duration_ticks: int
    chord_event: ChordEvent
    debug_label: str = ""

    @property
    def end_tick(self) -> int:
        return self.start_tick + self.duration_ticks


@dataclass(frozen=True)
class MelodyEvent:
    """
    A single melody note on the tick axis.

    ``accidental`` records how the note was written: -1 for a flat, +1 for a
    sharp, 0 for a natural. It hints which chromatic chords may carry it.
    """

    start_tick: int
    duration_ticks: int
    midi: int
    accidental: int = 0

    @property
    def end_tick(self) -> int:
        return self.start_tick + self.duration_ticks


class TimelineBuilder:
    """
    Accumulates durations into tick positions.

    Chord regions are contiguous: each starts where the previous one ends.
    Melody events live in an independent lane and are not forced to line up
    with chord boundaries.
    """

    def __init__(self, spec: TimelineSpec | None = None) -> None:
        """
        Args:
            spec: Tick resolution; defaults to 4 ticks per quarter.
        """
        self.spec = spec if spec is not None else TimelineSpec()

    def build_regions(
        self,
        items: Sequence[tuple[ChordEvent, float]],
        labels: Sequence[str] | None = None,
    ) -> list[ChordRegion]:
        """
        Lay chord events end to end.

        Args:
            items:  ``(ChordEvent, duration_in_quarters)`` pairs in order.
            labels: Optional debug label per item (e.g. the source token).

        Returns:
            Contiguous ChordRegions starting at tick 0.
        """
        regions: list[ChordRegion] = []
        tick = 0
        for index, (event, quarters) in enumerate(items):
            if quarters <= 0:
                logger.warning("Chord %d has non-positive duration; using 1 quarter.", index)
                quarters = 1.0
            duration = self.spec.quarters_to_ticks(quarters)
            label = labels[index] if labels is not None and index < len(labels) else ""
            regions.append(ChordRegion(tick, duration, event, label))
            tick += duration
        return regions

    def build_melody(self, notes: Sequence[tuple[int | None, float]]) -> list[MelodyEvent]:
        """
        Lay melody notes end to end; a ``None`` pitch is a rest that only advances time.
        """
        events: list[MelodyEvent] = []
        tick = 0
        for midi, quarters in notes:
            duration = self.spec.quarters_to_ticks(quarters if quarters > 0 else 1.0)
            if midi is not None:
                events.append(MelodyEvent(tick, duration, midi))
            tick += duration
        return events

    def parse_melody(self, text: str) -> list[MelodyEvent]:
        """Parse and place a melody string such as ``"C5:2 D5:1 R:1 G5:3"``."""
        events = self.build_melody(parse_melody_tokens(text))
        names = [token.partition(":")[0] for token in text.split()]
        written = [written_accidental(name) for name in names if name.lower() not in REST_TOKENS]
        return [
            replace(event, accidental=accidental) if accidental else event
            for event, accidental in zip(events, written)
        ]


def parse_melody_tokens(text: str) -> list[tuple[int | None, float]]:
    """
    Split a melody string into ``(midi_or_None, quarters)`` pairs.

    Each token is a note name with octave (``C5``, ``F#4``) or a rest
    (``R``/``rest``), optionally followed by ``:N`` quarters (default 1).

    Raises:
        ValueError: On a malformed note name or duration.
    """
    notes: list[tuple[int | None, float]] = []
    for token in text.split():
        name, sep, duration_text = token.partition(":")
        quarters = 1.0
        if sep:
            try:
                quarters = float(duration_text)
            except ValueError:
                raise ValueError(f"Invalid melody duration in '{token}'.") from None
            if quarters <= 0:
                logger.warning("Melody token '%s' has non-positive duration; using 1.", token)
                quarters = 1.0
        midi = None if name.lower() in REST_TOKENS else parse_note_name(name)
        notes.append((midi, quarters))
    return notes


def events_from_onset_grid(
    grid: Sequence[int | None], ticks_per_step: int = 1
) -> list[MelodyEvent]:
    """
    Convert a monophonic onset grid into melody events.

    Each non-None slot starts a note that lasts until the next onset (of any
    pitch) or the end of the grid. Repeated identical onsets stay separate
    notes.
    """
    onsets = [(step, midi) for step, midi in enumerate(grid) if midi is not None]
    events: list[MelodyEvent] = []
    for index, (step, midi) in enumerate(onsets):
        end_step = onsets[index + 1][0] if index + 1 < len(onsets) else len(grid)
        events.append(
            MelodyEvent(
                start_tick=step * ticks_per_step,
                duration_ticks=(end_step - step) * ticks_per_step,
                midi=midi,
            )
        )
    return events


def onset_grid_from_events(
    events: Sequence[MelodyEvent], total_steps: int, ticks_per_step: int = 1
) -> list[int | None]:
    """Inverse of :func:`events_from_onset_grid`: mark each event's start step."""
    grid: list[int | None] = [None] * total_steps
    for event in events:
        step = event.start_tick // ticks_per_step
        if 0 <= step < total_steps:
            grid[step] = event.midi
    return grid


def melody_at(events: Sequence[MelodyEvent], tick: int) -> MelodyEvent | None:
    """The melody event sounding at *tick*, if any."""
    sounding = [e for e in events if e.start_tick <= tick < e.end_tick]
    return max(sounding, key=lambda e: e.start_tick) if sounding else None


def attach_melody(
    regions: Sequence[ChordRegion], events: Sequence[MelodyEvent]
) -> list[ChordRegion]:
    """
    Pin each region's soprano to the melody note sounding at its start tick.

    Regions with no sounding melody keep whatever pin they already had.
    """
    attached: list[ChordRegion] = []
    for region in regions:
        event = melody_at(events, region.start_tick)
        if event is None:
            attached.append(region)
            continue
        chord_event = replace(region.chord_event, melody_midi=event.midi)
        attached.append(replace(region, chord_event=chord_event))
    return attached


def hold_seconds(region: ChordRegion, base_chord_seconds: float, spec: TimelineSpec) -> float:
    """Playback hold time: ``base_chord_seconds * duration_ticks / ticks_per_quarter``."""
    return base_chord_seconds * (region.duration_ticks / spec.ticks_per_quarter)
