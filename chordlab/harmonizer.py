"""Harmonizer: parse -> analyze -> timeline -> solve, in one call."""

import logging
from dataclasses import dataclass, field

from chordlab.chord_analyzer import ChordAnalysis, ChordAnalyzer
from chordlab.chord_parser import ParsedChord, ProgressionParse, parse_progression
from chordlab.diagnostics import RegionDiagEvent
from chordlab.melody_harmonizer import HarmonizedStep, harmonize_melody
from chordlab.theory_key import TheoryKey
from chordlab.timeline import (
    ChordEvent,
    ChordRegion,
    MelodyEvent,
    TimelineBuilder,
    TimelineSpec,
    attach_melody,
)
from chordlab.voice_leading import VoiceLeadingSolver
from chordlab.voicing_strategy import VoicedChord, VoicingConfig, VoicingResult, VoicingStrategy

logger = logging.getLogger(__name__)


@dataclass
class HarmonizationResult:
    """
    Everything produced by one harmonization run.

    Attributes:
        key:           Key of the passage.
        timeline_spec: Tick resolution used for regions and melody.
        parse:         Parsed tokens and any per-token errors.
        regions:       Chord regions, with melody pins attached.
        melody_events: Independent melody lane on the same tick axis.
        voicing:       Solver output aligned with ``regions``.
        melody_steps:  Per-note chord choices, when the chords came from the melody.
    """

    key: TheoryKey
    timeline_spec: TimelineSpec
    parse: ProgressionParse
    regions: list[ChordRegion] = field(default_factory=list)
    melody_events: list[MelodyEvent] = field(default_factory=list)
    voicing: VoicingResult = field(default_factory=VoicingResult)
    melody_steps: list[HarmonizedStep] = field(default_factory=list)

    @property
    def voiced(self) -> list[VoicedChord]:
        return self.voicing.voiced

    @property
    def analyses(self) -> list[ChordAnalysis]:
        return self.voicing.analyses

    @property
    def diagnostics(self) -> list[RegionDiagEvent]:
        return self.voicing.diagnostics


class Harmonizer:
    """
    Pipeline façade tying the parser, timeline builder and solver together.

    The key, timeline resolution and solver configuration are fixed per
    instance; ``harmonize()`` is a pure function of its arguments and can
    be called repeatedly.
    """

    def __init__(
        self,
        key: TheoryKey,
        timeline_spec: TimelineSpec | None = None,
        config: VoicingConfig | None = None,
        strategy: VoicingStrategy | None = None,
        analyzer: ChordAnalyzer | None = None,
    ) -> None:
        """
        Args:
            key:           Key used to read Roman numerals and chord symbols.
            timeline_spec: Tick resolution; defaults to 4 ticks per quarter.
            config:        Solver tuning; ignored when *strategy* is given.
            strategy:      Voicing strategy; defaults to a VoiceLeadingSolver.
            analyzer:      Chord analyzer shared with the default solver.
        """
        self.key = key
        self.timeline_spec = timeline_spec if timeline_spec is not None else TimelineSpec()
        self.analyzer = analyzer if analyzer is not None else ChordAnalyzer()
        self.strategy = (
            strategy if strategy is not None else VoiceLeadingSolver(config, self.analyzer)
        )

    def harmonize(self, progression: str, melody: str | None = None) -> HarmonizationResult:
        """
        Voice a progression, optionally under a melody.

        Tokens that fail to parse are reported in ``result.parse.errors`` and
        skipped; the remaining chords are still voiced.

        Args:
            progression: Whitespace-separated chord tokens, e.g. ``"I vi ii7 V7:2 I"``.
            melody:      Optional melody string, e.g. ``"E5:2 D5 C5"``. The note
                         sounding at each region's start pins its soprano.

        Returns:
            HarmonizationResult for the parsed chords.

        Raises:
            ValueError: If the melody string is malformed.
        """
        builder = TimelineBuilder(self.timeline_spec)
        melody_events = builder.parse_melody(melody) if melody else []

        parse = parse_progression(progression, self.key)
        for error in parse.errors:
            logger.warning("Skipping chord %s", error)

        regions = builder.build_regions(
            [(ChordEvent(entry.recipe), entry.quarters) for entry in parse.entries],
            labels=[entry.token for entry in parse.entries],
        )
        regions = attach_melody(regions, melody_events)

        voicing = self.strategy.voice(self.key, regions)
        logger.info(
            "Harmonized %d chord(s) in %s with %d diagnostic(s)",
            len(regions),
            self.key,
            len(voicing.diagnostics),
        )
        return HarmonizationResult(
            key=self.key,
            timeline_spec=self.timeline_spec,
            parse=parse,
            regions=regions,
            melody_events=melody_events,
            voicing=voicing,
        )

    def harmonize_melody(
        self,
        melody: str,
        prefer_tonic_start: bool = True,
        prefer_continuity: bool = False,
    ) -> HarmonizationResult:
        """
        Choose a chord for every melody note, then voice the result.

        Each note that some chord holds starts a region lasting until the
        next such note; the note pins that region's soprano. Notes no chord
        holds before any chord was chosen are left unharmonized.

        Args:
            melody:             Melody string, e.g. ``"E5 F5 G5:2 C5"``.
            prefer_tonic_start: Open on I when the first note allows it.
            prefer_continuity:  Keep a chord while it still holds the melody.

        Returns:
            HarmonizationResult whose ``melody_steps`` records every choice.

        Raises:
            ValueError: If the melody string is malformed.
        """
        builder = TimelineBuilder(self.timeline_spec)
        melody_events = builder.parse_melody(melody)
        steps = harmonize_melody(
            self.key, melody_events, prefer_tonic_start, prefer_continuity, self.analyzer
        )

        chosen = [step for step in steps if step.chosen is not None]
        parse = ProgressionParse()
        regions: list[ChordRegion] = []
        for index, step in enumerate(chosen):
            candidate = step.chosen
            if candidate is None:
                continue
            start = step.event.start_tick
            if index + 1 < len(chosen):
                end = chosen[index + 1].event.start_tick
            else:
                end = step.event.end_tick
            parse.entries.append(
                ParsedChord(
                    candidate.roman,
                    candidate.recipe,
                    self.timeline_spec.ticks_to_quarters(end - start),
                )
            )
            regions.append(
                ChordRegion(
                    start,
                    end - start,
                    ChordEvent(candidate.recipe, melody_midi=step.event.midi),
                    candidate.roman,
                )
            )

        voicing = self.strategy.voice(self.key, regions)
        logger.info(
            "Harmonized %d melody note(s) with %d chord(s) in %s",
            len(melody_events),
            len(regions),
            self.key,
        )
        return HarmonizationResult(
            key=self.key,
            timeline_spec=self.timeline_spec,
            parse=parse,
            regions=regions,
            melody_events=melody_events,
            voicing=voicing,
            melody_steps=steps,
        )
