"""HarmonizationSnapshot: read-only export of a harmonization for offline analysis."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from chordlab.chord_analyzer import ChordAnalysis, ChordAnalyzer
from chordlab.chord_parser import SUSPENSIONS, Inversion
from chordlab.harmonizer import HarmonizationResult
from chordlab.tensions import detect_tensions
from chordlab.voicing_strategy import VoicedChord


@dataclass(frozen=True)
class MelodyNoteSnapshot:
    midi: int
    note_name: str
    scale_degree: int
    chromatic_offset: int
    degree_label: str
    is_diatonic: bool
    is_chord_tone: bool


@dataclass(frozen=True)
class ChordSnapshot:
    """
    Per-chord analysis.

    ``root_degree_label`` is the accidental plus the upper-case numeral of
    the root ('bVI'); ``roman`` carries quality, seventh and inversion.
    """

    roman: str
    chord_symbol: str
    quality: str
    root_degree: int
    root_chromatic_offset: int
    root_degree_label: str
    is_diatonic: bool
    function: str
    function_label: str
    suspension: str
    inversion: str
    has_seventh: bool
    seventh_type: str
    tensions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class VoicingSnapshot:
    bass_midi: int
    tenor_midi: int
    alto_midi: int
    soprano_midi: int
    bass_note: str
    tenor_note: str
    alto_note: str
    soprano_note: str


@dataclass(frozen=True)
class StepSnapshot:
    start_tick: int
    duration_ticks: int
    time_beats: float
    melody: MelodyNoteSnapshot | None
    chord: ChordSnapshot
    voicing: VoicingSnapshot
    detected_tensions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class HarmonizationSnapshot:
    """
    Key, per-step melody/chord/voicing data and diagnostics of one run.

    Attributes:
        key:         Tonic name, e.g. 'Bb'.
        mode:        Mode label, e.g. 'Ionian'.
        description: Free-form context note.
        steps:       One entry per chord region.
        diagnostics: Diagnostic events rendered as strings.
    """

    key: str
    mode: str
    description: str
    steps: list[StepSnapshot] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


# ------------------------------------------------------------------
# Private helpers
# ------------------------------------------------------------------

def _chord_snapshot(analysis: ChordAnalysis) -> ChordSnapshot:
    recipe = analysis.recipe
    root_label = recipe.accidental.value + ("I", "II", "III", "IV", "V", "VI", "VII")[recipe.degree - 1]
    return ChordSnapshot(
        roman=analysis.roman,
        chord_symbol=analysis.symbol,
        quality=recipe.triad.value,
        root_degree=recipe.degree,
        root_chromatic_offset=recipe.root_offset,
        root_degree_label=root_label,
        is_diatonic=analysis.is_diatonic,
        function=analysis.function.value,
        function_label=analysis.function_label,
        suspension="sus4" if recipe.is_suspended else "",
        inversion={
            Inversion.ROOT: "root",
            Inversion.FIRST: "first",
            Inversion.SECOND: "second",
            Inversion.THIRD: "third",
        }[recipe.inversion],
        has_seventh=analysis.tones.seventh is not None,
        seventh_type=recipe.seventh.value if recipe.seventh is not None else (
            "implied dominant 7" if analysis.tones.implied_seventh else ""
        ),
        tensions=sorted(ext.value for ext in recipe.extensions - SUSPENSIONS),
    )


def _voicing_snapshot(voiced: VoicedChord, analysis: ChordAnalysis) -> VoicingSnapshot:
    bass, tenor, alto, soprano = voiced.names(analysis=analysis)
    return VoicingSnapshot(
        bass_midi=voiced.bass,
        tenor_midi=voiced.tenor,
        alto_midi=voiced.alto,
        soprano_midi=voiced.soprano,
        bass_note=bass,
        tenor_note=tenor,
        alto_note=alto,
        soprano_note=soprano,
    )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def build_snapshot(
    result: HarmonizationResult,
    description: str = "",
    analyzer: ChordAnalyzer | None = None,
) -> HarmonizationSnapshot:
    """
    Flatten a HarmonizationResult into plain, serializable dataclasses.

    Args:
        result:      Output of ``Harmonizer.harmonize``.
        description: Free-form note stored alongside the data.
        analyzer:    Used for melody-degree analysis; defaults to ChordAnalyzer().

    Returns:
        HarmonizationSnapshot with one step per region.
    """
    analyzer = analyzer if analyzer is not None else ChordAnalyzer()
    key = result.key
    tpq = result.timeline_spec.ticks_per_quarter
    steps: list[StepSnapshot] = []

    for region, analysis, voiced in zip(result.regions, result.analyses, result.voiced):
        melody: MelodyNoteSnapshot | None = None
        midi = region.chord_event.melody_midi
        if midi is not None:
            note = analyzer.analyze_melody(key, midi, analysis.tones)
            melody = MelodyNoteSnapshot(
                midi=note.midi,
                note_name=note.name,
                scale_degree=note.degree,
                chromatic_offset=note.offset,
                degree_label=note.label,
                is_diatonic=note.is_diatonic,
                is_chord_tone=bool(note.is_chord_tone),
            )
        steps.append(
            StepSnapshot(
                start_tick=region.start_tick,
                duration_ticks=region.duration_ticks,
                time_beats=region.start_tick / tpq,
                melody=melody,
                chord=_chord_snapshot(analysis),
                voicing=_voicing_snapshot(voiced, analysis),
                detected_tensions=[str(t) for t in detect_tensions(analysis, voiced.voices)],
            )
        )

    return HarmonizationSnapshot(
        key=key.tonic_name,
        mode=key.mode.label,
        description=description,
        steps=steps,
        diagnostics=[str(event) for event in result.diagnostics],
    )
