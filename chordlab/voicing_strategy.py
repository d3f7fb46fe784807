"""VoicingStrategy: Strategy interface and value types for four-part voicings."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum

from chordlab.chord_analyzer import ChordAnalysis
from chordlab.diagnostics import RegionDiagEvent
from chordlab.pitch import midi_to_name
from chordlab.theory_key import TheoryKey
from chordlab.timeline import ChordRegion


class Voice(IntEnum):
    """Fixed voice slots; a VoicedChord is always indexed in this order."""

    BASS = 0
    TENOR = 1
    ALTO = 2
    SOPRANO = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class VoicedChord:
    """
    Four concrete MIDI notes for one chord region.

    Attributes:
        voices: ``(bass, tenor, alto, soprano)`` MIDI note numbers. The order
                is positional and never re-sorted by pitch.
    """

    voices: tuple[int, int, int, int]

    @property
    def bass(self) -> int:
        return self.voices[Voice.BASS]

    @property
    def tenor(self) -> int:
        return self.voices[Voice.TENOR]

    @property
    def alto(self) -> int:
        return self.voices[Voice.ALTO]

    @property
    def soprano(self) -> int:
        return self.voices[Voice.SOPRANO]

    @property
    def pitch_classes(self) -> set[int]:
        return {midi % 12 for midi in self.voices}

    def names(
        self, use_flats: bool = False, analysis: ChordAnalysis | None = None
    ) -> tuple[str, ...]:
        """Note names, spelled by chord role when *analysis* is given."""
        if analysis is not None:
            return tuple(analysis.spell(midi) for midi in self.voices)
        return tuple(midi_to_name(midi, use_flats) for midi in self.voices)


@dataclass(frozen=True)
class VoiceMotion:
    """
    Per-voice movement into a region.

    Attributes:
        deltas:      Signed semitone change per voice; None for the first region.
        large_leaps: True where the absolute change reaches the large-leap threshold.
    """

    deltas: tuple[int | None, ...]
    large_leaps: tuple[bool, ...]


@dataclass(frozen=True)
class VoicingConfig:
    """
    Immutable tuning knobs for the voice-leading solver.

    Ranges are inclusive MIDI windows. Weights scale the cost terms:
    movement (per voice), register gravity toward the tenor/alto centres,
    compression toward target gaps, coverage and doubling penalties, and
    tendency-tone bonuses.
    """

    bass_range: tuple[int, int] = (36, 60)      # C2-C4
    tenor_range: tuple[int, int] = (48, 67)     # C3-G4
    alto_range: tuple[int, int] = (53, 74)      # F3-D5
    soprano_range: tuple[int, int] = (57, 81)   # A3-A5

    max_soprano_alto: int = 12
    max_alto_tenor: int = 12
    max_tenor_bass: int = 24

    bass_weight: float = 1.0
    tenor_weight: float = 0.6
    alto_weight: float = 0.6
    soprano_weight: float = 1.0

    tenor_center: float = 55.0
    alto_center: float = 62.0
    register_weight: float = 0.05

    # First region only: pull the outer voices toward these anchors.
    bass_center: float = 45.0
    soprano_center: float = 69.0
    anchor_weight: float = 0.5

    alto_tenor_gap: float = 5.0
    soprano_alto_gap: float = 4.0
    compression_weight: float = 0.3

    coverage_penalty: float = 100.0
    tension_penalty: float = 60.0
    tendency_doubling_penalty: float = 8.0
    third_doubling_penalty: float = 2.0
    other_doubling_penalty: float = 0.5

    preparation_bonus: float = 2.0
    unprepared_penalty: float = 4.0
    leading_tone_bonus: float = 2.0
    leading_tone_soften: float = 0.1
    common_tone_bonus: float = 3.0

    large_leap: int = 5
    repair_slack: int = 4

    def __post_init__(self) -> None:
        for name in ("bass_range", "tenor_range", "alto_range", "soprano_range"):
            low, high = getattr(self, name)
            if not 0 <= low <= high <= 127:
                raise ValueError(f"{name} must satisfy 0 <= low <= high <= 127, got ({low}, {high}).")
            object.__setattr__(self, name, (int(low), int(high)))
        for name in ("max_soprano_alto", "max_alto_tenor", "max_tenor_bass"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1.")
        if not 0.0 <= self.leading_tone_soften <= 1.0:
            raise ValueError("leading_tone_soften must be between 0 and 1.")

    @property
    def weights(self) -> tuple[float, float, float, float]:
        return (self.bass_weight, self.tenor_weight, self.alto_weight, self.soprano_weight)

    def voice_range(self, voice: Voice) -> tuple[int, int]:
        return (self.bass_range, self.tenor_range, self.alto_range, self.soprano_range)[voice]


@dataclass
class VoicingResult:
    """
    Output of a VoicingStrategy run, aligned 1:1 with the input regions.

    Attributes:
        voiced:      One VoicedChord per region.
        motions:     Per-voice movement into each region.
        diagnostics: Ordered advisory events.
        analyses:    ChordAnalysis per region.
    """

    voiced: list[VoicedChord] = field(default_factory=list)
    motions: list[VoiceMotion] = field(default_factory=list)
    diagnostics: list[RegionDiagEvent] = field(default_factory=list)
    analyses: list[ChordAnalysis] = field(default_factory=list)


def voicing_violations(voices: Sequence[int], config: VoicingConfig) -> list[str]:
    """
    List ordering and spacing problems of a (bass, tenor, alto, soprano) tuple.

    Ordering is ``bass < tenor <= alto < soprano``; only tenor and alto may
    share a note.
    """
    bass, tenor, alto, soprano = voices
    problems: list[str] = []
    if not bass < tenor:
        problems.append(f"bass {bass} not below tenor {tenor}")
    if not tenor <= alto:
        problems.append(f"tenor {tenor} above alto {alto}")
    if not alto < soprano:
        problems.append(f"alto {alto} not below soprano {soprano}")
    if soprano - alto > config.max_soprano_alto:
        problems.append(f"soprano-alto gap {soprano - alto} > {config.max_soprano_alto}")
    if alto - tenor > config.max_alto_tenor:
        problems.append(f"alto-tenor gap {alto - tenor} > {config.max_alto_tenor}")
    if tenor - bass > config.max_tenor_bass:
        problems.append(f"tenor-bass gap {tenor - bass} > {config.max_tenor_bass}")
    return problems


# ── Abstract base ────────────────────────────────────────────────────────────

class VoicingStrategy(ABC):
    """
    Abstract Strategy for turning chord regions into four-part voicings.

    Concrete subclasses implement ``voice()``; they must return exactly one
    VoicedChord per region, in region order.
    """

    @abstractmethod
    def voice(self, key: TheoryKey, regions: Sequence[ChordRegion]) -> VoicingResult:
        """
        Voice every region of a progression.

        Args:
            key:     Key the recipes are expressed in.
            regions: Contiguous chord regions from the TimelineBuilder.

        Returns:
            VoicingResult aligned with *regions*.
        """
