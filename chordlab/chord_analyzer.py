"""ChordAnalyzer: diatonic status, harmonic function and chord-tone sets for recipes."""

from dataclasses import dataclass
from enum import Enum

from chordlab.chord_parser import (
    EXTENSION_INTERVALS,
    NINTH_FAMILY,
    SEVENTH_INTERVALS,
    SUSPENDED_FOURTH,
    TRIAD_INTERVALS,
    ChordRecipe,
    Extension,
    Inversion,
    SeventhQuality,
    TriadQuality,
    chord_root_pc,
    chord_symbol,
    recipe_to_roman,
)
from chordlab.pitch import letter_after, midi_to_name, signed_interval, spelled_midi_name
from chordlab.theory_key import Mode, TheoryKey

#: Tensions the solver must place; the rest are optional colour.
REQUIRED_TENSIONS = frozenset(
    {Extension.NINE, Extension.FLAT_NINE, Extension.SHARP_NINE, Extension.SHARP_ELEVEN}
)
OPTIONAL_COLOURS = frozenset({Extension.ADD_NINE, Extension.ADD_ELEVEN, Extension.ELEVEN})

_INTERVALS_TO_TRIAD = {intervals: quality for quality, intervals in TRIAD_INTERVALS.items()}

_STACK_TO_SEVENTH = {
    (4, 7, 11): SeventhQuality.MAJOR7,
    (4, 7, 10): SeventhQuality.DOMINANT7,
    (3, 7, 10): SeventhQuality.MINOR7,
    (3, 6, 10): SeventhQuality.HALF_DIMINISHED7,
    (3, 6, 9): SeventhQuality.DIMINISHED7,
}


class FunctionTag(Enum):
    """Harmonic role of a chord relative to its key."""

    DIATONIC = "diatonic"
    SECONDARY_DOMINANT = "secondary dominant"
    BORROWED_PARALLEL_MAJOR = "borrowed from parallel major"
    BORROWED_PARALLEL_MINOR = "borrowed from parallel minor"
    NEAPOLITAN = "neapolitan"
    BORROWED_OTHER_MODES = "borrowed from another mode"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class ChordTones:
    """
    Pitch-class content of a chord, split by how strongly the voicing needs it.

    Attributes:
        root, third, fifth: Chord member pitch classes. For suspended chords
                            ``third`` holds the suspended 4th.
        seventh:            Seventh pitch class (explicit or implied), else None.
        bass:               Pitch class the inversion puts in the bass.
        required:           Must appear in every voicing.
        optional:           May be used or dropped (perfect 5th of 7th chords, add tones).
        tensions:           Requested tensions that must be placed when possible.
        augmented_fifth:    The 5th is raised and tends upward.
        implied_seventh:    The 7th was added by the dominant-9 rule.
    """

    root: int
    third: int
    fifth: int
    seventh: int | None
    bass: int
    required: frozenset[int]
    optional: frozenset[int]
    tensions: frozenset[int]
    augmented_fifth: bool = False
    implied_seventh: bool = False
    suspended: bool = False

    @property
    def all_pitch_classes(self) -> frozenset[int]:
        return self.required | self.optional | self.tensions

    @property
    def members(self) -> tuple[int, ...]:
        """Root, 3rd, 5th and (if any) 7th, without tensions."""
        base = (self.root, self.third, self.fifth)
        return base if self.seventh is None else base + (self.seventh,)

    def coverage_order(self) -> list[int]:
        """Required tones in repair priority: 7th, 3rd, root, altered 5th, then tensions."""
        order: list[int] = []
        for pc in (self.seventh, self.third, self.root, self.fifth):
            if pc is not None and pc in self.required and pc not in order:
                order.append(pc)
        order.extend(sorted(pc for pc in self.tensions if pc not in order))
        return order

    def missing(self, pitch_classes: set[int] | frozenset[int]) -> list[int]:
        """Required tones and tensions absent from *pitch_classes*, in repair order."""
        return [pc for pc in self.coverage_order() if pc not in pitch_classes]


@dataclass(frozen=True)
class ChordAnalysis:
    """
    Everything the solver and the snapshot need to know about one chord.

    Attributes:
        key:              Key the chord was analysed in.
        recipe:           The analysed recipe.
        root_pc:          Pitch class of the root.
        tones:            Required/optional/tension pitch-class sets.
        is_diatonic:      Root unaltered and all members inside the key.
        function:         Harmonic function tag.
        secondary_target: Scale degree tonicised by a secondary dominant.
        parallel_modes:   Modes on the same tonic whose scale holds every member.
        leading_tone:     Pitch class with an upward tendency (dominant function only).
        leading_target:   Pitch class that leading tone resolves to.
        roman:            Canonical Roman-numeral label.
        symbol:           Canonical chord symbol.
    """

    key: TheoryKey
    recipe: ChordRecipe
    root_pc: int
    tones: ChordTones
    is_diatonic: bool
    function: FunctionTag
    secondary_target: int | None
    parallel_modes: tuple[Mode, ...]
    leading_tone: int | None
    leading_target: int | None
    roman: str
    symbol: str

    def member_letters(self) -> dict[int, str]:
        """Letter name of every chord member, counted up from the root's letter."""
        tones = self.tones
        root_letter = self.key.degree_letter(self.recipe.degree)
        members = [
            (tones.root, 0),
            (tones.third, 3 if tones.suspended else 2),
            (tones.fifth, 4),
        ]
        if tones.seventh is not None:
            members.append((tones.seventh, 6))
        for ext in sorted(self.recipe.extensions, key=lambda e: e.value):
            if ext in EXTENSION_INTERVALS:
                steps = 1 if ext in NINTH_FAMILY else 3
                members.append(((tones.root + EXTENSION_INTERVALS[ext]) % 12, steps))

        letters: dict[int, str] = {}
        for pc, steps in members:
            letters.setdefault(pc, letter_after(root_letter, steps))
        return letters

    def spell(self, midi: int) -> str:
        """
        Name a sounding note by its role in this chord.

        The root of bVII in C is 'Bb', not 'A#'. Notes outside the chord, and
        members whose letter would need a double accidental, fall back to the
        key's sharp/flat preference.
        """
        return spelled_midi_name(midi, self.spell_pitch_class(midi % 12))

    def spell_pitch_class(self, pc: int) -> str:
        """Octave-less counterpart of :meth:`spell`."""
        return self.key.spell_pitch_class(pc, self.member_letters().get(pc % 12))

    @property
    def function_label(self) -> str:
        """Short label: 'sec. to V', 'Neapolitan', 'from || minor', ..."""
        if self.function is FunctionTag.DIATONIC:
            return ""
        if self.function is FunctionTag.SECONDARY_DOMINANT and self.secondary_target is not None:
            return f"sec. to {_diatonic_numeral(self.key, self.secondary_target)}"
        if self.function is FunctionTag.NEAPOLITAN:
            return "Neapolitan"
        if self.function is FunctionTag.BORROWED_PARALLEL_MAJOR:
            return "from || major"
        if self.function is FunctionTag.BORROWED_PARALLEL_MINOR:
            return "from || minor"
        if self.function is FunctionTag.BORROWED_OTHER_MODES:
            others = [m.label for m in self.parallel_modes if m is not self.key.mode]
            return "borrowed || " + "/".join(others)
        return "chromatic"


@dataclass(frozen=True)
class MelodyAnalysis:
    """
    A melody note described relative to the key.

    Attributes:
        midi:          MIDI note number.
        name:          Note name in the key's preferred spelling.
        degree:        Best-fit scale degree (1-7).
        offset:        Semitones from that degree (-1 = flat, +1 = sharp).
        label:         Degree label such as '5', 'b6' or '#4'.
        is_diatonic:   Offset is zero.
        is_chord_tone: Pitch class belongs to the sounding chord, when known.
    """

    midi: int
    name: str
    degree: int
    offset: int
    label: str
    is_diatonic: bool
    is_chord_tone: bool | None = None


def triad_quality_from_intervals(third: int, fifth: int) -> TriadQuality | None:
    return _INTERVALS_TO_TRIAD.get((third, fifth))


def _diatonic_numeral(key: TheoryKey, degree: int) -> str:
    third, fifth, _ = key.stacked_intervals(degree)
    numeral = ("I", "II", "III", "IV", "V", "VI", "VII")[degree - 1]
    quality = triad_quality_from_intervals(third, fifth)
    if quality in (TriadQuality.MINOR, TriadQuality.DIMINISHED):
        numeral = numeral.lower()
    if quality is TriadQuality.DIMINISHED:
        numeral += "°"
    return numeral


def degree_label(offset: int, degree: int) -> str:
    accidental = "b" * -offset if offset < 0 else "#" * offset
    return f"{accidental}{degree}"


class ChordAnalyzer:
    """
    Derives diatonic status, function tags and chord-tone sets from a recipe.

    Chord-tone rules
    ----------------
    - Triads require root, 3rd and 5th.
    - Seventh chords require root, 3rd and 7th. The 5th is optional, the
      diminished 5th of ø7 and °7 included; only an augmented 5th stays required.
    - A natural 9 on a dominant-quality chord implies the flat 7th
      ("9" means "7+9", never "triad+9").
    - 9, b9, #9 and #11 are required tensions; add9, add11 and 11 are optional.

    Function precedence
    -------------------
    Diatonic, then secondary dominant, then borrowing from the parallel
    major or minor, then Neapolitan (major bII), then any other parallel mode,
    else unclassified.
    """

    def __init__(self, ninth_implies_seventh: bool = True) -> None:
        """
        Args:
            ninth_implies_seventh: Apply the dominant-9 rule.
        """
        self.ninth_implies_seventh = ninth_implies_seventh

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _is_dominant_quality(self, recipe: ChordRecipe) -> bool:
        return (
            recipe.triad in (TriadQuality.MAJOR, TriadQuality.AUGMENTED)
            and recipe.seventh in (None, SeventhQuality.DOMINANT7)
            and not recipe.is_suspended
        )

    def _is_leading_tone_quality(self, recipe: ChordRecipe) -> bool:
        return recipe.triad is TriadQuality.DIMINISHED and recipe.seventh in (
            None,
            SeventhQuality.HALF_DIMINISHED7,
            SeventhQuality.DIMINISHED7,
        )

    def _secondary_target(self, key: TheoryKey, recipe: ChordRecipe, root_pc: int) -> int | None:
        for degree in range(1, 8):
            target_pc = key.degree_pitch_class(degree)
            if self._is_dominant_quality(recipe) and root_pc == (target_pc + 7) % 12:
                return degree
            if self._is_leading_tone_quality(recipe) and root_pc == (target_pc + 11) % 12:
                return degree
        return None

    def _parallel_modes(self, key: TheoryKey, members: tuple[int, ...]) -> tuple[Mode, ...]:
        return tuple(
            mode for mode in Mode
            if all(key.parallel(mode).contains(pc) for pc in members)
        )

    def _classify(
        self,
        key: TheoryKey,
        recipe: ChordRecipe,
        root_pc: int,
        modes: tuple[Mode, ...],
    ) -> tuple[FunctionTag, int | None]:
        target = self._secondary_target(key, recipe, root_pc)
        if target is not None:
            return FunctionTag.SECONDARY_DOMINANT, target

        in_major = Mode.IONIAN in modes and key.mode is not Mode.IONIAN
        in_minor = Mode.AEOLIAN in modes and key.mode is not Mode.AEOLIAN
        if in_major and not in_minor:
            return FunctionTag.BORROWED_PARALLEL_MAJOR, None
        if in_minor and not in_major:
            return FunctionTag.BORROWED_PARALLEL_MINOR, None

        if (
            recipe.degree == 2
            and root_pc == (key.tonic_pc + 1) % 12
            and recipe.triad is TriadQuality.MAJOR
        ):
            return FunctionTag.NEAPOLITAN, None
        if any(mode is not key.mode for mode in modes):
            return FunctionTag.BORROWED_OTHER_MODES, None
        return FunctionTag.UNCLASSIFIED, None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chord_tones(self, key: TheoryKey, recipe: ChordRecipe) -> ChordTones:
        """
        Compute the required/optional/tension pitch-class sets of a recipe.

        Args:
            key:    Key used to locate the root.
            recipe: Parsed chord.

        Returns:
            ChordTones for the chord.
        """
        root = chord_root_pc(key, recipe)
        third_iv, fifth_iv = TRIAD_INTERVALS[recipe.triad]
        suspended = recipe.is_suspended
        if suspended:
            third_iv = SUSPENDED_FOURTH

        third = (root + third_iv) % 12
        fifth = (root + fifth_iv) % 12

        seventh: int | None = None
        implied = False
        if recipe.seventh is not None:
            seventh = (root + SEVENTH_INTERVALS[recipe.seventh]) % 12
        elif (
            self.ninth_implies_seventh
            and Extension.NINE in recipe.extensions
            and self._is_dominant_quality(recipe)
        ):
            seventh = (root + SEVENTH_INTERVALS[SeventhQuality.DOMINANT7]) % 12
            implied = True

        augmented = recipe.triad == TriadQuality.AUGMENTED
        required = {root, third}
        optional: set[int] = set()
        if seventh is None or augmented:
            required.add(fifth)
        else:
            optional.add(fifth)
        if seventh is not None:
            required.add(seventh)

        tensions: set[int] = set()
        for ext in sorted(recipe.extensions, key=lambda e: e.value):
            if ext not in EXTENSION_INTERVALS:
                continue
            pc = (root + EXTENSION_INTERVALS[ext]) % 12
            if ext in REQUIRED_TENSIONS:
                tensions.add(pc)
            else:
                optional.add(pc)

        tensions -= required
        optional -= required | tensions

        bass = {
            Inversion.ROOT: root,
            Inversion.FIRST: third,
            Inversion.SECOND: fifth,
            Inversion.THIRD: seventh if seventh is not None else root,
        }[recipe.inversion]

        return ChordTones(
            root=root,
            third=third,
            fifth=fifth,
            seventh=seventh,
            bass=bass,
            required=frozenset(required),
            optional=frozenset(optional),
            tensions=frozenset(tensions),
            augmented_fifth=recipe.triad is TriadQuality.AUGMENTED,
            implied_seventh=implied,
            suspended=suspended,
        )

    def analyze(self, key: TheoryKey, recipe: ChordRecipe) -> ChordAnalysis:
        """
        Analyse a recipe in a key.

        Args:
            key:    The key of the passage.
            recipe: Parsed chord.

        Returns:
            ChordAnalysis with tones, diatonic status and function tag.
        """
        tones = self.chord_tones(key, recipe)
        root_pc = tones.root
        modes = self._parallel_modes(key, tones.members)
        is_diatonic = recipe.root_offset == 0 and all(key.contains(pc) for pc in tones.members)

        if is_diatonic:
            function, target = FunctionTag.DIATONIC, None
        else:
            function, target = self._classify(key, recipe, root_pc, modes)

        leading_tone: int | None = None
        leading_target: int | None = None
        dominant_root = root_pc == (key.tonic_pc + 7) % 12 or function is FunctionTag.SECONDARY_DOMINANT
        leading_root = root_pc == (key.tonic_pc + 11) % 12 or function is FunctionTag.SECONDARY_DOMINANT
        if self._is_dominant_quality(recipe) and dominant_root:
            leading_tone = tones.third
            leading_target = (root_pc + 5) % 12
        elif self._is_leading_tone_quality(recipe) and leading_root:
            leading_tone = root_pc
            leading_target = (root_pc + 1) % 12

        return ChordAnalysis(
            key=key,
            recipe=recipe,
            root_pc=root_pc,
            tones=tones,
            is_diatonic=is_diatonic,
            function=function,
            secondary_target=target,
            parallel_modes=modes,
            leading_tone=leading_tone,
            leading_target=leading_target,
            roman=recipe_to_roman(key, recipe),
            symbol=chord_symbol(key, recipe),
        )

    def analyze_melody(
        self, key: TheoryKey, midi: int, tones: ChordTones | None = None
    ) -> MelodyAnalysis:
        """
        Describe a melody note as a (possibly altered) scale degree.

        The degree with the smallest semitone distance wins; on a tie the
        flattened reading is preferred ('b6' over '#5').
        """
        pc = midi % 12
        best_degree, best_offset = 1, 0
        best_rank: tuple[int, int, int] | None = None
        for degree in range(1, 8):
            offset = signed_interval(pc - key.degree_pitch_class(degree))
            rank = (abs(offset), 0 if offset <= 0 else 1, degree)
            if best_rank is None or rank < best_rank:
                best_rank, best_degree, best_offset = rank, degree, offset

        return MelodyAnalysis(
            midi=midi,
            name=midi_to_name(midi, key.uses_flats),
            degree=best_degree,
            offset=best_offset,
            label=degree_label(best_offset, best_degree),
            is_diatonic=best_offset == 0,
            is_chord_tone=None if tones is None else pc in tones.all_pitch_classes,
        )
