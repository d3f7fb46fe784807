"""MelodyHarmonizer: chooses one chord per melody note from simple functional rules."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from chordlab.chord_analyzer import ChordAnalyzer, triad_quality_from_intervals
from chordlab.chord_parser import ChordRecipe, parse_chord_token, recipe_to_roman
from chordlab.theory_key import Mode, TheoryKey
from chordlab.timeline import MelodyEvent

logger = logging.getLogger(__name__)

#: Melody scale degree -> root degrees of the diatonic triads tried for it.
DEGREE_CANDIDATES: Final[dict[int, tuple[int, ...]]] = {
    1: (1, 6),
    2: (2, 5),
    3: (1, 3, 6),
    4: (4, 2),
    5: (5, 1),
    6: (6, 4),
    7: (5, 7),
}

#: (semitones above the tonic, written accidental) -> chromatic chords that hold the note.
CHROMATIC_CANDIDATES: Final[dict[tuple[int, int], tuple[str, ...]]] = {
    (1, -1): ("bII",),
    (1, 1): ("VI", "VI7"),
    (3, -1): ("bIII",),
    (3, 1): ("VII7",),
    (6, -1): ("bV",),
    (6, 1): ("II",),
    (8, -1): ("bVI",),
    (8, 1): ("III", "III7"),
    (10, -1): ("bVII",),
    (10, 1): ("#IV",),
}

#: Root degree of the previous chord -> root degrees it prefers to move to.
PREFERRED_MOVES: Final[dict[int, tuple[int, ...]]] = {
    1: (2, 4, 5),
    2: (5, 1),
    4: (5, 1),
    5: (1, 6),
    6: (2, 4),
    3: (6,),
    7: (1, 3),
}

HOLD_REASON = "holding harmony under passing tone"


@dataclass(frozen=True)
class ChordCandidate:
    """A chord that contains a given melody note, with why it was offered."""

    recipe: ChordRecipe
    roman: str
    reason: str

    @property
    def is_diatonic_triad(self) -> bool:
        return self.recipe.root_offset == 0 and self.recipe.seventh is None


@dataclass(frozen=True)
class HarmonizedStep:
    """
    The harmonization decision for one melody note.

    Attributes:
        event:      The melody note.
        candidates: Every chord that was considered for it.
        chosen:     The selected chord, or None when nothing fits.
        reason:     Why *chosen* was picked.
    """

    event: MelodyEvent
    candidates: tuple[ChordCandidate, ...]
    chosen: ChordCandidate | None
    reason: str


def _diatonic_triad(key: TheoryKey, degree: int) -> ChordRecipe | None:
    third, fifth, _ = key.stacked_intervals(degree)
    quality = triad_quality_from_intervals(third, fifth)
    if quality is None:
        return None
    return ChordRecipe(degree=degree, triad=quality)


def chord_candidates(
    key: TheoryKey,
    midi: int,
    accidental: int = 0,
    analyzer: ChordAnalyzer | None = None,
) -> list[ChordCandidate]:
    """
    Chords that contain the melody note *midi*.

    A diatonic note is offered the diatonic triads listed for its degree.
    In a major key, a note written with an accidental is also offered the
    chromatic chords that hold it (bVI for a flattened 6th, III for a
    raised 5th, ...). A candidate is kept only if the chord really
    contains the note.
    """
    analyzer = analyzer if analyzer is not None else ChordAnalyzer()
    note = analyzer.analyze_melody(key, midi)
    pc = midi % 12
    candidates: list[ChordCandidate] = []

    def offer(recipe: ChordRecipe, reason: str) -> None:
        if pc in analyzer.chord_tones(key, recipe).members:
            candidates.append(ChordCandidate(recipe, recipe_to_roman(key, recipe), reason))

    if note.is_diatonic:
        for degree in DEGREE_CANDIDATES[note.degree]:
            recipe = _diatonic_triad(key, degree)
            if recipe is not None:
                roman = recipe_to_roman(key, recipe)
                offer(recipe, f"Melody degree {note.degree} is chord tone in {roman}")

    if key.mode is Mode.IONIAN and accidental:
        relative = (pc - key.tonic_pc) % 12
        for token in CHROMATIC_CANDIDATES.get((relative, accidental), ()):
            recipe = parse_chord_token(token, key).recipe
            offer(recipe, f"Melody {note.label} is chord tone in {token}")
    return candidates


def _best_transition(
    previous: ChordCandidate, candidates: Sequence[ChordCandidate]
) -> ChordCandidate:
    if previous.is_diatonic_triad:
        for degree in PREFERRED_MOVES.get(previous.recipe.degree, ()):
            for candidate in candidates:
                if candidate.is_diatonic_triad and candidate.recipe.degree == degree:
                    return candidate
    return candidates[0]


def harmonize_melody(
    key: TheoryKey,
    events: Sequence[MelodyEvent],
    prefer_tonic_start: bool = True,
    prefer_continuity: bool = False,
    analyzer: ChordAnalyzer | None = None,
) -> list[HarmonizedStep]:
    """
    Pick one chord per melody note.

    The first harmonized note takes the tonic triad when it fits and
    *prefer_tonic_start* is set. Later notes keep the previous chord when
    *prefer_continuity* is set and it still fits, otherwise they follow
    the usual root movements (I -> ii/IV/V, ii/IV -> V/I, V -> I/vi,
    vi -> ii/IV, iii -> vi, vii° -> I/iii). A note no chord holds keeps
    the previous chord sounding.

    Args:
        key:                Key of the melody.
        events:             Melody notes in time order.
        prefer_tonic_start: Open on I when possible.
        prefer_continuity:  Hold a chord across notes it still contains.
        analyzer:           Chord analyzer used to test chord membership.

    Returns:
        One HarmonizedStep per event.
    """
    analyzer = analyzer if analyzer is not None else ChordAnalyzer()
    steps: list[HarmonizedStep] = []
    previous: ChordCandidate | None = None

    for event in events:
        candidates = chord_candidates(key, event.midi, event.accidental, analyzer)
        if not candidates:
            if previous is None:
                logger.debug("No chord holds melody note %d at tick %d", event.midi, event.start_tick)
                steps.append(HarmonizedStep(event, (), None, "no chord contains this note"))
            else:
                steps.append(HarmonizedStep(event, (), previous, HOLD_REASON))
            continue

        if previous is None:
            tonic = [c for c in candidates if c.is_diatonic_triad and c.recipe.degree == 1]
            chosen = tonic[0] if prefer_tonic_start and tonic else candidates[0]
            reason = chosen.reason
        elif prefer_continuity and previous.recipe in [c.recipe for c in candidates]:
            chosen = previous
            reason = f"keeping {previous.roman}, which still holds the melody"
        else:
            chosen = _best_transition(previous, candidates)
            reason = chosen.reason

        steps.append(HarmonizedStep(event, tuple(candidates), chosen, reason))
        previous = chosen
    return steps
