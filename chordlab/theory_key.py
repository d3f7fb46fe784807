"""TheoryKey: a tonic plus one of the seven diatonic modes."""

from dataclasses import dataclass
from enum import Enum
from typing import Final

from chordlab.pitch import (
    LETTERS,
    letter_after,
    parse_pitch_class,
    pitch_class_name,
    prefers_flats,
    signed_interval,
    spell_with_letter,
)


class Mode(Enum):
    """The seven rotations of the major scale."""

    IONIAN = "ionian"
    DORIAN = "dorian"
    PHRYGIAN = "phrygian"
    LYDIAN = "lydian"
    MIXOLYDIAN = "mixolydian"
    AEOLIAN = "aeolian"
    LOCRIAN = "locrian"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def rotation(self) -> int:
        """Index of this mode's tonic inside the parent Ionian scale."""
        return list(Mode).index(self)

    @property
    def steps(self) -> tuple[int, ...]:
        """Whole/half step pattern starting from the tonic."""
        return IONIAN_STEPS[self.rotation:] + IONIAN_STEPS[:self.rotation]

    @classmethod
    def parse(cls, text: str) -> "Mode":
        """
        Resolve a mode name, accepting 'major'/'minor' as Ionian/Aeolian.

        Raises:
            ValueError: If the name is not a known mode.
        """
        normalized = text.strip().lower()
        if normalized in MODE_ALIASES:
            return MODE_ALIASES[normalized]
        try:
            return cls(normalized)
        except ValueError:
            known = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown mode '{text}'. Use one of: {known}, major, minor.") from None


IONIAN_STEPS: Final[tuple[int, ...]] = (2, 2, 1, 2, 2, 2, 1)

MODE_ALIASES: Final[dict[str, Mode]] = {
    "major": Mode.IONIAN,
    "maj": Mode.IONIAN,
    "minor": Mode.AEOLIAN,
    "min": Mode.AEOLIAN,
}


def _scale_from_steps(tonic_pc: int, steps: tuple[int, ...]) -> tuple[int, ...]:
    pcs = [tonic_pc]
    for step in steps[:-1]:
        pcs.append((pcs[-1] + step) % 12)
    return tuple(pcs)


@dataclass(frozen=True)
class TheoryKey:
    """
    An immutable key: tonic pitch class and diatonic mode.

    Attributes:
        tonic_pc: Pitch class of the tonic (0=C ... 11=B). Normalized mod 12.
        mode:     One of the seven diatonic modes.
    """

    tonic_pc: int
    mode: Mode = Mode.IONIAN

    def __post_init__(self) -> None:
        object.__setattr__(self, "tonic_pc", self.tonic_pc % 12)

    @classmethod
    def parse(cls, text: str, mode: Mode | str | None = None) -> "TheoryKey":
        """
        Parse a key name such as ``"C"``, ``"F# dorian"``, ``"Bb minor"`` or ``"Am"``.

        An explicit *mode* argument overrides any mode named in *text*.

        Raises:
            ValueError: If the tonic or mode cannot be recognised.
        """
        parts = text.strip().split()
        if not parts or len(parts) > 2:
            raise ValueError(f"Invalid key '{text}'. Expected e.g. 'C', 'F# dorian', 'Bb minor'.")

        tonic_text = parts[0]
        parsed_mode = Mode.IONIAN
        if len(parts) == 2:
            parsed_mode = Mode.parse(parts[1])
        elif len(tonic_text) > 1 and tonic_text.endswith("m"):
            tonic_text = tonic_text[:-1]
            parsed_mode = Mode.AEOLIAN

        if mode is not None:
            parsed_mode = mode if isinstance(mode, Mode) else Mode.parse(mode)
        return cls(parse_pitch_class(tonic_text), parsed_mode)

    # ------------------------------------------------------------------
    # Scale structure
    # ------------------------------------------------------------------

    @property
    def scale_pitch_classes(self) -> tuple[int, ...]:
        """The seven diatonic pitch classes, degree 1 first."""
        return _scale_from_steps(self.tonic_pc, self.mode.steps)

    def degree_pitch_class(self, degree: int) -> int:
        """
        Pitch class of scale degree 1-7.

        Raises:
            ValueError: If *degree* is outside 1-7.
        """
        if not 1 <= degree <= 7:
            raise ValueError(f"Scale degree must be 1-7, got {degree}.")
        return self.scale_pitch_classes[degree - 1]

    def contains(self, pc: int) -> bool:
        return pc % 12 in self.scale_pitch_classes

    def degree_of(self, pc: int) -> int | None:
        """Scale degree (1-7) of a diatonic pitch class, else None."""
        pcs = self.scale_pitch_classes
        return pcs.index(pc % 12) + 1 if pc % 12 in pcs else None

    def parallel(self, mode: Mode) -> "TheoryKey":
        """The key on the same tonic in another mode."""
        return TheoryKey(self.tonic_pc, mode)

    def natural_offset(self, degree: int) -> int:
        """
        Semitone shift that moves *degree* onto the parallel Ionian degree.

        Used by the ``n`` accidental: in C Aeolian degree 3 is Eb, parallel
        Ionian degree 3 is E, so the natural offset is +1.
        """
        ionian = self.parallel(Mode.IONIAN).degree_pitch_class(degree)
        return signed_interval(ionian - self.degree_pitch_class(degree))

    def stacked_intervals(self, degree: int) -> tuple[int, int, int]:
        """
        Semitones from degree to its diatonic 3rd, 5th and 7th.

        ``C Ionian`` degree 5 gives ``(4, 7, 10)`` (a dominant seventh).
        """
        pcs = self.scale_pitch_classes
        root = pcs[degree - 1]
        return tuple(  # type: ignore[return-value]
            (pcs[(degree - 1 + step) % 7] - root) % 12 for step in (2, 4, 6)
        )

    # ------------------------------------------------------------------
    # Spelling
    # ------------------------------------------------------------------

    @property
    def ionian_tonic_pc(self) -> int:
        """Tonic of the major key that shares this key's signature."""
        return (self.tonic_pc - sum(IONIAN_STEPS[:self.mode.rotation])) % 12

    @property
    def uses_flats(self) -> bool:
        return prefers_flats(self.ionian_tonic_pc)

    @property
    def tonic_name(self) -> str:
        return pitch_class_name(self.tonic_pc, self.uses_flats)

    @property
    def tonic_letter(self) -> str:
        return self.tonic_name[0]

    @property
    def name(self) -> str:
        return f"{self.tonic_name} {self.mode.label}"

    def degree_letter(self, degree: int) -> str:
        return letter_after(self.tonic_letter, degree - 1)

    def degree_for_letter(self, letter: str) -> int:
        """Scale degree whose letter name is *letter* (letter distance from the tonic)."""
        return (LETTERS.index(letter.upper()) - LETTERS.index(self.tonic_letter)) % 7 + 1

    def spell_pitch_class(self, pc: int, letter: str | None = None) -> str:
        """Spell *pc*, on *letter* when that needs at most one accidental."""
        if letter is not None:
            spelled = spell_with_letter(pc, letter)
            if spelled is not None:
                return spelled
        return pitch_class_name(pc, self.uses_flats)

    def spell_degree(self, degree: int, offset: int = 0) -> str:
        """Spell scale degree *degree* shifted by *offset* semitones ('bVII' in C -> 'Bb')."""
        pc = (self.degree_pitch_class(degree) + offset) % 12
        return self.spell_pitch_class(pc, self.degree_letter(degree))

    def __str__(self) -> str:
        return self.name
