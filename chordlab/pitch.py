"""PitchModel: MIDI, pitch-class and note-name conversions."""

import re
from typing import Final

# ── MIDI constants ──────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDDLE_C_MIDI = 60  # C4 in Scientific Pitch Notation

# Chromatic pitch class names (index 0 = C)
SHARP_NAMES: Final[list[str]] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_NAMES: Final[list[str]] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

#: Natural letters in scale order and their pitch classes.
LETTERS: Final[str] = "CDEFGAB"
LETTER_PITCH_CLASSES: Final[dict[str, int]] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}

#: Major-key tonics (pitch classes) conventionally written with sharps.
SHARP_KEY_TONICS: Final[frozenset[int]] = frozenset({0, 2, 4, 7, 9, 11})

_ACCIDENTALS: Final[dict[str, int]] = {"": 0, "#": 1, "♯": 1, "b": -1, "♭": -1}

_NOTE_RE = re.compile(r"^(?P<letter>[A-Ga-g])(?P<accidental>[#♯b♭]?)(?P<octave>-?\d+)$")
_PITCH_CLASS_RE = re.compile(r"^(?P<letter>[A-Ga-g])(?P<accidental>[#♯b♭]?)$")


def pitch_class(midi: int) -> int:
    """Return the pitch class (0-11) of a MIDI note number."""
    return midi % SEMITONES_PER_OCTAVE


def pitch_class_to_midi(pc: int, octave: int) -> int:
    """
    Convert a pitch class (0-11) and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, C1 = 24, ... C4 (Middle C) = 60.

    Args:
        pc:     0=C, 1=C#, 2=D, ..., 11=B.
        octave: Scientific octave number (e.g. 4 for Middle C octave).

    Returns:
        MIDI note number.
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + pc % SEMITONES_PER_OCTAVE


def octave_of(midi: int) -> int:
    """Scientific octave number of a MIDI note (60 -> 4)."""
    return midi // SEMITONES_PER_OCTAVE - 1


def signed_interval(semitones: int) -> int:
    """Fold a semitone distance into the range -6..+5."""
    return (semitones + 6) % SEMITONES_PER_OCTAVE - 6


def prefers_flats(ionian_tonic_pc: int) -> bool:
    """True when a major key on this tonic is conventionally spelled with flats."""
    return ionian_tonic_pc % SEMITONES_PER_OCTAVE not in SHARP_KEY_TONICS


def pitch_class_name(pc: int, use_flats: bool = False) -> str:
    """Name a pitch class with a single accidental, e.g. 'C#' or 'Db'."""
    names = FLAT_NAMES if use_flats else SHARP_NAMES
    return names[pc % SEMITONES_PER_OCTAVE]


def midi_to_name(midi: int, use_flats: bool = False) -> str:
    """Name a MIDI note in scientific pitch notation, e.g. 61 -> 'C#4'."""
    return f"{pitch_class_name(midi, use_flats)}{octave_of(midi)}"


def parse_pitch_class(text: str) -> int:
    """
    Parse a bare note name without octave ('F#', 'Bb', 'e') into a pitch class.

    Raises:
        ValueError: If *text* is not a letter A-G with an optional accidental.
    """
    match = _PITCH_CLASS_RE.match(text.strip())
    if not match:
        raise ValueError(f"Invalid pitch class name '{text}'.")
    letter = match.group("letter").upper()
    return (LETTER_PITCH_CLASSES[letter] + _ACCIDENTALS[match.group("accidental")]) % 12


def parse_note_name(text: str) -> int:
    """
    Parse a note name with octave into a MIDI note number.

    Accepts a letter A-G (either case), an optional ``#``/``♯``/``b``/``♭``
    and a signed octave: ``C4`` -> 60, ``F#3`` -> 54, ``Bb-1`` -> 10.

    Raises:
        ValueError: If the text is malformed or the result is outside 0-127.
    """
    match = _NOTE_RE.match(text.strip())
    if not match:
        raise ValueError(f"Invalid note name '{text}'. Expected e.g. 'C4', 'F#3', 'Bb5'.")
    letter = match.group("letter").upper()
    pc = LETTER_PITCH_CLASSES[letter] + _ACCIDENTALS[match.group("accidental")]
    midi = (int(match.group("octave")) + 1) * SEMITONES_PER_OCTAVE + pc
    if not 0 <= midi <= 127:
        raise ValueError(f"Note '{text}' is outside the MIDI range 0-127.")
    return midi


def written_accidental(text: str) -> int:
    """Accidental a note name is written with: -1, 0 or +1 ('Bb4' -> -1)."""
    match = _NOTE_RE.match(text.strip())
    if not match:
        raise ValueError(f"Invalid note name '{text}'.")
    return _ACCIDENTALS[match.group("accidental")]


def letter_after(letter: str, steps: int) -> str:
    """Letter *steps* scale steps above *letter* (wraps B -> C)."""
    return LETTERS[(LETTERS.index(letter) + steps) % len(LETTERS)]


def spell_with_letter(pc: int, letter: str) -> str | None:
    """
    Spell *pc* on a fixed letter, or return None if that needs a double accidental.

    >>> spell_with_letter(6, "G")
    'Gb'
    """
    diff = signed_interval(pc - LETTER_PITCH_CLASSES[letter])
    if diff == 0:
        return letter
    if diff == 1:
        return f"{letter}#"
    if diff == -1:
        return f"{letter}b"
    return None


def spelled_midi_name(midi: int, spelled_pc: str) -> str:
    """
    Attach the octave to an already spelled pitch class.

    The octave follows the letter, so ``(59, 'Cb')`` -> ``'Cb4'`` and
    ``(60, 'B#')`` -> ``'B#3'``.
    """
    shift = signed_interval(midi - LETTER_PITCH_CLASSES[spelled_pc[0]])
    return f"{spelled_pc}{octave_of(midi - shift)}"
