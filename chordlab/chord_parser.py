"""ChordParser: turns Roman-numeral and chord-symbol tokens into ChordRecipes."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Final

from chordlab.pitch import letter_after, parse_pitch_class, signed_interval
from chordlab.theory_key import TheoryKey

logger = logging.getLogger(__name__)


# ── Recipe vocabulary ────────────────────────────────────────────────────────

class Accidental(Enum):
    """Chromatic alteration of the chord root relative to its scale degree."""

    NONE = ""
    FLAT = "b"
    SHARP = "#"
    NATURAL = "n"


class TriadQuality(Enum):
    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "diminished"
    AUGMENTED = "augmented"


class SeventhQuality(Enum):
    MAJOR7 = "maj7"
    MINOR7 = "m7"
    DOMINANT7 = "7"
    HALF_DIMINISHED7 = "ø7"
    DIMINISHED7 = "°7"


class Inversion(IntEnum):
    ROOT = 0
    FIRST = 1
    SECOND = 2
    THIRD = 3


class Extension(Enum):
    """Requested tensions and colour tones; values are their surface tokens."""

    NINE = "9"
    FLAT_NINE = "b9"
    SHARP_NINE = "#9"
    ADD_NINE = "add9"
    ELEVEN = "11"
    SHARP_ELEVEN = "#11"
    ADD_ELEVEN = "add11"
    SUS4 = "sus4"
    SUS4_WITH_SEVENTH = "7sus4"


#: Semitones above the root for the 3rd and 5th of each triad quality.
TRIAD_INTERVALS: Final[dict[TriadQuality, tuple[int, int]]] = {
    TriadQuality.MAJOR: (4, 7),
    TriadQuality.MINOR: (3, 7),
    TriadQuality.DIMINISHED: (3, 6),
    TriadQuality.AUGMENTED: (4, 8),
}

#: Semitones above the root for each seventh quality.
SEVENTH_INTERVALS: Final[dict[SeventhQuality, int]] = {
    SeventhQuality.MAJOR7: 11,
    SeventhQuality.MINOR7: 10,
    SeventhQuality.DOMINANT7: 10,
    SeventhQuality.HALF_DIMINISHED7: 10,
    SeventhQuality.DIMINISHED7: 9,
}

#: Semitones above the root for each extension pitch.
EXTENSION_INTERVALS: Final[dict[Extension, int]] = {
    Extension.NINE: 2,
    Extension.FLAT_NINE: 1,
    Extension.SHARP_NINE: 3,
    Extension.ADD_NINE: 2,
    Extension.ELEVEN: 5,
    Extension.SHARP_ELEVEN: 6,
    Extension.ADD_ELEVEN: 5,
}

SUSPENDED_FOURTH = 5

NINTH_FAMILY: Final[frozenset[Extension]] = frozenset(
    {Extension.NINE, Extension.FLAT_NINE, Extension.SHARP_NINE, Extension.ADD_NINE}
)
ELEVENTH_FAMILY: Final[frozenset[Extension]] = frozenset(
    {Extension.ELEVEN, Extension.SHARP_ELEVEN, Extension.ADD_ELEVEN}
)
SUSPENSIONS: Final[frozenset[Extension]] = frozenset({Extension.SUS4, Extension.SUS4_WITH_SEVENTH})

#: Canonical rendering order for extension tokens.
EXTENSION_ORDER: Final[tuple[Extension, ...]] = (
    Extension.FLAT_NINE,
    Extension.NINE,
    Extension.SHARP_NINE,
    Extension.ELEVEN,
    Extension.SHARP_ELEVEN,
    Extension.ADD_NINE,
    Extension.ADD_ELEVEN,
)

ROMAN_NUMERALS: Final[tuple[str, ...]] = ("I", "II", "III", "IV", "V", "VI", "VII")


@dataclass(frozen=True)
class ChordRecipe:
    """
    Canonical, syntax-independent description of a chord in a key.

    Attributes:
        degree:      Scale degree of the root, 1-7.
        triad:       Triad quality.
        accidental:  Chromatic alteration marker of the root.
        root_offset: Semitone shift of the root from the diatonic degree.
                     For ``Accidental.NATURAL`` this is the parallel-Ionian shift.
        seventh:     Seventh quality, or None for a triad.
        inversion:   Which chord member is in the bass.
        extensions:  Requested tensions, colour tones and suspensions.
    """

    degree: int
    triad: TriadQuality = TriadQuality.MAJOR
    accidental: Accidental = Accidental.NONE
    root_offset: int = 0
    seventh: SeventhQuality | None = None
    inversion: Inversion = Inversion.ROOT
    extensions: frozenset[Extension] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not 1 <= self.degree <= 7:
            raise ValueError(f"Scale degree must be 1-7, got {self.degree}.")
        if self.inversion is Inversion.THIRD and self.seventh is None:
            raise ValueError("Third inversion requires a seventh.")
        object.__setattr__(self, "extensions", frozenset(self.extensions))

    @property
    def has_seventh(self) -> bool:
        return self.seventh is not None

    @property
    def is_suspended(self) -> bool:
        return bool(self.extensions & SUSPENSIONS)


# ── Errors and results ───────────────────────────────────────────────────────

class ParseErrorKind(Enum):
    UNKNOWN_ROOT = "unknown numeral or letter"
    UNSUPPORTED_QUALITY = "unsupported quality combination"
    INVALID_INVERSION = "inversion incompatible with chord"
    MALFORMED_DURATION = "malformed duration"


class ChordParseError(ValueError):
    """
    A single token could not be parsed.

    Attributes:
        token:  The offending token, as written.
        reason: Human-readable explanation.
        kind:   Which family of failure occurred.
    """

    def __init__(self, token: str, reason: str, kind: ParseErrorKind) -> None:
        super().__init__(f"'{token}': {reason}")
        self.token = token
        self.reason = reason
        self.kind = kind


@dataclass(frozen=True)
class ParsedChord:
    """A successfully parsed token with its duration in quarter notes."""

    token: str
    recipe: ChordRecipe
    quarters: float = 1.0


@dataclass
class ProgressionParse:
    """Outcome of parsing a whitespace-separated batch of tokens."""

    entries: list[ParsedChord] = field(default_factory=list)
    errors: list[ChordParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def recipes(self) -> list[ChordRecipe]:
        return [entry.recipe for entry in self.entries]


# ── Token grammar ────────────────────────────────────────────────────────────

_ROMAN_RE = re.compile(r"^(?P<accidental>[b#nN]?)(?P<numeral>[IiVv]+)(?P<suffix>.*)$")
_SYMBOL_RE = re.compile(r"^(?P<letter>[A-G])(?P<accidental>[#♯b♭]?)(?P<suffix>.*)$")
_DURATION_RE = re.compile(r"^\s*-?\d+(\.\d+)?\s*$")
_SLASH_NOTE_RE = re.compile(r"^[A-Ga-g][#♯b♭]?$")

_TRIAD_TOKENS: Final[dict[str, TriadQuality]] = {
    "dim": TriadQuality.DIMINISHED,
    "°": TriadQuality.DIMINISHED,
    "o": TriadQuality.DIMINISHED,
    "aug": TriadQuality.AUGMENTED,
    "+": TriadQuality.AUGMENTED,
    "m": TriadQuality.MINOR,
}

#: Seventh-bearing tokens; ``maj9``/``m9`` also request a natural 9.
_SEVENTH_TOKENS: Final[frozenset[str]] = frozenset(
    {"maj7", "maj9", "m7b5", "hdim7", "ø7", "ø", "dim7", "°7", "o7", "m7", "m9", "7", "7sus4"}
)

_EXTENSION_TOKENS: Final[dict[str, Extension]] = {
    ext.value: ext for ext in Extension if ext is not Extension.SUS4_WITH_SEVENTH
}

#: Longest first so that e.g. ``m7b5`` wins over ``m7`` and ``7sus4`` over ``7``.
_SUFFIX_TOKENS: Final[tuple[str, ...]] = tuple(
    sorted(
        set(_TRIAD_TOKENS) | _SEVENTH_TOKENS | set(_EXTENSION_TOKENS),
        key=lambda tok: (-len(tok), tok),
    )
)

_INVERSION_TOKENS: Final[dict[str, Inversion]] = {
    "1": Inversion.ROOT,
    "3": Inversion.FIRST,
    "3rd": Inversion.FIRST,
    "5": Inversion.SECOND,
    "5th": Inversion.SECOND,
    "7": Inversion.THIRD,
    "7th": Inversion.THIRD,
}

_ACCIDENTAL_MARKS: Final[dict[str, Accidental]] = {
    "": Accidental.NONE,
    "b": Accidental.FLAT,
    "#": Accidental.SHARP,
    "n": Accidental.NATURAL,
    "N": Accidental.NATURAL,
}

DEFAULT_QUARTERS = 1.0
LETTER_ROOTS: Final[str] = "ABCDEFG"


# ------------------------------------------------------------------
# Private helpers
# ------------------------------------------------------------------

def _split_duration(token: str) -> tuple[str, float]:
    body, sep, duration_text = token.partition(":")
    if not sep:
        return body, DEFAULT_QUARTERS
    if not _DURATION_RE.match(duration_text):
        raise ChordParseError(
            token, f"duration '{duration_text}' is not a number", ParseErrorKind.MALFORMED_DURATION
        )
    quarters = float(duration_text)
    if quarters <= 0:
        logger.warning("Token '%s' has non-positive duration; defaulting to 1 quarter.", token)
        return body, DEFAULT_QUARTERS
    return body, quarters


def _tokenize_suffix(token: str, suffix: str) -> list[str]:
    text = suffix.replace("(", "").replace(")", "").replace(",", "")
    pieces: list[str] = []
    pos = 0
    while pos < len(text):
        for candidate in _SUFFIX_TOKENS:
            if text.startswith(candidate, pos):
                pieces.append(candidate)
                pos += len(candidate)
                break
        else:
            raise ChordParseError(
                token,
                f"unrecognised suffix '{text[pos:]}'",
                ParseErrorKind.UNSUPPORTED_QUALITY,
            )
    return pieces


def _resolve_quality(
    token: str, default_triad: TriadQuality, pieces: list[str]
) -> tuple[TriadQuality, SeventhQuality | None, frozenset[Extension]]:
    """Combine suffix pieces into (triad, seventh, extensions), rejecting conflicts."""

    def unsupported(reason: str) -> ChordParseError:
        return ChordParseError(token, reason, ParseErrorKind.UNSUPPORTED_QUALITY)

    explicit_triad: TriadQuality | None = None
    seventh_piece: str | None = None
    extensions: set[Extension] = set()

    for piece in pieces:
        if piece in _TRIAD_TOKENS:
            if explicit_triad is not None:
                raise unsupported(f"more than one triad quality ('{piece}')")
            explicit_triad = _TRIAD_TOKENS[piece]
        elif piece in _SEVENTH_TOKENS:
            if seventh_piece is not None:
                raise unsupported(f"more than one seventh ('{seventh_piece}', '{piece}')")
            seventh_piece = piece
        else:
            ext = _EXTENSION_TOKENS[piece]
            if ext in extensions:
                raise unsupported(f"duplicate extension '{piece}'")
            extensions.add(ext)

    if seventh_piece in ("maj9", "m9"):
        if Extension.NINE in extensions:
            raise unsupported("duplicate extension '9'")
        extensions.add(Extension.NINE)

    triad = explicit_triad if explicit_triad is not None else default_triad
    seventh: SeventhQuality | None = None

    if seventh_piece in ("maj7", "maj9"):
        if triad is TriadQuality.DIMINISHED:
            raise unsupported("major seventh on a diminished triad")
        seventh = SeventhQuality.MAJOR7
    elif seventh_piece in ("m7", "m9"):
        if explicit_triad in (TriadQuality.DIMINISHED, TriadQuality.AUGMENTED):
            raise unsupported(f"minor seventh on an explicit {explicit_triad.value} triad")
        triad = TriadQuality.MINOR
        seventh = SeventhQuality.MINOR7
    elif seventh_piece in ("m7b5", "hdim7", "ø7", "ø"):
        if explicit_triad not in (None, TriadQuality.DIMINISHED):
            raise unsupported("half-diminished seventh needs a diminished triad")
        triad = TriadQuality.DIMINISHED
        seventh = SeventhQuality.HALF_DIMINISHED7
    elif seventh_piece in ("dim7", "°7", "o7"):
        if explicit_triad not in (None, TriadQuality.DIMINISHED):
            raise unsupported("diminished seventh needs a diminished triad")
        triad = TriadQuality.DIMINISHED
        seventh = SeventhQuality.DIMINISHED7
    elif seventh_piece == "7":
        if triad is TriadQuality.MINOR:
            seventh = SeventhQuality.MINOR7
        elif triad is TriadQuality.DIMINISHED:
            seventh = SeventhQuality.HALF_DIMINISHED7
        else:
            seventh = SeventhQuality.DOMINANT7
    elif seventh_piece == "7sus4":
        if Extension.SUS4 in extensions:
            raise unsupported("duplicate suspension")
        extensions.add(Extension.SUS4_WITH_SEVENTH)
        seventh = SeventhQuality.DOMINANT7

    if Extension.SUS4 in extensions:
        if explicit_triad is not None:
            raise unsupported("a suspended chord cannot also name a triad quality")
        if seventh is SeventhQuality.DOMINANT7:
            extensions.discard(Extension.SUS4)
            extensions.add(Extension.SUS4_WITH_SEVENTH)
        elif seventh is not None:
            raise unsupported(f"suspension with a {seventh.value} seventh")
    if extensions & SUSPENSIONS:
        if explicit_triad is not None and seventh_piece == "7sus4":
            raise unsupported("a suspended chord cannot also name a triad quality")
        triad = TriadQuality.MAJOR
        if extensions & ELEVENTH_FAMILY:
            raise unsupported("an eleventh on a suspended fourth chord")

    if len(extensions & NINTH_FAMILY) > 1:
        raise unsupported("more than one ninth")
    if len(extensions & ELEVENTH_FAMILY) > 1:
        raise unsupported("more than one eleventh")

    return triad, seventh, frozenset(extensions)


def _chord_member_pcs(
    root_pc: int, triad: TriadQuality, seventh: SeventhQuality | None, suspended: bool
) -> dict[Inversion, int]:
    third, fifth = TRIAD_INTERVALS[triad]
    members = {
        Inversion.ROOT: root_pc,
        Inversion.SECOND: (root_pc + fifth) % 12,
    }
    if not suspended:
        members[Inversion.FIRST] = (root_pc + third) % 12
    if seventh is not None:
        members[Inversion.THIRD] = (root_pc + SEVENTH_INTERVALS[seventh]) % 12
    return members


def _resolve_inversion(
    token: str,
    inversion_text: str | None,
    root_pc: int,
    triad: TriadQuality,
    seventh: SeventhQuality | None,
    suspended: bool,
) -> Inversion:
    if inversion_text is None:
        return Inversion.ROOT

    members = _chord_member_pcs(root_pc, triad, seventh, suspended)
    if inversion_text in _INVERSION_TOKENS:
        inversion = _INVERSION_TOKENS[inversion_text]
    elif _SLASH_NOTE_RE.match(inversion_text):
        bass_pc = parse_pitch_class(inversion_text)
        matches = [inv for inv, pc in members.items() if pc == bass_pc]
        if not matches:
            raise ChordParseError(
                token,
                f"bass note '{inversion_text}' is not a chord tone",
                ParseErrorKind.INVALID_INVERSION,
            )
        inversion = matches[0]
    else:
        raise ChordParseError(
            token, f"unknown inversion '/{inversion_text}'", ParseErrorKind.INVALID_INVERSION
        )

    if inversion is Inversion.THIRD and seventh is None:
        raise ChordParseError(
            token, "third inversion needs a seventh chord", ParseErrorKind.INVALID_INVERSION
        )
    if inversion is Inversion.FIRST and suspended:
        raise ChordParseError(
            token, "a suspended chord has no third to put in the bass", ParseErrorKind.INVALID_INVERSION
        )
    return inversion


def _parse_roman(token: str, body: str, key: TheoryKey) -> ChordRecipe:
    body, slash, inversion_text = body.partition("/")
    match = _ROMAN_RE.match(body)
    if not match:
        raise ChordParseError(token, f"unknown numeral in '{body}'", ParseErrorKind.UNKNOWN_ROOT)

    numeral = match.group("numeral")
    upper = numeral.upper()
    if upper not in ROMAN_NUMERALS or numeral not in (upper, numeral.lower()):
        raise ChordParseError(token, f"unknown numeral '{numeral}'", ParseErrorKind.UNKNOWN_ROOT)
    degree = ROMAN_NUMERALS.index(upper) + 1
    default_triad = TriadQuality.MAJOR if numeral.isupper() else TriadQuality.MINOR

    accidental = _ACCIDENTAL_MARKS[match.group("accidental")]
    if accidental is Accidental.FLAT:
        offset = -1
    elif accidental is Accidental.SHARP:
        offset = 1
    elif accidental is Accidental.NATURAL:
        offset = key.natural_offset(degree)
    else:
        offset = 0

    pieces = _tokenize_suffix(token, match.group("suffix"))
    triad, seventh, extensions = _resolve_quality(token, default_triad, pieces)
    root_pc = (key.degree_pitch_class(degree) + offset) % 12
    inversion = _resolve_inversion(
        token,
        inversion_text if slash else None,
        root_pc,
        triad,
        seventh,
        bool(extensions & SUSPENSIONS),
    )
    return ChordRecipe(
        degree=degree,
        triad=triad,
        accidental=accidental,
        root_offset=offset,
        seventh=seventh,
        inversion=inversion,
        extensions=extensions,
    )


def _parse_symbol(token: str, body: str, key: TheoryKey) -> ChordRecipe:
    body, slash, inversion_text = body.partition("/")
    match = _SYMBOL_RE.match(body)
    if not match:
        raise ChordParseError(token, f"unknown chord root in '{body}'", ParseErrorKind.UNKNOWN_ROOT)

    letter = match.group("letter")
    root_pc = parse_pitch_class(letter + match.group("accidental"))
    degree = key.degree_for_letter(letter)
    offset = signed_interval(root_pc - key.degree_pitch_class(degree))

    if offset == 0:
        accidental = Accidental.NONE
    elif offset == key.natural_offset(degree):
        accidental = Accidental.NATURAL
    elif offset == -1:
        accidental = Accidental.FLAT
    elif offset == 1:
        accidental = Accidental.SHARP
    else:
        raise ChordParseError(
            token,
            f"root '{letter}{match.group('accidental')}' is too far from degree {degree} of {key.name}",
            ParseErrorKind.UNKNOWN_ROOT,
        )

    pieces = _tokenize_suffix(token, match.group("suffix"))
    triad, seventh, extensions = _resolve_quality(token, TriadQuality.MAJOR, pieces)
    inversion = _resolve_inversion(
        token,
        inversion_text if slash else None,
        root_pc,
        triad,
        seventh,
        bool(extensions & SUSPENSIONS),
    )
    return ChordRecipe(
        degree=degree,
        triad=triad,
        accidental=accidental,
        root_offset=offset,
        seventh=seventh,
        inversion=inversion,
        extensions=extensions,
    )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def parse_chord_token(token: str, key: TheoryKey) -> ParsedChord:
    """
    Parse one token such as ``bVII7/3rd``, ``V7b9``, ``Cmaj9`` or ``ii7:2``.

    Roman numerals are read relative to *key*; upper case means a major
    triad and lower case a minor one unless a quality suffix overrides it.
    Absolute chord symbols (upper-case letter A-G) are converted to the
    scale degree with the same letter name.

    Args:
        token: Token text, optionally ending in ``:N`` (duration in quarters).
        key:   Key used to resolve degrees and ``n`` accidentals.

    Returns:
        ParsedChord holding the recipe and its duration.

    Raises:
        ChordParseError: With ``kind`` naming the failure family.
    """
    text = token.strip()
    if not text:
        raise ChordParseError(token, "empty token", ParseErrorKind.UNKNOWN_ROOT)

    body, quarters = _split_duration(text)
    if not body:
        raise ChordParseError(token, "missing chord before duration", ParseErrorKind.UNKNOWN_ROOT)
    if body[0] in LETTER_ROOTS:
        recipe = _parse_symbol(text, body, key)
    else:
        recipe = _parse_roman(text, body, key)
    return ParsedChord(token=text, recipe=recipe, quarters=quarters)


def parse_progression(text: str, key: TheoryKey) -> ProgressionParse:
    """
    Parse a whitespace-separated progression, collecting per-token errors.

    A bad token never affects the tokens parsed before or after it.
    """
    result = ProgressionParse()
    for token in text.split():
        try:
            result.entries.append(parse_chord_token(token, key))
        except ChordParseError as exc:
            logger.debug("Rejected chord token %s", exc)
            result.errors.append(exc)
    return result


def chord_root_pc(key: TheoryKey, recipe: ChordRecipe) -> int:
    """Pitch class of the recipe's root in *key*."""
    return (key.degree_pitch_class(recipe.degree) + recipe.root_offset) % 12


def _extension_suffix(recipe: ChordRecipe) -> str:
    tokens = [ext.value for ext in EXTENSION_ORDER if ext in recipe.extensions]
    if not tokens:
        return ""
    if recipe.seventh is not None:
        return "(" + ",".join(tokens) + ")"
    return "".join(tokens)


def recipe_to_roman(key: TheoryKey, recipe: ChordRecipe) -> str:
    """
    Render a recipe as a Roman numeral, e.g. ``bVII7/3``, ``viiø7``, ``V7(b9)``.

    The result parses back to the same recipe in the same key.
    """
    numeral = ROMAN_NUMERALS[recipe.degree - 1]
    if recipe.triad in (TriadQuality.MINOR, TriadQuality.DIMINISHED) and not recipe.is_suspended:
        numeral = numeral.lower()

    prefix = recipe.accidental.value

    if Extension.SUS4_WITH_SEVENTH in recipe.extensions:
        quality = "7sus4"
    elif Extension.SUS4 in recipe.extensions:
        quality = "sus4"
    elif recipe.seventh is SeventhQuality.HALF_DIMINISHED7:
        quality = "ø7"
    elif recipe.seventh is SeventhQuality.DIMINISHED7:
        quality = "°7"
    else:
        quality = {
            TriadQuality.DIMINISHED: "°",
            TriadQuality.AUGMENTED: "+",
        }.get(recipe.triad, "")
        if recipe.seventh is SeventhQuality.MAJOR7:
            quality += "maj7"
        elif recipe.seventh is not None:
            quality += "7"

    inversion = {
        Inversion.ROOT: "",
        Inversion.FIRST: "/3",
        Inversion.SECOND: "/5",
        Inversion.THIRD: "/7",
    }[recipe.inversion]
    return f"{prefix}{numeral}{quality}{_extension_suffix(recipe)}{inversion}"


def chord_symbol(key: TheoryKey, recipe: ChordRecipe) -> str:
    """Render a recipe as an absolute chord symbol, e.g. ``Bb7/D`` or ``Cmaj7(9)``."""
    root_pc = chord_root_pc(key, recipe)
    root_letter = key.degree_letter(recipe.degree)
    root_name = key.spell_pitch_class(root_pc, root_letter)

    if Extension.SUS4_WITH_SEVENTH in recipe.extensions:
        quality = "7sus4"
    elif Extension.SUS4 in recipe.extensions:
        quality = "sus4"
    elif recipe.seventh is SeventhQuality.HALF_DIMINISHED7:
        quality = "m7b5"
    elif recipe.seventh is SeventhQuality.DIMINISHED7:
        quality = "dim7"
    else:
        quality = {
            TriadQuality.MAJOR: "",
            TriadQuality.MINOR: "m",
            TriadQuality.DIMINISHED: "dim",
            TriadQuality.AUGMENTED: "aug",
        }[recipe.triad]
        if recipe.seventh is SeventhQuality.MAJOR7:
            quality += "maj7"
        elif recipe.seventh is not None:
            quality += "7"

    bass = ""
    if recipe.inversion is not Inversion.ROOT:
        members = _chord_member_pcs(root_pc, recipe.triad, recipe.seventh, recipe.is_suspended)
        letter_steps = {Inversion.FIRST: 2, Inversion.SECOND: 4, Inversion.THIRD: 6}
        bass_letter = letter_after(root_letter, letter_steps[recipe.inversion])
        bass = "/" + key.spell_pitch_class(members[recipe.inversion], bass_letter)
    return f"{root_name}{quality}{_extension_suffix(recipe)}{bass}"
