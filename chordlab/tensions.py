"""TensionDetector: names the 9ths and 11ths a finished voicing actually sounds."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from chordlab.chord_analyzer import ChordAnalysis
from chordlab.chord_parser import SeventhQuality, TriadQuality


class TensionKind(Enum):
    FLAT_NINE = "b9"
    NINE = "9"
    SHARP_NINE = "#9"
    ELEVEN = "11"
    SHARP_ELEVEN = "#11"


class TensionClass(Enum):
    COLOR_TONE = "color tone"
    SUSPENSION = "suspension"
    NON_CHORD_TONE = "non-chord tone"


@dataclass(frozen=True)
class DetectedTension:
    kind: TensionKind
    classification: TensionClass

    def __str__(self) -> str:
        return f"{self.kind.value} ({self.classification.value})"


#: Semitones above the root checked in every voice.
NINTHS: dict[int, TensionKind] = {
    1: TensionKind.FLAT_NINE,
    2: TensionKind.NINE,
    3: TensionKind.SHARP_NINE,
}

#: Semitones above the root checked in the top voice only.
ELEVENTHS: dict[int, TensionKind] = {
    5: TensionKind.ELEVEN,
    6: TensionKind.SHARP_ELEVEN,
}


def _supports_sharp_eleven(analysis: ChordAnalysis) -> bool:
    tones = analysis.tones
    seventh = analysis.recipe.seventh
    if tones.implied_seventh or seventh in (SeventhQuality.DOMINANT7, SeventhQuality.MAJOR7):
        return True
    return seventh is None and analysis.recipe.triad is TriadQuality.MAJOR


def detect_tensions(analysis: ChordAnalysis, voices: Sequence[int]) -> tuple[DetectedTension, ...]:
    """
    List the tensions sounding in *voices* over the chord in *analysis*.

    Root, 3rd, 5th and 7th are never tensions. A b9, 9 or #9 counts in any
    voice and is a colour tone. An 11 or #11 counts only in the top voice:
    the 11 is heard as a suspension, the #11 as a colour tone over a major
    triad, a dominant 7th or a major 7th, and as a non-chord tone otherwise.
    Each kind is reported once, lowest voice first.

    Args:
        analysis: The chord the notes sound against.
        voices:   MIDI notes, lowest first.

    Returns:
        Tuple of DetectedTension in discovery order.
    """
    if not voices:
        return ()
    tones = analysis.tones
    core = {tones.root, tones.third, tones.fifth}
    if tones.seventh is not None:
        core.add(tones.seventh)

    found: dict[TensionKind, DetectedTension] = {}
    for midi in voices:
        pc = midi % 12
        if pc in core:
            continue
        kind = NINTHS.get((pc - tones.root) % 12)
        if kind is not None and kind not in found:
            found[kind] = DetectedTension(kind, TensionClass.COLOR_TONE)

    top = max(voices) % 12
    kind = ELEVENTHS.get((top - tones.root) % 12)
    if top not in core and kind is not None and kind not in found:
        if kind is TensionKind.ELEVEN:
            classification = TensionClass.SUSPENSION
        elif _supports_sharp_eleven(analysis):
            classification = TensionClass.COLOR_TONE
        else:
            classification = TensionClass.NON_CHORD_TONE
        found[kind] = DetectedTension(kind, classification)
    return tuple(found.values())
