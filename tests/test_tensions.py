"""Unit tests for tension detection on finished voicings."""

from chordlab.chord_analyzer import ChordAnalyzer
from chordlab.chord_parser import parse_chord_token
from chordlab.tensions import DetectedTension, TensionClass, TensionKind, detect_tensions
from chordlab.theory_key import TheoryKey

C_MAJOR = TheoryKey(0)


def _analyze(token: str):
    return ChordAnalyzer().analyze(C_MAJOR, parse_chord_token(token, C_MAJOR).recipe)


def test_flat_nine_is_a_color_tone() -> None:
    found = detect_tensions(_analyze("V7b9"), (43, 59, 65, 68))
    assert found == (DetectedTension(TensionKind.FLAT_NINE, TensionClass.COLOR_TONE),)
    assert str(found[0]) == "b9 (color tone)"


def test_ninth_in_any_voice_is_reported_once() -> None:
    found = detect_tensions(_analyze("I"), (48, 62, 64, 74))
    assert found == (DetectedTension(TensionKind.NINE, TensionClass.COLOR_TONE),)


def test_plain_triad_has_no_tensions() -> None:
    assert detect_tensions(_analyze("I"), (48, 55, 64, 72)) == ()
    assert detect_tensions(_analyze("I"), ()) == ()


def test_minor_third_is_not_a_sharp_nine() -> None:
    assert detect_tensions(_analyze("vi"), (45, 57, 64, 72)) == ()


def test_eleventh_counts_only_in_top_voice() -> None:
    assert detect_tensions(_analyze("I"), (48, 53, 64, 72)) == ()
    found = detect_tensions(_analyze("ii"), (50, 57, 65, 67))
    assert found == (DetectedTension(TensionKind.ELEVEN, TensionClass.SUSPENSION),)


def test_sharp_eleven_depends_on_chord_quality() -> None:
    over_major_seventh = detect_tensions(_analyze("Imaj7"), (48, 59, 64, 66))
    assert over_major_seventh == (
        DetectedTension(TensionKind.SHARP_ELEVEN, TensionClass.COLOR_TONE),
    )
    over_minor = detect_tensions(_analyze("vi"), (45, 57, 60, 63))
    assert over_minor == (
        DetectedTension(TensionKind.SHARP_ELEVEN, TensionClass.NON_CHORD_TONE),
    )
