"""Unit tests for ChordAnalyzer: tone sets, diatonic status and function tags."""

import pytest

from chordlab.chord_analyzer import ChordAnalyzer, FunctionTag
from chordlab.chord_parser import parse_chord_token
from chordlab.theory_key import Mode, TheoryKey

C_MAJOR = TheoryKey(0)
C_MINOR = TheoryKey(0, Mode.AEOLIAN)


def _analyze(token: str, key: TheoryKey = C_MAJOR):
    return ChordAnalyzer().analyze(key, parse_chord_token(token, key).recipe)


def test_triad_requires_root_third_fifth() -> None:
    tones = _analyze("I").tones
    assert tones.required == {0, 4, 7}
    assert tones.optional == frozenset()
    assert tones.seventh is None


def test_dominant_seventh_makes_perfect_fifth_optional() -> None:
    tones = _analyze("V7").tones
    assert tones.required == {7, 11, 5}
    assert tones.optional == {2}
    assert tones.seventh == 5


def test_half_diminished_fifth_is_optional() -> None:
    tones = _analyze("viiø7").tones
    assert tones.required == {11, 2, 9}
    assert 5 in tones.optional


def test_diminished_seventh_fifth_is_optional() -> None:
    tones = _analyze("vii°7").tones
    assert tones.required == {11, 2, 8}
    assert 5 in tones.optional


def test_diminished_triad_tones() -> None:
    analysis = _analyze("Bdim")
    assert analysis.tones.required == {11, 2, 5}
    assert analysis.is_diatonic


def test_natural_nine_implies_flat_seven() -> None:
    tones = _analyze("V9").tones
    assert tones.seventh == 5
    assert tones.implied_seventh
    assert 5 in tones.required
    assert tones.tensions == {9}


def test_nine_on_minor_chord_does_not_imply_seventh() -> None:
    tones = _analyze("ii9").tones
    assert tones.seventh is None
    assert tones.tensions == {4}


def test_ninth_rule_can_be_disabled() -> None:
    key = C_MAJOR
    recipe = parse_chord_token("V9", key).recipe
    tones = ChordAnalyzer(ninth_implies_seventh=False).chord_tones(key, recipe)
    assert tones.seventh is None


def test_required_and_optional_tensions() -> None:
    assert _analyze("V7b9").tones.tensions == {8}
    assert _analyze("IVmaj7#11").tones.tensions == {11}
    add9 = _analyze("Iadd9").tones
    assert add9.tensions == frozenset()
    assert 2 in add9.optional
    eleven = _analyze("ii7(11)").tones
    assert 7 in eleven.optional
    assert eleven.tensions == frozenset()


def test_suspended_fourth_replaces_third() -> None:
    tones = _analyze("V7sus4").tones
    assert tones.suspended
    assert tones.third == 0
    assert 11 not in tones.all_pitch_classes


@pytest.mark.parametrize(
    ("token", "bass"),
    [("I", 0), ("I/3", 4), ("I/5", 7), ("V7/7", 5)],
)
def test_inversion_sets_bass(token: str, bass: int) -> None:
    assert _analyze(token).tones.bass == bass


def test_coverage_order_puts_seventh_first() -> None:
    tones = _analyze("V7b9").tones
    assert tones.coverage_order() == [5, 11, 7, 8]
    assert tones.missing({7, 11}) == [5, 8]


# ---------------------------------------------------------------------------
# Function tags
# ---------------------------------------------------------------------------

def test_diatonic_chords() -> None:
    for token in ("I", "ii", "iii", "IV", "V", "vi", "vii°", "V7", "ii7", "Imaj7"):
        analysis = _analyze(token)
        assert analysis.is_diatonic, token
        assert analysis.function is FunctionTag.DIATONIC
        assert analysis.function_label == ""


def test_wrong_quality_is_not_diatonic() -> None:
    assert not _analyze("i").is_diatonic


def test_secondary_dominant() -> None:
    analysis = _analyze("II7")
    assert analysis.function is FunctionTag.SECONDARY_DOMINANT
    assert analysis.secondary_target == 5
    assert analysis.function_label == "sec. to V"
    assert analysis.leading_tone == 6
    assert analysis.leading_target == 7


def test_borrowed_from_parallel_minor() -> None:
    analysis = _analyze("bVI")
    assert analysis.function is FunctionTag.BORROWED_PARALLEL_MINOR
    assert analysis.function_label == "from || minor"
    assert _analyze("iv").function is FunctionTag.BORROWED_PARALLEL_MINOR


def test_borrowed_from_parallel_major() -> None:
    analysis = _analyze("ii", C_MINOR)
    assert analysis.function is FunctionTag.BORROWED_PARALLEL_MAJOR
    assert analysis.function_label == "from || major"


def test_secondary_dominant_wins_over_borrowing() -> None:
    # F major in C minor is also V of bVII.
    analysis = _analyze("IV", C_MINOR)
    assert analysis.function is FunctionTag.SECONDARY_DOMINANT
    assert analysis.secondary_target == 7


def test_neapolitan() -> None:
    analysis = _analyze("bII")
    assert analysis.function is FunctionTag.NEAPOLITAN
    assert analysis.function_label == "Neapolitan"


def test_borrowed_from_other_mode() -> None:
    analysis = _analyze("IV7")
    assert analysis.function is FunctionTag.BORROWED_OTHER_MODES
    assert analysis.parallel_modes == (Mode.DORIAN,)
    assert analysis.function_label == "borrowed || Dorian"


def test_unclassified() -> None:
    analysis = _analyze("#iv")
    assert analysis.function is FunctionTag.UNCLASSIFIED
    assert analysis.function_label == "chromatic"


def test_dominant_leading_tone() -> None:
    analysis = _analyze("V7")
    assert analysis.leading_tone == 11
    assert analysis.leading_target == 0
    assert _analyze("IV").leading_tone is None


def test_leading_tone_diminished() -> None:
    analysis = _analyze("vii°7")
    assert analysis.leading_tone == 11
    assert analysis.leading_target == 0


def test_labels_are_attached() -> None:
    analysis = _analyze("bVII7/3")
    assert analysis.roman == "bVII7/3"
    assert analysis.symbol == "Bb7/D"


# ---------------------------------------------------------------------------
# Melody analysis
# ---------------------------------------------------------------------------

def test_melody_diatonic_degree() -> None:
    note = ChordAnalyzer().analyze_melody(C_MAJOR, 67)
    assert (note.degree, note.offset, note.label) == (5, 0, "5")
    assert note.is_diatonic
    assert note.is_chord_tone is None


def test_melody_ties_prefer_flat_reading() -> None:
    note = ChordAnalyzer().analyze_melody(C_MAJOR, 68)
    assert note.label == "b6"
    assert not note.is_diatonic


def test_melody_chord_tone_flag() -> None:
    analyzer = ChordAnalyzer()
    tones = _analyze("I").tones
    assert analyzer.analyze_melody(C_MAJOR, 64, tones).is_chord_tone
    assert analyzer.analyze_melody(C_MAJOR, 65, tones).is_chord_tone is False


def test_melody_name_follows_key_spelling() -> None:
    note = ChordAnalyzer().analyze_melody(TheoryKey.parse("F"), 70)
    assert note.name == "Bb4"


def test_borrowed_chord_members_are_spelled_from_their_root() -> None:
    flat_six = _analyze("bVI")
    assert flat_six.spell(63) == "Eb4"
    assert flat_six.spell(56) == "Ab3"
    assert _analyze("bVII").spell(46) == "Bb2"


def test_spelling_follows_chord_letters() -> None:
    secondary = _analyze("II7")
    assert secondary.spell(66) == "F#4"
    assert secondary.spell(60) == "C4"
    assert _analyze("viiø7").member_letters() == {11: "B", 2: "D", 5: "F", 9: "A"}
    assert _analyze("vii°7").spell(68) == "Ab4"


def test_spelling_falls_back_to_key_preference_outside_the_chord() -> None:
    assert _analyze("I").spell(61) == "C#4"
    assert _analyze("I", TheoryKey.parse("F")).spell(61) == "Db4"
