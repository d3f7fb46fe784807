"""Unit tests for choosing chords from a melody line."""

from chordlab.harmonizer import Harmonizer
from chordlab.melody_harmonizer import HOLD_REASON, chord_candidates, harmonize_melody
from chordlab.theory_key import TheoryKey
from chordlab.timeline import TimelineBuilder

C_MAJOR = TheoryKey(0)


def _romans(key: TheoryKey, melody: str, **kwargs) -> list[str | None]:
    events = TimelineBuilder().parse_melody(melody)
    steps = harmonize_melody(key, events, **kwargs)
    return [step.chosen.roman if step.chosen is not None else None for step in steps]


def test_diatonic_candidates_contain_the_note() -> None:
    candidates = chord_candidates(C_MAJOR, 64)
    assert [c.roman for c in candidates] == ["I", "iii", "vi"]
    assert candidates[0].reason == "Melody degree 3 is chord tone in I"
    assert [c.roman for c in chord_candidates(C_MAJOR, 71)] == ["V", "vii°"]


def test_accidental_unlocks_chromatic_chords_in_major() -> None:
    assert [c.roman for c in chord_candidates(C_MAJOR, 68, accidental=-1)] == ["bVI"]
    assert [c.roman for c in chord_candidates(C_MAJOR, 68, accidental=1)] == ["III", "III7"]
    assert chord_candidates(C_MAJOR, 68) == []


def test_minor_key_ignores_accidentals() -> None:
    assert chord_candidates(TheoryKey.parse("A minor"), 68, accidental=1) == []


def test_functional_root_movement() -> None:
    assert _romans(C_MAJOR, "E5 F5 G5 E5 D5 C5") == ["I", "ii", "V", "I", "ii", "I"]


def test_chromatic_note_from_written_flat() -> None:
    assert _romans(C_MAJOR, "E5 Ab4 G4") == ["I", "bVI", "V"]


def test_continuity_keeps_chord_while_it_fits() -> None:
    assert _romans(C_MAJOR, "E5 G5 C5") == ["I", "V", "I"]
    assert _romans(C_MAJOR, "E5 G5 C5", prefer_continuity=True) == ["I", "I", "I"]


def test_without_tonic_start_first_candidate_wins() -> None:
    assert _romans(C_MAJOR, "A4", prefer_tonic_start=False) == ["vi"]
    assert _romans(C_MAJOR, "C5", prefer_tonic_start=False) == ["I"]


def test_unharmonizable_note_holds_previous_chord() -> None:
    key = TheoryKey.parse("A minor")
    events = TimelineBuilder().parse_melody("A4 G#4 A4")
    steps = harmonize_melody(key, events)
    assert [s.chosen.roman for s in steps if s.chosen is not None] == ["i", "i", "i"]
    assert steps[1].reason == HOLD_REASON
    assert steps[1].candidates == ()


def test_leading_unharmonizable_note_is_left_empty() -> None:
    assert _romans(TheoryKey.parse("A minor"), "G#4 A4") == [None, "i"]


def test_harmonizer_voices_melody_driven_chords() -> None:
    result = Harmonizer(C_MAJOR).harmonize_melody("E5 F5 G5:2 E5")
    assert [r.debug_label for r in result.regions] == ["I", "ii", "V", "I"]
    assert [r.duration_ticks for r in result.regions] == [4, 4, 8, 4]
    assert [v.soprano for v in result.voiced] == [76, 77, 79, 76]
    assert [e.token for e in result.parse.entries] == ["I", "ii", "V", "I"]
    assert len(result.melody_steps) == 4


def test_harmonizer_skips_notes_before_first_chord() -> None:
    result = Harmonizer(TheoryKey.parse("A minor")).harmonize_melody("G#4 A4:2")
    assert len(result.regions) == 1
    assert (result.regions[0].start_tick, result.regions[0].duration_ticks) == (4, 8)
    assert result.melody_steps[0].chosen is None


def test_empty_melody_gives_empty_result() -> None:
    result = Harmonizer(C_MAJOR).harmonize_melody("")
    assert result.regions == []
    assert result.voiced == []
