"""Unit tests for MIDI / note-name conversions."""

import pytest

from chordlab.pitch import (
    midi_to_name,
    octave_of,
    parse_note_name,
    parse_pitch_class,
    pitch_class_to_midi,
    prefers_flats,
    signed_interval,
    spell_with_letter,
    spelled_midi_name,
)


@pytest.mark.parametrize(
    ("text", "midi"),
    [("C4", 60), ("F#3", 54), ("Bb5", 82), ("c#4", 61), ("E♭4", 63), ("A0", 21), ("C-1", 0)],
)
def test_parse_note_name(text: str, midi: int) -> None:
    assert parse_note_name(text) == midi


@pytest.mark.parametrize("text", ["", "H4", "C", "C#x4", "G10", "C4:2"])
def test_parse_note_name_rejects_bad_input(text: str) -> None:
    with pytest.raises(ValueError):
        parse_note_name(text)


def test_midi_to_name_sharps_and_flats() -> None:
    assert midi_to_name(61) == "C#4"
    assert midi_to_name(61, use_flats=True) == "Db4"
    assert midi_to_name(60) == "C4"


def test_pitch_class_to_midi_middle_c() -> None:
    assert pitch_class_to_midi(0, 4) == 60
    assert octave_of(59) == 3


def test_parse_pitch_class() -> None:
    assert parse_pitch_class("Bb") == 10
    assert parse_pitch_class("b") == 11
    with pytest.raises(ValueError):
        parse_pitch_class("X")


def test_signed_interval_folds_into_tritone_window() -> None:
    assert signed_interval(11) == -1
    assert signed_interval(1) == 1
    assert signed_interval(6) == -6
    assert signed_interval(-7) == 5


def test_key_accidental_preference() -> None:
    assert not prefers_flats(7)   # G major
    assert prefers_flats(5)       # F major
    assert prefers_flats(10)      # Bb major


def test_spell_with_letter() -> None:
    assert spell_with_letter(6, "G") == "Gb"
    assert spell_with_letter(6, "F") == "F#"
    assert spell_with_letter(0, "B") == "B#"
    assert spell_with_letter(0, "D") is None


def test_spelled_midi_name_keeps_octave_with_letter() -> None:
    assert spelled_midi_name(70, "Bb") == "Bb4"
    assert spelled_midi_name(59, "Cb") == "Cb4"
    assert spelled_midi_name(60, "B#") == "B#3"
    assert spelled_midi_name(61, "C#") == "C#4"
