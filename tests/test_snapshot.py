"""Unit tests for the serializable harmonization snapshot."""

import json

from chordlab.harmonizer import Harmonizer
from chordlab.snapshot import build_snapshot
from chordlab.theory_key import TheoryKey


def test_snapshot_mirrors_voicing() -> None:
    result = Harmonizer(TheoryKey.parse("F")).harmonize("I V7/7 I/3 bVII")
    snapshot = build_snapshot(result, "cadence")

    assert snapshot.key == "F"
    assert snapshot.mode == "Ionian"
    assert snapshot.description == "cadence"
    assert len(snapshot.steps) == 4
    for step, region, voiced in zip(snapshot.steps, result.regions, result.voiced):
        assert step.start_tick == region.start_tick
        assert step.duration_ticks == region.duration_ticks
        assert (
            step.voicing.bass_midi,
            step.voicing.tenor_midi,
            step.voicing.alto_midi,
            step.voicing.soprano_midi,
        ) == voiced.voices
        assert step.melody is None


def test_chord_fields() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("V7b9/3 bVII Iadd9 V9 V7sus4")
    chords = [step.chord for step in build_snapshot(result).steps]

    assert chords[0].inversion == "first"
    assert chords[0].has_seventh
    assert chords[0].tensions
    assert chords[1].root_chromatic_offset == -1
    assert chords[1].root_degree_label == "bVII"
    assert not chords[1].is_diatonic
    assert not chords[2].has_seventh
    assert chords[3].has_seventh
    assert chords[3].seventh_type == "implied dominant 7"
    assert chords[4].suspension == "sus4"
    assert chords[4].tensions == []


def test_melody_fields() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("I V", "E5 F5")
    steps = build_snapshot(result).steps
    assert steps[0].melody.note_name == "E5"
    assert steps[0].melody.scale_degree == 3
    assert steps[0].melody.is_chord_tone
    assert steps[1].melody.degree_label == "4"
    assert not steps[1].melody.is_chord_tone


def test_json_round_trip() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("I IV:2 V I", "C5 F5:2 D5 C5")
    snapshot = build_snapshot(result, "json")
    data = json.loads(snapshot.to_json())
    assert data == snapshot.to_dict()
    assert data["steps"][1]["time_beats"] == 1.0
    assert data["steps"][1]["melody"]["midi"] == 77
    assert isinstance(data["diagnostics"], list)


def test_voicing_names_follow_chord_spelling() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("I bVII IV I")
    step = build_snapshot(result).steps[1]
    assert step.chord.chord_symbol == "Bb"
    names = [
        step.voicing.bass_note,
        step.voicing.tenor_note,
        step.voicing.alto_note,
        step.voicing.soprano_note,
    ]
    assert step.voicing.bass_note.startswith("Bb")
    assert not [name for name in names if name.startswith("A#")]


def test_detected_tensions_follow_the_voicing() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("V7b9 I")
    steps = build_snapshot(result).steps
    assert "b9 (color tone)" in steps[0].detected_tensions
    assert isinstance(steps[1].detected_tensions, list)
    assert json.loads(build_snapshot(result).to_json())["steps"][0]["detected_tensions"]
