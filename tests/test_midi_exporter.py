"""Unit tests for MidiExporter."""

import io
import logging
from pathlib import Path

import pytest

from chordlab.harmonizer import HarmonizationResult, Harmonizer
from chordlab.midi_exporter import MidiExporter
from chordlab.theory_key import TheoryKey
from chordlab.timeline import TimelineSpec


def _result(spec: TimelineSpec | None = None, melody: str | None = None) -> HarmonizationResult:
    return Harmonizer(TheoryKey(0), timeline_spec=spec).harmonize("I IV:2 V7 I", melody)


def _bytes(exporter: MidiExporter, result: HarmonizationResult) -> bytes:
    midi = exporter.build(result.regions, result.voiced, result.melody_events)
    buffer = io.BytesIO()
    midi.writeFile(buffer)
    return buffer.getvalue()


def test_tempo_defaults() -> None:
    assert MidiExporter().tempo == MidiExporter.DEFAULT_TEMPO
    assert MidiExporter(TimelineSpec(tempo_bpm=120)).tempo == 120
    assert MidiExporter(TimelineSpec(tempo_bpm=120), tempo=90).tempo == 90


def test_build_names_one_track_per_voice() -> None:
    data = _bytes(MidiExporter(), _result())
    assert data.startswith(b"MThd")
    for name in (b"Soprano", b"Alto", b"Tenor", b"Bass"):
        assert name in data
    assert b"Melody" not in data


def test_melody_gets_its_own_track() -> None:
    plain = _bytes(MidiExporter(), _result())
    data = _bytes(MidiExporter(), _result(melody="E5 F5:2 D5 C5"))
    assert data.count(b"MTrk") == plain.count(b"MTrk") + 1
    assert b"Melody" in data


def test_misaligned_input_raises() -> None:
    result = _result()
    with pytest.raises(ValueError):
        MidiExporter().build(result.regions, result.voiced[:-1])


def test_time_signature_is_written() -> None:
    spec = TimelineSpec(time_sig_numerator=3, time_sig_denominator=4)
    data = _bytes(MidiExporter(spec), _result(spec))
    # Meta event 0x58, length 4: numerator 3, denominator 2**2.
    assert b"\xff\x58\x04\x03\x02" in data


def test_odd_time_signature_denominator_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    spec = TimelineSpec(time_sig_numerator=5, time_sig_denominator=6)
    with caplog.at_level(logging.WARNING, logger="chordlab.midi_exporter"):
        data = _bytes(MidiExporter(spec), _result(spec))
    assert b"\xff\x58\x04\x05" not in data
    assert "not a power of two" in caplog.text


def test_export_writes_file(tmp_path: Path) -> None:
    result = _result()
    out = tmp_path / "progression.mid"
    MidiExporter().export(result.regions, result.voiced, str(out))
    assert out.read_bytes().startswith(b"MThd")
