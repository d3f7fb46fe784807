"""CLI tests using click's CliRunner."""

import json
from pathlib import Path

from click.testing import CliRunner

from chordlab import __version__
from chordlab.cli import main


def _invoke(*args: str):
    return CliRunner().invoke(main, list(args))


def test_version() -> None:
    result = _invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_voice_prints_table() -> None:
    result = _invoke("voice", "I vi ii7 V7 I")
    assert result.exit_code == 0, result.output
    assert "[1/1] Voicing (B T A S):" in result.output
    assert "V7" in result.output
    assert "Done!" in result.output


def test_voice_with_melody_and_mode() -> None:
    result = _invoke("voice", "i iv V7 i", "--key", "A", "--mode", "minor", "--melody", "E5 D5 B4 A4")
    assert result.exit_code == 0, result.output
    assert "Key    : A Aeolian" in result.output


def test_bad_key_exits_with_error() -> None:
    result = _invoke("voice", "I IV V I", "--key", "H")
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_bad_melody_exits_with_error() -> None:
    result = _invoke("voice", "I IV V I", "--melody", "C5:x")
    assert result.exit_code == 1


def test_unparsable_tokens_are_skipped() -> None:
    result = _invoke("voice", "I X V I")
    assert result.exit_code == 0, result.output
    assert "skipped chord" in result.output


def test_no_parsable_chords_exits_with_error() -> None:
    result = _invoke("voice", "X Y Z")
    assert result.exit_code == 1
    assert "No chords could be parsed." in result.output


def test_voice_writes_midi_and_snapshot(tmp_path: Path) -> None:
    midi_path = tmp_path / "out.mid"
    snapshot_path = tmp_path / "out.json"
    result = _invoke(
        "voice", "I IV V7 I",
        "--midi", str(midi_path),
        "--snapshot", str(snapshot_path),
        "--tempo", "96",
    )
    assert result.exit_code == 0, result.output
    assert "[2/3] Writing MIDI file" in result.output
    assert "[3/3] Writing snapshot" in result.output
    assert midi_path.read_bytes().startswith(b"MThd")
    data = json.loads(snapshot_path.read_text(encoding="utf-8"))
    assert len(data["steps"]) == 4
    assert data["description"] == "I IV V7 I"


def test_config_file_is_applied(tmp_path: Path) -> None:
    config = tmp_path / "voicing.yaml"
    config.write_text("large_leap: 1\n", encoding="utf-8")
    result = _invoke("voice", "I IV", "--config", str(config))
    assert result.exit_code == 0, result.output
    assert "!" in result.output


def test_invalid_config_file_exits_with_error(tmp_path: Path) -> None:
    config = tmp_path / "voicing.yaml"
    config.write_text("bogus: 1\n", encoding="utf-8")
    result = _invoke("voice", "I IV", "--config", str(config))
    assert result.exit_code == 1
    assert "Unknown configuration keys" in result.output


def test_analyze_reports_functions() -> None:
    result = _invoke("analyze", "I II7 V bVI I")
    assert result.exit_code == 0, result.output
    assert "sec. to V" in result.output
    assert "from || minor" in result.output
    assert "diatonic" in result.output


def test_analyze_reports_melody_degrees() -> None:
    result = _invoke("analyze", "I V", "--melody", "E5 F5")
    assert result.exit_code == 0, result.output
    assert "melody E5 (3, chord tone)" in result.output
    assert "melody F5 (4, non-chord tone)" in result.output


def test_voice_table_spells_borrowed_chords() -> None:
    result = _invoke("voice", "I bVII IV I")
    assert result.exit_code == 0, result.output
    row = [line for line in result.output.splitlines() if " bVII " in line][0]
    assert "Bb2" in row or "Bb3" in row
    assert "A#" not in row


def test_harmonize_chooses_and_voices_chords() -> None:
    result = _invoke("harmonize", "E5 F5 G5 C5")
    assert result.exit_code == 0, result.output
    assert "[1/2] Choosing chords:" in result.output
    assert "Melody degree 4 is chord tone in ii" in result.output
    assert "[2/2] Voicing (B T A S):" in result.output
    assert "Done!" in result.output


def test_harmonize_writes_midi(tmp_path: Path) -> None:
    midi_path = tmp_path / "tune.mid"
    result = _invoke("harmonize", "C5 Ab4:2 G4", "--midi", str(midi_path))
    assert result.exit_code == 0, result.output
    assert "bVI" in result.output
    assert "Ab4" in result.output
    assert midi_path.read_bytes().startswith(b"MThd")


def test_harmonize_without_any_chord_exits_with_error() -> None:
    result = _invoke("harmonize", "G#4", "--key", "A minor")
    assert result.exit_code == 1
    assert "No melody note could be harmonized." in result.output
