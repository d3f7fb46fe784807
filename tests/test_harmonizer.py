"""Unit tests for the Harmonizer pipeline."""

import pytest

from chordlab.harmonizer import Harmonizer
from chordlab.theory_key import TheoryKey
from chordlab.timeline import TimelineSpec
from chordlab.voicing_strategy import VoicedChord, VoicingResult, VoicingStrategy


class _FixedStrategy(VoicingStrategy):
    def voice(self, key, regions):
        return VoicingResult(voiced=[VoicedChord((48, 55, 64, 72)) for _ in regions])


def test_regions_follow_tokens() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("I vi:2 ii7:0.5 V7 I:4")
    assert [r.debug_label for r in result.regions] == ["I", "vi:2", "ii7:0.5", "V7", "I:4"]
    assert [r.duration_ticks for r in result.regions] == [4, 8, 2, 4, 16]
    for previous, current in zip(result.regions, result.regions[1:]):
        assert current.start_tick == previous.end_tick


def test_parse_errors_are_kept_and_skipped() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("I Q V7 I/9th I")
    assert [e.token for e in result.parse.errors] == ["Q", "I/9th"]
    assert len(result.regions) == len(result.voiced) == 3


def test_melody_pins_region_soprano() -> None:
    result = Harmonizer(TheoryKey(0)).harmonize("I:2 V I", "E5 G5 D5 C5")
    assert [r.chord_event.melody_midi for r in result.regions] == [76, 74, 72]
    assert [v.soprano for v in result.voiced] == [76, 74, 72]
    assert len(result.melody_events) == 4


def test_malformed_melody_raises() -> None:
    with pytest.raises(ValueError):
        Harmonizer(TheoryKey(0)).harmonize("I V I", "E5 ?? C5")


def test_timeline_spec_is_used() -> None:
    result = Harmonizer(TheoryKey(0), TimelineSpec(ticks_per_quarter=12)).harmonize("I V:0.5")
    assert [(r.start_tick, r.duration_ticks) for r in result.regions] == [(0, 12), (12, 6)]


def test_custom_strategy() -> None:
    result = Harmonizer(TheoryKey(0), strategy=_FixedStrategy()).harmonize("I IV V")
    assert [v.voices for v in result.voiced] == [(48, 55, 64, 72)] * 3


def test_repeated_calls_are_independent() -> None:
    harmonizer = Harmonizer(TheoryKey.parse("G"))
    first = harmonizer.harmonize("I IV V7 I")
    harmonizer.harmonize("vi ii V7/7 I/3")
    again = harmonizer.harmonize("I IV V7 I")
    assert [v.voices for v in first.voiced] == [v.voices for v in again.voiced]
