"""Unit tests for TimelineBuilder and the melody lane."""

import pytest

from chordlab.chord_parser import ChordRecipe
from chordlab.timeline import (
    ChordEvent,
    MelodyEvent,
    TimelineBuilder,
    TimelineSpec,
    attach_melody,
    events_from_onset_grid,
    hold_seconds,
    melody_at,
    onset_grid_from_events,
    parse_melody_tokens,
)


def _event(degree: int = 1) -> ChordEvent:
    return ChordEvent(ChordRecipe(degree=degree))


def test_regions_are_contiguous() -> None:
    regions = TimelineBuilder().build_regions(
        [(_event(1), 1.0), (_event(4), 2.0), (_event(5), 0.5)],
        labels=["I", "IV:2", "V:0.5"],
    )
    assert [(r.start_tick, r.duration_ticks) for r in regions] == [(0, 4), (4, 8), (12, 2)]
    for previous, current in zip(regions, regions[1:]):
        assert current.start_tick == previous.end_tick
    assert regions[1].debug_label == "IV:2"


def test_non_positive_region_duration_defaults_to_one_quarter() -> None:
    regions = TimelineBuilder(TimelineSpec(ticks_per_quarter=8)).build_regions([(_event(), 0)])
    assert regions[0].duration_ticks == 8


def test_durations_never_round_to_zero() -> None:
    assert TimelineSpec(ticks_per_quarter=1).quarters_to_ticks(0.25) == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ticks_per_quarter": 0},
        {"tempo_bpm": 0},
        {"time_sig_numerator": 0},
    ],
)
def test_invalid_timeline_spec(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        TimelineSpec(**kwargs)


def test_parse_melody_with_rest() -> None:
    events = TimelineBuilder().parse_melody("C5:2 D5:1 R:1 G5:3")
    assert events == [
        MelodyEvent(0, 8, 72),
        MelodyEvent(8, 4, 74),
        MelodyEvent(16, 12, 79),
    ]


def test_parse_melody_tokens_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        parse_melody_tokens("C5:x")
    with pytest.raises(ValueError):
        parse_melody_tokens("Q5")


def test_onset_grid_to_events() -> None:
    events = events_from_onset_grid([60, None, 60, 62, None])
    assert events == [
        MelodyEvent(0, 2, 60),
        MelodyEvent(2, 1, 60),
        MelodyEvent(3, 2, 62),
    ]


def test_repeated_onsets_stay_separate() -> None:
    events = events_from_onset_grid([64, 64, 64])
    assert [(e.start_tick, e.duration_ticks) for e in events] == [(0, 1), (1, 1), (2, 1)]


@pytest.mark.parametrize(
    "grid",
    [
        [60, None, 60, 62, None],
        [None, None, 67, None],
        [72, 71, 69, 67, 65, 64, 62, 60],
        [None, None, None],
    ],
)
def test_onset_grid_round_trip(grid: list) -> None:
    events = events_from_onset_grid(grid, ticks_per_step=2)
    assert onset_grid_from_events(events, len(grid), ticks_per_step=2) == grid


def test_melody_at_and_attach() -> None:
    builder = TimelineBuilder()
    regions = builder.build_regions([(_event(1), 1.0), (_event(5), 1.0), (_event(1), 1.0)])
    melody = builder.parse_melody("E5:0.5 F5:0.5 D5:1 R:1")
    assert melody_at(melody, 2) == MelodyEvent(2, 2, 77)
    assert melody_at(melody, 8) is None

    attached = attach_melody(regions, melody)
    assert [r.chord_event.melody_midi for r in attached] == [76, 74, None]
    assert regions[0].chord_event.melody_midi is None


def test_hold_seconds() -> None:
    spec = TimelineSpec(ticks_per_quarter=4)
    region = TimelineBuilder(spec).build_regions([(_event(), 2.0)])[0]
    assert hold_seconds(region, 0.5, spec) == pytest.approx(1.0)


def test_parse_melody_records_written_accidentals() -> None:
    events = TimelineBuilder().parse_melody("Ab4 C5 R F#5:2 G5")
    assert [e.accidental for e in events] == [-1, 0, 1, 0]
    assert [e.midi for e in events] == [68, 72, 78, 79]
    assert events[2].start_tick == 12
