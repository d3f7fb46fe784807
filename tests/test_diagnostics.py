"""Unit tests for the diagnostics collector."""

import logging

import pytest

from chordlab.diagnostics import DiagCode, DiagnosticsCollector, DiagSeverity


def test_events_keep_insertion_order() -> None:
    collector = DiagnosticsCollector()
    collector.add(1, DiagSeverity.INFO, DiagCode.RESOLUTION_UNAVAILABLE, "a")
    collector.add(0, DiagSeverity.WARNING, DiagCode.MISSING_REQUIRED_TONE, "b")
    assert [e.message for e in collector.events] == ["a", "b"]


def test_exact_duplicates_are_dropped() -> None:
    collector = DiagnosticsCollector()
    first = collector.add(0, DiagSeverity.FORCED, DiagCode.COVERAGE_FIX_APPLIED, "m", 1, 60, 55)
    second = collector.add(0, DiagSeverity.FORCED, DiagCode.COVERAGE_FIX_APPLIED, "m", 1, 60, 55)
    assert first is not None
    assert second is None
    assert len(collector) == 1


def test_region_cap_adds_single_omitted_marker() -> None:
    collector = DiagnosticsCollector()
    for i in range(15):
        collector.add(2, DiagSeverity.INFO, DiagCode.RESOLUTION_UNAVAILABLE, f"event {i}")
    region_events = collector.for_region(2)
    assert len(region_events) == DiagnosticsCollector.MAX_EVENTS_PER_REGION + 1
    assert region_events[-1].code == DiagCode.MORE_OMITTED
    assert region_events[-1].severity is DiagSeverity.INFO
    assert len(collector.with_code(DiagCode.MORE_OMITTED)) == 1


def test_cap_is_per_region() -> None:
    collector = DiagnosticsCollector()
    for i in range(12):
        collector.add(0, DiagSeverity.INFO, DiagCode.RESOLUTION_UNAVAILABLE, f"event {i}")
    assert collector.add(1, DiagSeverity.WARNING, DiagCode.TENSION_UNPLACED, "x") is not None


def test_filters() -> None:
    collector = DiagnosticsCollector()
    collector.add(0, DiagSeverity.INFO, DiagCode.RESOLUTION_UNAVAILABLE, "a")
    collector.add(1, DiagSeverity.FORCED, DiagCode.FORCED_7TH_RESOLUTION, "b")
    assert [e.message for e in collector.with_severity(DiagSeverity.FORCED)] == ["b"]
    assert [e.region_index for e in collector.with_code(DiagCode.RESOLUTION_UNAVAILABLE)] == [0]


def test_event_str() -> None:
    collector = DiagnosticsCollector()
    event = collector.add(3, DiagSeverity.WARNING, DiagCode.REGISTER_RELAXED, "widened")
    assert str(event) == "[warning] region 3: REGISTER_RELAXED widened"


def test_events_are_logged_by_severity(caplog: pytest.LogCaptureFixture) -> None:
    collector = DiagnosticsCollector()
    with caplog.at_level(logging.DEBUG, logger="chordlab.diagnostics"):
        collector.add(0, DiagSeverity.WARNING, DiagCode.MISSING_REQUIRED_TONE, "no third")
        collector.add(0, DiagSeverity.INFO, DiagCode.RESOLUTION_UNAVAILABLE, "quiet")
    levels = {record.getMessage(): record.levelno for record in caplog.records}
    assert levels["[warning] region 0: MISSING_REQUIRED_TONE no third"] == logging.WARNING
    assert levels["[info] region 0: RESOLUTION_UNAVAILABLE quiet"] == logging.DEBUG
