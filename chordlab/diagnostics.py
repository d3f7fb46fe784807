"""Diagnostics: advisory events recorded while voicing a progression."""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class DiagSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    FORCED = "forced"


class DiagCode:
    """String codes attached to diagnostic events."""

    FORCED_7TH_RESOLUTION = "FORCED_7TH_RESOLUTION"
    FORCED_AUG5_RESOLUTION = "FORCED_AUG5_RESOLUTION"
    RESOLUTION_RELAXED = "RESOLUTION_RELAXED"
    RESOLUTION_UNAVAILABLE = "RESOLUTION_UNAVAILABLE"
    MELODY_CONSTRAINT_BLOCKED = "MELODY_CONSTRAINT_BLOCKED"
    SEVENTH_LOOKAHEAD_UNAVAILABLE = "SEVENTH_LOOKAHEAD_UNAVAILABLE"
    COVERAGE_FIX_APPLIED = "COVERAGE_FIX_APPLIED"
    MISSING_REQUIRED_TONE = "MISSING_REQUIRED_TONE"
    TENSION_UNPLACED = "TENSION_UNPLACED"
    REGISTER_RELAXED = "REGISTER_RELAXED"
    MORE_OMITTED = "(...more omitted)"


_LOG_LEVELS = {
    DiagSeverity.INFO: logging.DEBUG,
    DiagSeverity.FORCED: logging.INFO,
    DiagSeverity.WARNING: logging.WARNING,
}


@dataclass(frozen=True)
class RegionDiagEvent:
    """
    One diagnostic event.

    Attributes:
        region_index: Index of the chord region it concerns.
        severity:     Info, Warning or Forced.
        code:         One of the DiagCode strings.
        message:      Human-readable description.
        voice_index:  0=bass ... 3=soprano, when the event concerns one voice.
        before_midi:  Note before a change, when applicable.
        after_midi:   Note after a change, when applicable.
    """

    region_index: int
    severity: DiagSeverity
    code: str
    message: str
    voice_index: int | None = None
    before_midi: int | None = None
    after_midi: int | None = None

    def __str__(self) -> str:
        return f"[{self.severity.value}] region {self.region_index}: {self.code} {self.message}"


class DiagnosticsCollector:
    """
    Ordered, de-duplicated event log with a per-region cap.

    Once a region holds ``MAX_EVENTS_PER_REGION`` events, one extra Info
    event with code ``(...more omitted)`` is recorded and further events for
    that region are dropped.
    """

    MAX_EVENTS_PER_REGION = 10

    def __init__(self) -> None:
        self._events: list[RegionDiagEvent] = []
        self._per_region: dict[int, int] = {}
        self._truncated: set[int] = set()

    def add(
        self,
        region_index: int,
        severity: DiagSeverity,
        code: str,
        message: str,
        voice_index: int | None = None,
        before_midi: int | None = None,
        after_midi: int | None = None,
    ) -> RegionDiagEvent | None:
        """
        Record an event unless it duplicates an earlier one or the region is full.

        Returns:
            The recorded event, or None if it was dropped.
        """
        count = self._per_region.get(region_index, 0)
        if count >= self.MAX_EVENTS_PER_REGION:
            if region_index not in self._truncated:
                self._truncated.add(region_index)
                self._events.append(
                    RegionDiagEvent(
                        region_index,
                        DiagSeverity.INFO,
                        DiagCode.MORE_OMITTED,
                        f"(max {self.MAX_EVENTS_PER_REGION} events per region)",
                    )
                )
            return None

        event = RegionDiagEvent(
            region_index, severity, code, message, voice_index, before_midi, after_midi
        )
        if any(
            (e.region_index, e.code, e.message, e.voice_index, e.before_midi, e.after_midi)
            == (region_index, code, message, voice_index, before_midi, after_midi)
            for e in self._events
        ):
            return None

        self._events.append(event)
        self._per_region[region_index] = count + 1
        logger.log(_LOG_LEVELS[severity], "%s", event)
        return event

    @property
    def events(self) -> list[RegionDiagEvent]:
        return list(self._events)

    def for_region(self, region_index: int) -> list[RegionDiagEvent]:
        return [e for e in self._events if e.region_index == region_index]

    def with_severity(self, severity: DiagSeverity) -> list[RegionDiagEvent]:
        return [e for e in self._events if e.severity is severity]

    def with_code(self, code: str) -> list[RegionDiagEvent]:
        return [e for e in self._events if e.code == code]

    def __len__(self) -> int:
        return len(self._events)
