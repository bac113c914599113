"""Structured diagnostics collected during a layout build.

The layout algorithm does not print. Every notable decision (a dropped edge,
a cycle cut, an overcrowded lane, a corrected position) is recorded as a
``DiagnosticEvent`` in a ``Diagnostics`` collector owned by the build. The
collector also forwards each event to the standard ``logging`` module so
command-line users see it, while tests can assert on the typed events.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Severity(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]


_LOG_LEVELS: dict[Severity, int] = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


class DiagnosticKind(Enum):
    LANE_ASSIGNED = "lane_assigned"
    DANGLING_PREREQUISITE = "dangling_prerequisite"
    CYCLE_DETECTED = "cycle_detected"
    OVERCROWDED_LANE = "overcrowded_lane"
    STRATEGY_ESCALATED = "strategy_escalated"
    POSITION_CORRECTED = "position_corrected"
    MISSING_BOUNDARY = "missing_boundary"
    INVALID_EDGE = "invalid_edge"
    EMERGENCY_SPACING = "emergency_spacing"
    SLOW_BUILD = "slow_build"
    DUPLICATE_ITEM = "duplicate_item"
    BUILD_SUMMARY = "build_summary"


@dataclass(frozen=True)
class DiagnosticEvent:
    """One typed event emitted by the layout engine."""

    kind: DiagnosticKind
    severity: Severity
    message: str
    item_id: str | None = None
    lane: str | None = None
    tier: int | None = None
    details: dict[str, Any] = field(default_factory=dict, compare=False)


class Diagnostics:
    """Ordered collector of diagnostic events for one build."""

    def __init__(self, *, forward_to_log: bool = True) -> None:
        self._events: list[DiagnosticEvent] = []
        self.forward_to_log = forward_to_log

    def record(
        self,
        kind: DiagnosticKind,
        severity: Severity,
        message: str,
        *,
        item_id: str | None = None,
        lane: str | None = None,
        tier: int | None = None,
        **details: Any,
    ) -> DiagnosticEvent:
        event = DiagnosticEvent(
            kind=kind,
            severity=severity,
            message=message,
            item_id=item_id,
            lane=lane,
            tier=tier,
            details=details,
        )
        self._events.append(event)
        if self.forward_to_log and logger.isEnabledFor(severity.log_level):
            logger.log(severity.log_level, "[%s] %s", kind.value, message)
        return event

    def clear(self) -> None:
        self._events.clear()

    def of_kind(self, kind: DiagnosticKind) -> list[DiagnosticEvent]:
        return [e for e in self._events if e.kind == kind]

    def at_least(self, severity: Severity) -> list[DiagnosticEvent]:
        """Events whose severity is ``severity`` or worse."""
        order = list(Severity)
        threshold = order.index(severity)
        return [e for e in self._events if order.index(e.severity) >= threshold]

    def counts_by_kind(self) -> dict[str, int]:
        return dict(Counter(e.kind.value for e in self._events))

    @property
    def events(self) -> tuple[DiagnosticEvent, ...]:
        return tuple(self._events)

    def __iter__(self) -> Iterator[DiagnosticEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)
