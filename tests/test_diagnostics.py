"""Tests for diagnostics.py — typed events and log forwarding."""

import logging

import pytest

from swimlane_layout.diagnostics import DiagnosticKind, Diagnostics, Severity


class TestDiagnostics:
    def test_record(self):
        diags = Diagnostics(forward_to_log=False)
        event = diags.record(
            DiagnosticKind.CYCLE_DETECTED,
            Severity.WARNING,
            "cycle",
            item_id="a",
            members=["a", "b"],
        )
        assert list(diags) == [event]
        assert event.details == {"members": ["a", "b"]}
        assert diags.of_kind(DiagnosticKind.CYCLE_DETECTED) == [event]
        assert diags.of_kind(DiagnosticKind.SLOW_BUILD) == []

    def test_at_least(self):
        diags = Diagnostics(forward_to_log=False)
        diags.record(DiagnosticKind.LANE_ASSIGNED, Severity.DEBUG, "lane")
        diags.record(DiagnosticKind.INVALID_EDGE, Severity.WARNING, "edge")
        diags.record(DiagnosticKind.MISSING_BOUNDARY, Severity.CRITICAL, "boundary")
        assert [e.kind for e in diags.at_least(Severity.WARNING)] == [
            DiagnosticKind.INVALID_EDGE,
            DiagnosticKind.MISSING_BOUNDARY,
        ]

    def test_counts_and_clear(self):
        diags = Diagnostics(forward_to_log=False)
        diags.record(DiagnosticKind.INVALID_EDGE, Severity.WARNING, "one")
        diags.record(DiagnosticKind.INVALID_EDGE, Severity.WARNING, "two")
        assert diags.counts_by_kind() == {"invalid_edge": 2}
        diags.clear()
        assert len(diags) == 0

    def test_forwarded_to_logging(self, caplog: pytest.LogCaptureFixture):
        diags = Diagnostics()
        with caplog.at_level(logging.WARNING, logger="swimlane_layout.diagnostics"):
            diags.record(DiagnosticKind.INVALID_EDGE, Severity.WARNING, "dropped b → a")
            diags.record(DiagnosticKind.LANE_ASSIGNED, Severity.DEBUG, "quiet")
        assert [r.getMessage() for r in caplog.records] == ["[invalid_edge] dropped b → a"]
        assert caplog.records[0].levelno == logging.WARNING

    def test_not_forwarded(self, caplog: pytest.LogCaptureFixture):
        diags = Diagnostics(forward_to_log=False)
        with caplog.at_level(logging.DEBUG):
            diags.record(DiagnosticKind.INVALID_EDGE, Severity.WARNING, "silent")
        assert caplog.records == []
