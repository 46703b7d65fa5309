"""Unit tests for lifecycle event ordering and status report rendering."""

from __future__ import annotations

import pytest

from pandocflow.engine.events import (
    CompletionEvent,
    ErrorEvent,
    EventCoordinator,
    ProcessingEvent,
    StartEvent,
    TimeoutEvent,
)
from pandocflow.errors import EventOrderError
from pandocflow.models.datatypes import ComplexityLevel, ComplexityResult, FallbackTier


def _complexity(level: ComplexityLevel, *, chunking: bool = False) -> ComplexityResult:
    """Build a minimal complexity result for report messages."""

    return ComplexityResult(level=level, score=1.0, indicators={}, requires_chunking=chunking)


def test_full_sequence_emits_one_report_per_event(sink) -> None:
    """Start, processing, timeout, and completion each yield exactly one report."""

    exported: list[str] = []
    coordinator = EventCoordinator(sink, on_export_enabled=exported.append)

    complexity = _complexity(ComplexityLevel.MODERATE)
    coordinator.emit(StartEvent(1, complexity))
    coordinator.emit(ProcessingEvent(1, "simplified", "Retrying...", 50.0))
    coordinator.emit(TimeoutEvent(1, "standard", 8.0))
    coordinator.emit(CompletionEvent(1, FallbackTier.SIMPLIFIED, complexity=complexity))

    assert sink.phases == ["start", "processing", "timeout", "completion"]
    assert sink.reports[0].message == "Converting moderate document..."
    assert sink.reports[2].message.startswith("Processing timed out after 8.00s (standard)")
    assert sink.reports[3].message == "Moderate document converted. Ready for export."
    assert sink.reports[3].success is True
    assert exported == ["Conversion completed successfully"]
    assert coordinator.reports_emitted == 4
    assert coordinator.open_request is None


def test_error_event_reports_user_message_only(sink) -> None:
    """Error reports prefix the user message and never enable export."""

    exported: list[str] = []
    coordinator = EventCoordinator(sink, on_export_enabled=exported.append)

    coordinator.emit(StartEvent(7))
    report = coordinator.emit(ErrorEvent(7, "Document processing timed out.", "timeout"))

    assert report.phase == "error"
    assert report.message == "Conversion failed: Document processing timed out."
    assert report.success is False
    assert report.error_type == "timeout"
    assert exported == []


def test_partial_completion_message(sink) -> None:
    """Partial chunked successes are reported distinctly."""

    coordinator = EventCoordinator(sink)
    coordinator.emit(StartEvent(2, _complexity(ComplexityLevel.EXTREME, chunking=True)))
    coordinator.emit(CompletionEvent(2, FallbackTier.CHUNKED, partial=True))

    assert sink.reports[0].message == "Processing complex extreme document..."
    assert sink.reports[1].message.startswith("Document converted with some sections unavailable")


@pytest.mark.parametrize(
    "event",
    [
        ProcessingEvent(1, "chunked", "x"),
        TimeoutEvent(1, "standard", 1.0),
        CompletionEvent(1, FallbackTier.STANDARD),
        ErrorEvent(1, "failed"),
    ],
)
def test_events_without_start_are_rejected(sink, event) -> None:
    """Only a start event may open a sequence."""

    coordinator = EventCoordinator(sink)

    with pytest.raises(EventOrderError):
        coordinator.emit(event)
    assert sink.reports == []


def test_second_start_while_open_and_foreign_request_are_rejected(sink) -> None:
    """A sequence must close before another opens; events must match the open request."""

    coordinator = EventCoordinator(sink)
    coordinator.emit(StartEvent(1))

    with pytest.raises(EventOrderError):
        coordinator.emit(StartEvent(2))
    with pytest.raises(EventOrderError):
        coordinator.emit(ProcessingEvent(2, "chunked", "x"))

    coordinator.emit(CompletionEvent(1, FallbackTier.STANDARD))
    coordinator.emit(StartEvent(2))
    assert coordinator.open_request == 2


def test_add_export_listener_after_construction(sink) -> None:
    """Listeners registered later are also notified on completion."""

    coordinator = EventCoordinator(sink)
    seen: list[str] = []
    coordinator.add_export_listener(seen.append)

    coordinator.emit(StartEvent(3))
    coordinator.emit(CompletionEvent(3, FallbackTier.STANDARD))

    assert seen == ["Conversion completed successfully"]
    assert sink.reports[-1].message == "Conversion complete! Ready for export."
