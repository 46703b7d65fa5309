"""Lifecycle event coordination and status reporting.

Responsibilities:
- Translate tagged lifecycle events into exactly one `StatusReport` each.
- Enforce `start -> (processing | timeout)* -> (completion | error)` ordering.
- Signal export-enabled listeners after a successful completion.

The coordinator observes transitions; it never changes engine state.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from loguru import logger

from ..errors import EventOrderError
from ..models.datatypes import ComplexityResult, FallbackTier
from .contracts import StatusSink


@dataclass(frozen=True, slots=True)
class StartEvent:
    """A logical conversion request began."""

    request_id: int
    complexity: ComplexityResult | None = None


@dataclass(frozen=True, slots=True)
class ProcessingEvent:
    """Intermediate progress within an open request."""

    request_id: int
    stage: str
    message: str
    progress: float | None = None


@dataclass(frozen=True, slots=True)
class TimeoutEvent:
    """One attempt within an open request exceeded its budget."""

    request_id: int
    label: str
    budget_seconds: float


@dataclass(frozen=True, slots=True)
class CompletionEvent:
    """A request resolved with usable output."""

    request_id: int
    tier: FallbackTier
    partial: bool = False
    complexity: ComplexityResult | None = None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """A request resolved as failed; only the user-facing message is reported."""

    request_id: int
    user_message: str
    error_type: str = "general"


LifecycleEvent = Union[StartEvent, ProcessingEvent, TimeoutEvent, CompletionEvent, ErrorEvent]


@dataclass(frozen=True, slots=True)
class StatusReport:
    """One status line delivered to a status sink."""

    phase: str
    message: str
    request_id: int | None = None
    progress: float | None = None
    success: bool | None = None
    error_type: str | None = None


class EventCoordinator:
    """Deliver lifecycle events to a sink in strictly valid order."""

    def __init__(
        self,
        sink: StatusSink,
        on_export_enabled: Callable[[str], None] | None = None,
    ) -> None:
        self._sink = sink
        self._export_listeners: list[Callable[[str], None]] = []
        if on_export_enabled is not None:
            self._export_listeners.append(on_export_enabled)
        self._open_request: int | None = None
        self.reports_emitted = 0

    @property
    def open_request(self) -> int | None:
        """Return the request id of the open event sequence, if any."""

        return self._open_request

    def add_export_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked after every successful completion."""

        self._export_listeners.append(listener)

    def emit(self, event: LifecycleEvent) -> StatusReport:
        """Validate ordering, build one report, and deliver it to the sink.

        Raises:
            EventOrderError: If the event is not valid in the current sequence.
        """

        self._check_order(event)
        report = self._build_report(event)
        if isinstance(event, (CompletionEvent, ErrorEvent)):
            self._open_request = None
        elif isinstance(event, StartEvent):
            self._open_request = event.request_id

        self._sink.report_status(report)
        self.reports_emitted += 1

        if isinstance(event, CompletionEvent):
            for listener in self._export_listeners:
                try:
                    listener("Conversion completed successfully")
                except Exception:
                    logger.exception("Export listener failed for request {}", event.request_id)
        return report

    def _check_order(self, event: LifecycleEvent) -> None:
        if isinstance(event, StartEvent):
            if self._open_request is not None:
                raise EventOrderError(
                    f"Start event for request {event.request_id} while request "
                    f"{self._open_request} is still open."
                )
            return
        if self._open_request is None:
            raise EventOrderError(
                f"{type(event).__name__} for request {event.request_id} without a start event."
            )
        if event.request_id != self._open_request:
            raise EventOrderError(
                f"{type(event).__name__} for request {event.request_id} while request "
                f"{self._open_request} is open."
            )

    @staticmethod
    def _build_report(event: LifecycleEvent) -> StatusReport:
        if isinstance(event, StartEvent):
            complexity = event.complexity
            if complexity is None:
                message = "Converting document..."
            elif complexity.requires_chunking:
                message = f"Processing complex {complexity.level.value} document..."
            else:
                message = f"Converting {complexity.level.value} document..."
            return StatusReport("start", message, event.request_id, progress=15.0)

        if isinstance(event, ProcessingEvent):
            return StatusReport(
                "processing", event.message, event.request_id, progress=event.progress
            )

        if isinstance(event, TimeoutEvent):
            logger.warning(
                "Conversion timeout: {} exceeded {:.2f}s limit", event.label, event.budget_seconds
            )
            return StatusReport(
                "timeout",
                f"Processing timed out after {event.budget_seconds:.2f}s ({event.label}) - "
                "trying next strategy",
                event.request_id,
            )

        if isinstance(event, CompletionEvent):
            level = event.complexity.level if event.complexity is not None else None
            if event.partial:
                message = "Document converted with some sections unavailable. Ready for export."
            elif level is None or level.value == "basic":
                message = "Conversion complete! Ready for export."
            else:
                message = f"{level.value.capitalize()} document converted. Ready for export."
            return StatusReport(
                "completion", message, event.request_id, progress=100.0, success=True
            )

        return StatusReport(
            "error",
            f"Conversion failed: {event.user_message}",
            event.request_id,
            success=False,
            error_type=event.error_type,
        )
