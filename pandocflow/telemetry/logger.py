"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic phase-level conversion logs through `loguru`.
- Adapt orchestration status reports into one-line log records.
"""

from __future__ import annotations

from collections import deque
import sys
from typing import TYPE_CHECKING, TextIO

from loguru import logger

if TYPE_CHECKING:
    from ..engine.events import StatusReport


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
        if context[key] is not None
    ]
    if not tokens:
        return ""
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic phase logs for CLI-observable conversion activity."""

    def __init__(self, sink: TextIO | None = None, *, level: str = "INFO") -> None:
        """Bind a dedicated loguru handler writing plain lines to `sink`."""

        self._sink = sink or sys.stderr
        self._handler_id = logger.add(
            self._sink,
            format="{message}",
            level=level,
            colorize=False,
            filter=lambda record: record["extra"].get("run_log") is True,
        )
        self._logger = logger.bind(run_log=True)

    def close(self) -> None:
        """Detach the loguru handler owned by this run logger."""

        logger.remove(self._handler_id)

    def _emit(self, level: str, event: str, phase: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[phase] level={level} phase={phase} event={event}{_format_context(context)}"
        self._logger.log(level, line)

    def log_phase_start(self, phase: str, **context: object) -> None:
        """Emit a phase-start runtime event."""

        self._emit("INFO", "start", phase, **context)

    def log_phase_progress(self, phase: str, **context: object) -> None:
        """Emit an intermediate phase progress event."""

        self._emit("INFO", "progress", phase, **context)

    def log_phase_complete(self, phase: str, **context: object) -> None:
        """Emit a phase-complete runtime event."""

        self._emit("INFO", "complete", phase, **context)

    def log_phase_warning(self, phase: str, **context: object) -> None:
        """Emit a non-fatal phase warning."""

        self._emit("WARNING", "warning", phase, **context)

    def log_phase_failure(self, phase: str, error_type: str, **context: object) -> None:
        """Emit a phase-failure runtime event without raw converter payloads."""

        self._emit("ERROR", "failure", phase, error_type=error_type, **context)


class LoggingStatusSink:
    """Status sink that writes every orchestration report through `RunLogger`."""

    def __init__(self, run_logger: RunLogger, *, history_limit: int = 200) -> None:
        self._run_logger = run_logger
        self.reports: deque[StatusReport] = deque(maxlen=history_limit)

    def report_status(self, report: StatusReport) -> None:
        """Record one status report and mirror it to the run log."""

        self.reports.append(report)
        context: dict[str, object] = {"message": report.message}
        if report.progress is not None:
            context["progress"] = f"{report.progress:.0f}"
        if report.request_id is not None:
            context["request"] = report.request_id

        if report.phase == "start":
            self._run_logger.log_phase_start("convert", **context)
        elif report.phase == "processing":
            self._run_logger.log_phase_progress("convert", **context)
        elif report.phase == "timeout":
            self._run_logger.log_phase_warning("convert", **context)
        elif report.phase == "completion":
            self._run_logger.log_phase_complete("convert", **context)
        else:
            self._run_logger.log_phase_failure("convert", report.error_type or "error", **context)
