"""Telemetry and observability helpers.

This package turns orchestration status reports into deterministic run logs.
"""

from .logger import LoggingStatusSink, RunLogger

__all__ = ["LoggingStatusSink", "RunLogger"]
