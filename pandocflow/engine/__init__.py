"""Conversion engine: lifecycle, timeouts, fallback tiers, and events."""

from .chunked import ChunkedPassResult, ChunkedProcessor
from .events import (
    CompletionEvent,
    ErrorEvent,
    EventCoordinator,
    ProcessingEvent,
    StartEvent,
    StatusReport,
    TimeoutEvent,
)
from .fallback import FallbackChain, is_non_recoverable
from .orchestrator import ConversionOrchestrator, build_orchestrator
from .state import ConversionStateMachine, LifecycleState, StateValidation
from .status_cache import StatusCache
from .timeout import TimeoutGuard

__all__ = [
    "ChunkedPassResult",
    "ChunkedProcessor",
    "CompletionEvent",
    "ConversionOrchestrator",
    "ConversionStateMachine",
    "ErrorEvent",
    "EventCoordinator",
    "FallbackChain",
    "LifecycleState",
    "ProcessingEvent",
    "StartEvent",
    "StateValidation",
    "StatusCache",
    "StatusReport",
    "TimeoutEvent",
    "TimeoutGuard",
    "build_orchestrator",
    "is_non_recoverable",
]
