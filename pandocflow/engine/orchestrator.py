"""Conversion orchestrator facade.

Responsibilities:
- Wire the state machine, status cache, timeout guard, fallback chain, and events.
- Enforce single-flight conversions and replay exactly one coalesced request.
- Debounce automatic conversion triggers unless they are disabled.
- Resolve every request to a `ConversionOutcome` without raising.

Key types:
- `ConversionOrchestrator`: the public entry point for callers.
- `build_orchestrator`: factory wiring the default collaborators from config.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
import itertools
import time

from loguru import logger

from ..config import ConverterConfig
from ..converters.arguments import ArgumentSimplifier, parse_arguments
from ..errors import ConverterNotBoundError, InitialisationError
from ..models.datatypes import (
    ComplexityResult,
    ConversionOutcome,
    ConversionRequest,
    EngineStatus,
    FallbackTier,
)
from ..text.chunking import SectionSplitter
from ..text.complexity import ComplexityAssessor
from ..text.sanitiser import LatexSanitiser
from .chunked import ChunkedProcessor
from .contracts import (
    ArgumentSimplifierProtocol,
    ChunkSplitterProtocol,
    ComplexityAssessorProtocol,
    Converter,
    SanitiserProtocol,
    StatusSink,
)
from .events import CompletionEvent, ErrorEvent, EventCoordinator, StartEvent
from .fallback import FallbackChain
from .messages import build_error_report
from .state import ConversionStateMachine, LifecycleState, StateValidation
from .status_cache import StatusCache
from .timeout import TimeoutGuard


_REQUEST_IDS = itertools.count(1)


def _cancelled_outcome() -> ConversionOutcome:
    """Outcome for a request dropped or interrupted before it resolved."""

    return ConversionOutcome(success=False, output=None, tier_reached=None, cancelled=True)


class _PendingReplay:
    """Latest queued payload plus every caller waiting on its outcome."""

    __slots__ = ("raw_text", "arguments", "waiters")

    def __init__(self) -> None:
        self.raw_text = ""
        self.arguments: tuple[str, ...] = ()
        self.waiters: list[asyncio.Future[ConversionOutcome]] = []


class ConversionOrchestrator:
    """Drive document conversions through the adaptive fallback chain.

    Collaborators may be omitted at construction; `initialise()` then fails
    and the engine stays uninitialised until a complete set is supplied.
    """

    def __init__(
        self,
        *,
        config: ConverterConfig | None = None,
        assessor: ComplexityAssessorProtocol | None = None,
        splitter: ChunkSplitterProtocol | None = None,
        sanitiser: SanitiserProtocol | None = None,
        simplifier: ArgumentSimplifierProtocol | None = None,
        sink: StatusSink | None = None,
        state: ConversionStateMachine | None = None,
        guard: TimeoutGuard | None = None,
        on_export_enabled: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ConverterConfig()
        self.assessor = assessor
        self.splitter = splitter
        self.sanitiser = sanitiser
        self.simplifier = simplifier
        self.sink = sink

        self.state = state or ConversionStateMachine()
        self.status_cache = StatusCache(
            source=self.state.snapshot,
            ttl_seconds=self.config.status_ttl_seconds,
            clock=clock,
        )
        self.state.set_on_change(self.status_cache.invalidate)
        if self.config.automatic_conversions_disabled:
            self.state.set_automatic_conversions_disabled(True)

        self.guard = guard or TimeoutGuard(state=self.state)
        self.events = EventCoordinator(sink, on_export_enabled) if sink is not None else None
        self.chain: FallbackChain | None = None
        self._pending: _PendingReplay | None = None
        self._replay_task: asyncio.Task[None] | None = None
        self._debounce_task: asyncio.Task[ConversionOutcome] | None = None

    def initialise(self) -> bool:
        """Check collaborators and move the engine to INITIALISED.

        Returns:
            Whether the engine is initialised; failures are logged, never raised.
        """

        initialised = self.state.initialise(
            {
                "assessor": self.assessor,
                "splitter": self.splitter,
                "sanitiser": self.sanitiser,
                "simplifier": self.simplifier,
                "sink": self.sink,
            }
        )
        if initialised and self.chain is None:
            self.chain = self._build_chain()
        return initialised

    def bind_converter(self, converter: Converter) -> bool:
        """Bind the synchronous converter; the latest binding wins."""

        return self.state.bind_converter(converter)

    def get_status(self) -> EngineStatus:
        """Return the (briefly memoised) engine status snapshot."""

        return self.status_cache.read_status()

    def validate_state(self) -> StateValidation:
        """Run the lifecycle consistency check and log any findings."""

        validation = self.state.validate()
        for issue in validation.issues:
            logger.error("State validation issue: {}", issue)
        for warning in validation.warnings:
            logger.warning("State validation warning: {}", warning)
        return validation

    async def request_conversion(
        self, raw_text: str, arguments: str | Sequence[str] | None = None
    ) -> ConversionOutcome:
        """Convert `raw_text`, or coalesce into the queued replay when busy.

        Never raises; every failure resolves to an unsuccessful outcome.
        """

        try:
            parsed_arguments = (
                parse_arguments(self.config.arguments)
                if arguments is None
                else parse_arguments(arguments)
            )
        except ValueError as exc:
            return self._rejected(f"Invalid converter arguments: {exc}")

        if self.state.converting:
            return await self._coalesce(raw_text, parsed_arguments)

        if self.state.state is LifecycleState.UNINITIALISED or self.chain is None:
            error = self.state.initialisation_error or InitialisationError(["engine"])
            return self._rejected(f"Engine not initialised: {error}")

        if not self.state.start_conversion():
            return self._unbound_outcome()

        outcome = _cancelled_outcome()
        try:
            outcome = await self._convert_owned(raw_text, parsed_arguments)
        finally:
            self._finish(outcome)
        return outcome

    def trigger_automatic_conversion(
        self, raw_text: str, arguments: str | Sequence[str] | None = None
    ) -> asyncio.Task[ConversionOutcome] | None:
        """Schedule a debounced automatic conversion.

        Returns `None` when automatic conversions are disabled. A newer trigger
        within the debounce window replaces the scheduled one.
        """

        if self.state.automatic_conversions_disabled:
            logger.debug("Automatic conversion skipped: disabled")
            return None
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.get_running_loop().create_task(
            self._debounced(raw_text, arguments)
        )
        return self._debounce_task

    def set_automatic_conversions_disabled(self, disabled: bool) -> None:
        """Enable or disable automatic conversion triggers."""

        self.state.set_automatic_conversions_disabled(disabled)

    def cancel_pending(self) -> bool:
        """Drop the queued replay and any scheduled automatic trigger.

        The in-flight attempt is unaffected. Waiting callers resolve with a
        cancelled outcome.

        Returns:
            Whether anything was dropped.
        """

        dropped = self.state.clear_queue()
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
            dropped = True
        pending, self._pending = self._pending, None
        if pending is not None:
            for waiter in pending.waiters:
                if not waiter.done():
                    waiter.set_result(_cancelled_outcome())
            dropped = dropped or bool(pending.waiters)
        if dropped:
            logger.info("Pending conversion cancelled")
        return dropped

    def teardown(self) -> None:
        """Cancel pending work, unbind the converter, and release the worker pool."""

        self.cancel_pending()
        if self._replay_task is not None and not self._replay_task.done():
            self._replay_task.cancel()
        self.state.teardown()
        self.guard.close()
        self.chain = None

    @property
    def tier_history(self) -> list[tuple[int, int, FallbackTier]]:
        """Return `(request_id, attempt_number, tier)` for recent tier attempts."""

        if self.chain is None:
            return []
        return [
            (attempt.request_id, attempt.attempt_number, attempt.tier)
            for attempt in self.chain.history
        ]

    async def _debounced(
        self, raw_text: str, arguments: str | Sequence[str] | None
    ) -> ConversionOutcome:
        await asyncio.sleep(self.config.debounce_seconds)
        return await self.request_conversion(raw_text, arguments)

    async def _coalesce(
        self, raw_text: str, arguments: tuple[str, ...]
    ) -> ConversionOutcome:
        """Record the latest payload for the single replay and await its outcome."""

        self.state.start_conversion()
        if self._pending is None:
            self._pending = _PendingReplay()
        self._pending.raw_text = raw_text
        self._pending.arguments = arguments
        waiter: asyncio.Future[ConversionOutcome] = asyncio.get_running_loop().create_future()
        self._pending.waiters.append(waiter)
        return await waiter

    def _finish(self, outcome: ConversionOutcome) -> None:
        """Return to READY and start exactly one replay when one is queued."""

        replay_pending = self.state.complete_conversion(outcome.success)
        pending, self._pending = self._pending, None
        if not replay_pending or pending is None:
            return
        if not self.state.start_conversion():
            for waiter in pending.waiters:
                if not waiter.done():
                    waiter.set_result(self._unbound_outcome())
            return
        logger.debug("Replaying queued conversion for {} waiting caller(s)", len(pending.waiters))
        self._replay_task = asyncio.get_running_loop().create_task(self._replay(pending))

    async def _replay(self, pending: _PendingReplay) -> None:
        outcome = _cancelled_outcome()
        try:
            outcome = await self._convert_owned(pending.raw_text, pending.arguments)
        finally:
            for waiter in pending.waiters:
                if not waiter.done():
                    waiter.set_result(outcome)
            self._finish(outcome)

    async def _convert_owned(
        self, raw_text: str, arguments: tuple[str, ...]
    ) -> ConversionOutcome:
        """Run one request while holding the conversion slot."""

        request_id = next(_REQUEST_IDS)
        events = self.events
        assert events is not None and self.chain is not None
        complexity: ComplexityResult | None = None
        try:
            sanitisation = self.sanitiser.sanitise(raw_text)
            for warning in sanitisation.warnings:
                logger.warning("Sanitisation warning: {}", warning)
            complexity = self.assessor.assess(sanitisation.sanitised)
            events.emit(StartEvent(request_id, complexity))

            request = ConversionRequest(
                request_id=request_id,
                raw_text=raw_text,
                sanitised_text=sanitisation.sanitised,
                arguments=arguments,
            )
            outcome = await self.chain.run(request, complexity, self.state.converter)
        except asyncio.CancelledError:
            logger.warning("Conversion request {} cancelled by its caller", request_id)
            if events.open_request == request_id:
                events.emit(ErrorEvent(request_id, "Conversion cancelled.", "cancelled"))
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while converting request {}", request_id)
            report = build_error_report(str(exc) or type(exc).__name__)
            outcome = ConversionOutcome(
                success=False,
                output=None,
                tier_reached=FallbackTier.TERMINAL,
                error=report,
                request_id=request_id,
            )
            if events.open_request != request_id:
                events.emit(StartEvent(request_id))

        if outcome.success:
            events.emit(
                CompletionEvent(
                    request_id,
                    tier=outcome.tier_reached or FallbackTier.STANDARD,
                    partial=outcome.partial,
                    complexity=complexity,
                )
            )
        else:
            error = outcome.error or build_error_report("Conversion failed")
            events.emit(ErrorEvent(request_id, error.user_message, error.error_type))
        return outcome

    def _unbound_outcome(self) -> ConversionOutcome:
        return self._rejected(str(ConverterNotBoundError()))

    def _rejected(self, raw_message: str) -> ConversionOutcome:
        """Resolve a request that never entered the conversion slot."""

        request_id = next(_REQUEST_IDS)
        report = build_error_report(raw_message)
        logger.error("Conversion request {} rejected: {}", request_id, raw_message)
        if self.events is not None and self.events.open_request is None:
            self.events.emit(StartEvent(request_id))
            self.events.emit(ErrorEvent(request_id, report.user_message, report.error_type))
        return ConversionOutcome(
            success=False,
            output=None,
            tier_reached=FallbackTier.TERMINAL,
            error=report,
            request_id=request_id,
        )

    def _build_chain(self) -> FallbackChain:
        assert self.splitter is not None and self.simplifier is not None
        assert self.events is not None
        chunked = ChunkedProcessor(
            self.splitter,
            self.guard,
            chunk_budget_seconds=self.config.timeouts.chunk,
            processing_delay_seconds=self.config.chunking.processing_delay_seconds,
        )
        return FallbackChain(
            guard=self.guard,
            chunked=chunked,
            simplifier=self.simplifier,
            timeouts=self.config.timeouts,
            min_splittable_chars=self.config.chunking.min_splittable_chars,
            emit=self.events.emit,
        )


def build_orchestrator(
    config: ConverterConfig,
    sink: StatusSink,
    *,
    on_export_enabled: Callable[[str], None] | None = None,
) -> ConversionOrchestrator:
    """Create an orchestrator wired with the default collaborators for `config`."""

    return ConversionOrchestrator(
        config=config,
        assessor=ComplexityAssessor(
            max_complexity_score=config.max_complexity_score,
            max_document_length=config.max_document_length,
        ),
        splitter=SectionSplitter(
            max_chunk_size=config.chunking.max_chunk_size,
            boundary_window=config.chunking.boundary_window,
        ),
        sanitiser=LatexSanitiser(),
        simplifier=ArgumentSimplifier(config.simplified_arguments),
        sink=sink,
        on_export_enabled=on_export_enabled,
    )
