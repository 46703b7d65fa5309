"""Tiered recovery for failed conversion attempts.

Responsibilities:
- Walk `standard -> simplified -> chunked -> terminal` for one request.
- Short-circuit to terminal failure on non-recoverable causes.
- Report tier transitions and timeouts as lifecycle events.
- Always resolve to a `ConversionOutcome`; no tier raises past the chain.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from ..config import TimeoutBudgets
from ..errors import ConversionTimeoutError, ConverterError, ConverterNotBoundError
from ..models.datatypes import (
    ComplexityResult,
    ConversionOutcome,
    ConversionRequest,
    DocumentSection,
    FallbackTier,
)
from .chunked import ChunkedPassResult, ChunkedProcessor
from .contracts import ArgumentSimplifierProtocol, Converter
from .events import LifecycleEvent, ProcessingEvent, TimeoutEvent
from .messages import build_error_report
from .timeout import TimeoutGuard


_NON_RECOVERABLE_KINDS = frozenset({"converter_unbound", "permission"})
_NON_RECOVERABLE_PATTERNS = ("permission denied", "security")
_HISTORY_LIMIT = 200


def is_non_recoverable(exc: BaseException) -> bool:
    """Return whether a tier failure should skip the remaining recovery tiers.

    Classified converter failures are judged by `failure_kind` alone; message
    text is only consulted for unclassified failures, since converter
    diagnostics may quote document content.
    """

    if isinstance(exc, ConverterNotBoundError):
        return True
    if isinstance(exc, ConverterError) and exc.failure_kind != "unknown":
        return exc.failure_kind in _NON_RECOVERABLE_KINDS
    lowered = str(exc).lower()
    return any(pattern in lowered for pattern in _NON_RECOVERABLE_PATTERNS)


@dataclass(frozen=True, slots=True)
class TierAttempt:
    """One tier attempt recorded for diagnostics."""

    request_id: int
    attempt_number: int
    tier: FallbackTier
    succeeded: bool
    timed_out: bool = False


class FallbackChain:
    """Sequence recovery tiers for one request until one produces output."""

    def __init__(
        self,
        *,
        guard: TimeoutGuard,
        chunked: ChunkedProcessor,
        simplifier: ArgumentSimplifierProtocol,
        timeouts: TimeoutBudgets,
        min_splittable_chars: int,
        emit: Callable[[LifecycleEvent], object],
    ) -> None:
        self.guard = guard
        self.chunked = chunked
        self.simplifier = simplifier
        self.timeouts = timeouts
        self.min_splittable_chars = min_splittable_chars
        self._emit = emit
        self.history: deque[TierAttempt] = deque(maxlen=_HISTORY_LIMIT)

    async def run(
        self,
        request: ConversionRequest,
        complexity: ComplexityResult,
        converter: Converter | None,
    ) -> ConversionOutcome:
        """Resolve one request through the fallback tiers."""

        if converter is None:
            logger.error("Conversion request {} rejected: no converter bound", request.request_id)
            return self._terminal(request, ConverterNotBoundError(), attempts=0)

        if complexity.requires_chunking:
            logger.info(
                "Request {} requires chunking ({} score {:.1f})",
                request.request_id,
                complexity.level.value,
                complexity.score,
            )
            return await self._chunked_tier(request, converter, last_error=None)

        budget = self.timeouts.for_level(complexity.level)
        last_error = await self._single_pass(
            request, FallbackTier.STANDARD, converter, request.arguments, budget
        )
        if isinstance(last_error, ConversionOutcome):
            return last_error
        if is_non_recoverable(last_error):
            logger.warning("Non-recoverable failure on standard tier: {}", last_error)
            return self._terminal(request, last_error)

        request = request.next_attempt()
        simplified_arguments = self.simplifier.simplify(request.arguments)
        self._progress(request, "simplified", "Retrying with simplified arguments...", 50.0)
        last_error = await self._single_pass(
            request,
            FallbackTier.SIMPLIFIED,
            converter,
            simplified_arguments,
            self.timeouts.simplified,
        )
        if isinstance(last_error, ConversionOutcome):
            return last_error
        if is_non_recoverable(last_error):
            logger.warning("Non-recoverable failure on simplified tier: {}", last_error)
            return self._terminal(request, last_error)

        if not self._splittable(request.sanitised_text):
            return self._terminal(request, last_error)

        return await self._chunked_tier(request.next_attempt(), converter, last_error=last_error)

    async def _single_pass(
        self,
        request: ConversionRequest,
        tier: FallbackTier,
        converter: Converter,
        arguments: tuple[str, ...],
        budget_seconds: float,
    ) -> ConversionOutcome | BaseException:
        """Run one whole-document attempt; return an outcome or the failure."""

        try:
            output = await self.guard.run(
                converter,
                request.sanitised_text,
                arguments,
                budget_seconds=budget_seconds,
                label=tier.value,
            )
        except ConversionTimeoutError as exc:
            self._record(request, tier, succeeded=False, timed_out=True)
            self._emit(TimeoutEvent(request.request_id, exc.label, exc.budget_seconds))
            return exc
        except Exception as exc:
            self._record(request, tier, succeeded=False)
            logger.warning("{} tier failed for request {}: {}", tier.value, request.request_id, exc)
            return exc

        self._record(request, tier, succeeded=True)
        return ConversionOutcome(
            success=True,
            output=output,
            tier_reached=tier,
            attempts=request.attempt_number,
            request_id=request.request_id,
        )

    async def _chunked_tier(
        self,
        request: ConversionRequest,
        converter: Converter,
        *,
        last_error: BaseException | None,
    ) -> ConversionOutcome:
        """Run one full chunked pass under the chunked-pass budget."""

        self._progress(request, "chunked", "Processing document in sections...", 10.0)

        def _on_section(section: DocumentSection, total: int) -> None:
            progress = 10.0 + 80.0 * section.number / max(total, 1)
            self._progress(
                request,
                "chunked",
                f"Processing section {section.number} of {total}...",
                round(progress, 1),
            )

        try:
            result: ChunkedPassResult = await self.guard.run_pass(
                lambda: self.chunked.process(
                    request.sanitised_text,
                    request.arguments,
                    converter,
                    on_section=_on_section,
                ),
                budget_seconds=self.timeouts.chunked_pass,
                label=FallbackTier.CHUNKED.value,
            )
        except ConversionTimeoutError as exc:
            self._record(request, FallbackTier.CHUNKED, succeeded=False, timed_out=True)
            self._emit(TimeoutEvent(request.request_id, exc.label, exc.budget_seconds))
            return self._terminal(request, exc)

        self._record(request, FallbackTier.CHUNKED, succeeded=result.success)
        if not result.success:
            raw = result.first_error_message
            error: BaseException = (
                ConverterError(raw, failure_kind="chunked")
                if raw
                else last_error or ConverterError("Document produced no convertible sections.")
            )
            return self._terminal(
                request,
                error,
                chunks_processed=result.chunks_processed,
            )

        if result.partial:
            logger.warning(
                "Chunked conversion partial: {}/{} sections succeeded",
                result.chunks_succeeded,
                result.chunks_processed,
            )
        return ConversionOutcome(
            success=True,
            output=result.output,
            tier_reached=FallbackTier.CHUNKED,
            chunks_processed=result.chunks_processed,
            chunks_succeeded=result.chunks_succeeded,
            partial=result.partial,
            attempts=request.attempt_number,
            request_id=request.request_id,
        )

    def _splittable(self, document: str) -> bool:
        """Return whether a document qualifies for chunked fallback."""

        if len(document) < self.min_splittable_chars:
            return False
        return len(self.chunked.sections_for(document)) >= 2

    def _terminal(
        self,
        request: ConversionRequest,
        cause: BaseException,
        *,
        attempts: int | None = None,
        chunks_processed: int = 0,
    ) -> ConversionOutcome:
        """Build the failed outcome with a user-facing error report."""

        raw_message = str(cause) or type(cause).__name__
        report = build_error_report(raw_message)
        logger.error(
            "Conversion request {} failed after {} attempt(s): {}",
            request.request_id,
            request.attempt_number if attempts is None else attempts,
            raw_message,
        )
        return ConversionOutcome(
            success=False,
            output=None,
            tier_reached=FallbackTier.TERMINAL,
            chunks_processed=chunks_processed,
            error=report,
            attempts=request.attempt_number if attempts is None else attempts,
            request_id=request.request_id,
        )

    def _progress(
        self, request: ConversionRequest, stage: str, message: str, progress: float
    ) -> None:
        self._emit(ProcessingEvent(request.request_id, stage, message, progress))

    def _record(
        self,
        request: ConversionRequest,
        tier: FallbackTier,
        *,
        succeeded: bool,
        timed_out: bool = False,
    ) -> None:
        self.history.append(
            TierAttempt(
                request_id=request.request_id,
                attempt_number=request.attempt_number,
                tier=tier,
                succeeded=succeeded,
                timed_out=timed_out,
            )
        )
