"""Core datatypes shared across pandocflow modules.

Responsibilities:
- Represent immutable records exchanged between orchestration components.
- Provide explicit typing for engine status snapshots and conversion outcomes.

Key types:
- `ConversionRequest`, `ComplexityResult`, `EngineStatus`, `DocumentSection`,
  `ChunkResult`, `OutcomeError`, `ConversionOutcome`, `RemovalReport`,
  and `SanitisationResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping


class ComplexityLevel(str, Enum):
    """Expected conversion difficulty of a document."""

    BASIC = "basic"
    MODERATE = "moderate"
    COMPLEX = "complex"
    EXTREME = "extreme"


class FallbackTier(str, Enum):
    """Ordered recovery strategies walked by the fallback chain."""

    STANDARD = "standard"
    SIMPLIFIED = "simplified"
    CHUNKED = "chunked"
    TERMINAL = "terminal"


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    """Immutable input bundle for one logical conversion.

    Attributes:
        request_id: Process-unique identifier of the logical request.
        raw_text: Original document text.
        sanitised_text: Document text after sanitisation.
        arguments: Ordered converter directives.
        attempt_number: 1-based attempt counter, incremented per fallback tier.
    """

    request_id: int
    raw_text: str
    sanitised_text: str
    arguments: tuple[str, ...]
    attempt_number: int = 1

    def next_attempt(self) -> ConversionRequest:
        """Return a copy of this request for the next fallback tier."""

        return replace(self, attempt_number=self.attempt_number + 1)


@dataclass(frozen=True, slots=True)
class ComplexityResult:
    """Complexity classification produced once per request.

    Attributes:
        level: Complexity tier.
        score: Non-negative weighted score.
        indicators: Weighted contribution of each named signal to `score`.
        requires_chunking: Whether the document should be converted in sections.
        raw_counts: Unweighted counts of each detected signal.
        estimated_seconds: Rough processing-time estimate.
    """

    level: ComplexityLevel
    score: float
    indicators: Mapping[str, float]
    requires_chunking: bool
    raw_counts: Mapping[str, int] = field(default_factory=dict)
    estimated_seconds: float = 0.0


@dataclass(frozen=True, slots=True)
class EngineStatus:
    """Point-in-time snapshot of engine lifecycle flags."""

    initialised: bool
    ready: bool
    conversion_in_progress: bool
    conversion_queued: bool
    automatic_conversions_disabled: bool
    active_timeout_count: int
    pandoc_available: bool
    last_conversion_at: float = 0.0


@dataclass(frozen=True, slots=True)
class DocumentSection:
    """An independently convertible section of a larger document.

    Attributes:
        index: 0-based position in split order.
        number: Sequential 1-based number assigned by renumbering.
        title: Section title or inferred label.
        kind: `preamble`, `section`, `subsection`, `fragment`, or `whole`.
        source_range: `(start, end)` character offsets in the document body.
        raw_text: Section text as it appears in the document body.
        content: Standalone convertible document wrapping `raw_text`.
    """

    index: int
    title: str
    kind: str
    source_range: tuple[int, int]
    raw_text: str
    content: str
    number: int = 0


@dataclass(frozen=True, slots=True)
class OutcomeError:
    """Error report attached to a failed outcome or failed section.

    `raw_message` is diagnostic only; `user_message` is what end users see.
    """

    raw_message: str
    user_message: str
    error_type: str = "general"
    severity: str = "medium"
    recoverable: bool = True
    suggestions: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ChunkResult:
    """Conversion result for one document section."""

    index: int
    source_range: tuple[int, int]
    output_fragment: str
    succeeded: bool
    error: OutcomeError | None = None
    title: str = ""


@dataclass(frozen=True, slots=True)
class ConversionOutcome:
    """Terminal record of one logical conversion request.

    Attributes:
        success: Whether usable output was produced.
        output: Assembled HTML output, or `None` on failure.
        chunks_processed: Number of sections attempted on the chunked tier.
        chunks_succeeded: Number of sections that converted successfully.
        tier_reached: Tier that resolved or exhausted the request.
        error: Error report for failed outcomes.
        partial: Whether a chunked success includes failed sections.
        attempts: Number of tier attempts made.
        request_id: Identifier of the logical request.
        cancelled: Whether a queued trigger was dropped before running.
    """

    success: bool
    output: str | None
    tier_reached: FallbackTier | None
    chunks_processed: int = 0
    chunks_succeeded: int = 0
    error: OutcomeError | None = None
    partial: bool = False
    attempts: int = 0
    request_id: int | None = None
    cancelled: bool = False


@dataclass(frozen=True, slots=True)
class RemovalReport:
    """One category of content removed by the sanitiser."""

    count: int
    description: str
    examples: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class SanitisationResult:
    """Sanitised document text with removal and warning diagnostics."""

    sanitised: str
    removed: tuple[RemovalReport, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_removed(self) -> int:
        """Return the total number of removed elements."""

        return sum(report.count for report in self.removed)
