"""Document complexity assessment for conversion strategy selection.

Responsibilities:
- Count weighted LaTeX structure signals (math, environments, sections, commands).
- Map the weighted score to a `ComplexityLevel` and a chunking recommendation.
- Provide human-readable recommendations for CLI diagnostics.
"""

from __future__ import annotations

import re

from loguru import logger

from ..models.datatypes import ComplexityLevel, ComplexityResult


_SIGNAL_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "equations": (re.compile(r"\$.*?\$"), re.compile(r"\\\[[\s\S]*?\\\]")),
    "display_math": (re.compile(r"\$\$[\s\S]*?\$\$"),),
    "matrices": (re.compile(r"\\begin\{[^}]*matrix[^}]*\}"),),
    "environments": (re.compile(r"\\begin\{[^}]*\}"),),
    "sections": (re.compile(r"\\section\{"), re.compile(r"\\subsection\{")),
    "tables": (re.compile(r"\\begin\{table[^}]*\}"),),
    "figures": (re.compile(r"\\begin\{figure[^}]*\}"),),
    "commands": (re.compile(r"\\[a-zA-Z]+"),),
}

SIGNAL_WEIGHTS: dict[str, float] = {
    "equations": 1.0,
    "display_math": 2.0,
    "matrices": 5.0,
    "environments": 2.0,
    "sections": 3.0,
    "tables": 3.0,
    "figures": 2.0,
    "commands": 0.1,
}

_CHARS_PER_POINT = 1000
_LINES_PER_POINT = 100
_MAX_ESTIMATED_SECONDS = 15.0

_LEVEL_THRESHOLDS: tuple[tuple[float, ComplexityLevel], ...] = (
    (10.0, ComplexityLevel.BASIC),
    (30.0, ComplexityLevel.MODERATE),
    (70.0, ComplexityLevel.COMPLEX),
)


def level_for_score(score: float) -> ComplexityLevel:
    """Map a weighted complexity score to its complexity level."""

    for upper_bound, level in _LEVEL_THRESHOLDS:
        if score < upper_bound:
            return level
    return ComplexityLevel.EXTREME


class ComplexityAssessor:
    """Classify LaTeX documents into complexity levels with a weighted score."""

    def __init__(self, max_complexity_score: int = 50, max_document_length: int = 10000) -> None:
        self.max_complexity_score = max_complexity_score
        self.max_document_length = max_document_length

    def assess(self, document: str) -> ComplexityResult:
        """Assess one document and return its immutable complexity result."""

        raw_counts = {
            name: sum(len(pattern.findall(document)) for pattern in patterns)
            for name, patterns in _SIGNAL_PATTERNS.items()
        }
        indicators: dict[str, float] = {
            name: raw_counts[name] * SIGNAL_WEIGHTS[name] for name in SIGNAL_WEIGHTS
        }
        length = len(document)
        line_count = len(document.split("\n")) if document else 0
        indicators["length"] = float(length // _CHARS_PER_POINT)
        indicators["line_count"] = float(line_count // _LINES_PER_POINT)
        raw_counts["length"] = length
        raw_counts["line_count"] = line_count

        score = round(sum(indicators.values()), 4)
        level = level_for_score(score)
        requires_chunking = score > self.max_complexity_score or length > self.max_document_length
        estimated_seconds = min(score * 0.1, _MAX_ESTIMATED_SECONDS)

        logger.debug(
            "Document complexity assessment: {} (score: {:.1f}, chunking: {})",
            level.value,
            score,
            requires_chunking,
        )
        return ComplexityResult(
            level=level,
            score=score,
            indicators=indicators,
            requires_chunking=requires_chunking,
            raw_counts=raw_counts,
            estimated_seconds=estimated_seconds,
        )


def recommendations(result: ComplexityResult) -> list[str]:
    """Return processing recommendations derived from one complexity result."""

    counts = result.raw_counts
    notes: list[str] = []
    if result.requires_chunking:
        notes.append("Chunked processing recommended for this document")
    if counts.get("sections", 0) > 10:
        notes.append("Multi-section document - sequential numbering may be needed")
    if counts.get("environments", 0) > 20:
        notes.append("Environment-heavy document - simplified arguments may help")
    if result.score > 100:
        notes.append("Extremely complex document - consider splitting the source")
    if counts.get("length", 0) > 50000:
        notes.append("Very large document - chunked processing strongly recommended")
    return notes


def memory_impact(result: ComplexityResult) -> str:
    """Return a coarse memory-impact label for a complexity score."""

    if result.score > 50:
        return "high"
    if result.score > 20:
        return "medium"
    return "low"
