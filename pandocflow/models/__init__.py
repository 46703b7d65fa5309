"""Data models used by pandocflow orchestration components."""

from .datatypes import (
    ChunkResult,
    ComplexityLevel,
    ComplexityResult,
    ConversionOutcome,
    ConversionRequest,
    DocumentSection,
    EngineStatus,
    FallbackTier,
    OutcomeError,
    RemovalReport,
    SanitisationResult,
)

__all__ = [
    "ChunkResult",
    "ComplexityLevel",
    "ComplexityResult",
    "ConversionOutcome",
    "ConversionRequest",
    "DocumentSection",
    "EngineStatus",
    "FallbackTier",
    "OutcomeError",
    "RemovalReport",
    "SanitisationResult",
]
