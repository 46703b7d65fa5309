"""Collaborator contracts consumed by the conversion orchestrator."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..models.datatypes import ComplexityResult, DocumentSection, SanitisationResult

if TYPE_CHECKING:
    from .events import StatusReport


Converter = Callable[[str, Sequence[str]], str]


@runtime_checkable
class ComplexityAssessorProtocol(Protocol):
    """Classify a document into a complexity level."""

    def assess(self, document: str) -> ComplexityResult:
        ...


@runtime_checkable
class ChunkSplitterProtocol(Protocol):
    """Split a document into ordered sections and renumber them."""

    def split_into_chunks(self, document: str) -> list[DocumentSection]:
        ...

    def renumber_sections(self, sections: list[DocumentSection]) -> list[DocumentSection]:
        ...


@runtime_checkable
class SanitiserProtocol(Protocol):
    """Remove problematic content from a document before conversion."""

    def sanitise(self, document: str) -> SanitisationResult:
        ...


@runtime_checkable
class ArgumentSimplifierProtocol(Protocol):
    """Reduce an argument list to its essential directives."""

    def simplify(self, arguments: Sequence[str]) -> tuple[str, ...]:
        ...


@runtime_checkable
class StatusSink(Protocol):
    """Receive one status report per lifecycle event."""

    def report_status(self, report: StatusReport) -> None:
        ...
