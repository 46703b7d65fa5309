"""Section-by-section conversion of oversized documents.

Responsibilities:
- Split and renumber a document through the chunk splitter collaborator.
- Convert every section under a per-section budget without aborting on failures.
- Reassemble output in source order with placeholders for failed sections.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from ..converters.arguments import strip_number_sections
from ..models.datatypes import ChunkResult, DocumentSection
from ..text.chunking import number_headings
from .contracts import ChunkSplitterProtocol, Converter
from .messages import build_error_report, section_error_message, section_placeholder
from .timeout import TimeoutGuard


SectionCallback = Callable[[DocumentSection, int], None]


@dataclass(frozen=True, slots=True)
class ChunkedPassResult:
    """Outcome of one full chunked pass over a document."""

    success: bool
    output: str | None
    chunk_results: tuple[ChunkResult, ...] = field(default_factory=tuple)

    @property
    def chunks_processed(self) -> int:
        return len(self.chunk_results)

    @property
    def chunks_succeeded(self) -> int:
        return sum(1 for result in self.chunk_results if result.succeeded)

    @property
    def partial(self) -> bool:
        """Whether the pass succeeded with at least one failed section."""

        return self.success and self.chunks_succeeded < self.chunks_processed

    @property
    def first_error_message(self) -> str | None:
        for result in self.chunk_results:
            if result.error is not None:
                return result.error.raw_message
        return None


class ChunkedProcessor:
    """Convert documents section by section and merge the results."""

    def __init__(
        self,
        splitter: ChunkSplitterProtocol,
        guard: TimeoutGuard,
        *,
        chunk_budget_seconds: float = 5.0,
        processing_delay_seconds: float = 0.05,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.splitter = splitter
        self.guard = guard
        self.chunk_budget_seconds = chunk_budget_seconds
        self.processing_delay_seconds = processing_delay_seconds
        self._sleep = sleep

    def sections_for(self, document: str) -> list[DocumentSection]:
        """Return the renumbered sections a document splits into."""

        return self.splitter.renumber_sections(self.splitter.split_into_chunks(document))

    async def process(
        self,
        document: str,
        arguments: Sequence[str],
        converter: Converter,
        *,
        on_section: SectionCallback | None = None,
    ) -> ChunkedPassResult:
        """Convert all sections of `document` and reassemble them in order."""

        sections = self.sections_for(document)
        if not sections:
            logger.warning("Chunked processing skipped: document produced no sections")
            return ChunkedPassResult(success=False, output=None)

        section_arguments = strip_number_sections(arguments)
        renumber_output = len(section_arguments) != len(arguments)
        results: list[ChunkResult] = []
        total = len(sections)
        logger.info("Chunked processing: {} sections", total)

        for position, section in enumerate(sections):
            if on_section is not None:
                on_section(section, total)
            results.append(await self._convert_section(section, section_arguments, converter))
            if position < total - 1 and self.processing_delay_seconds > 0.0:
                await self._sleep(self.processing_delay_seconds)

        ordered = sorted(results, key=lambda result: result.source_range[0])
        output = "\n".join(result.output_fragment for result in ordered)
        if renumber_output:
            output = number_headings(output)

        succeeded = sum(1 for result in ordered if result.succeeded)
        logger.info("Chunked processing finished: {}/{} sections succeeded", succeeded, total)
        return ChunkedPassResult(
            success=succeeded > 0,
            output=output if succeeded > 0 else None,
            chunk_results=tuple(ordered),
        )

    async def _convert_section(
        self,
        section: DocumentSection,
        arguments: tuple[str, ...],
        converter: Converter,
    ) -> ChunkResult:
        """Convert one section, turning any failure into a placeholder result."""

        try:
            fragment = await self.guard.run(
                converter,
                section.content,
                arguments,
                budget_seconds=self.chunk_budget_seconds,
                label=f"section {section.number}",
            )
        except Exception as exc:
            raw_message = str(exc) or type(exc).__name__
            logger.warning(
                "Error processing section {} ({}): {}", section.number, section.title, raw_message
            )
            report = build_error_report(raw_message)
            user_message = section_error_message(raw_message, section.number)
            return ChunkResult(
                index=section.index,
                source_range=section.source_range,
                output_fragment=section_placeholder(section.title, user_message),
                succeeded=False,
                error=report,
                title=section.title,
            )

        return ChunkResult(
            index=section.index,
            source_range=section.source_range,
            output_fragment=fragment.strip(),
            succeeded=True,
            title=section.title,
        )
