"""Shared pytest fixtures for the full pandocflow test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from pandocflow.config import ChunkingConfig, ConverterConfig, TimeoutBudgets
from pandocflow.engine.contracts import Converter
from pandocflow.engine.events import StatusReport
from pandocflow.engine.orchestrator import ConversionOrchestrator, build_orchestrator


class RecordingSink:
    """Status sink test double that keeps every delivered report."""

    def __init__(self) -> None:
        """Initialize empty report storage."""

        self.reports: list[StatusReport] = []

    def report_status(self, report: StatusReport) -> None:
        """Record one status report."""

        self.reports.append(report)

    @property
    def phases(self) -> list[str]:
        """Return delivered report phases in emission order."""

        return [report.phase for report in self.reports]


@pytest.fixture
def fast_config() -> ConverterConfig:
    """Provide a config with sub-second budgets and no pacing delays."""

    return ConverterConfig(
        debounce_seconds=0.01,
        timeouts=TimeoutBudgets(
            basic=0.3,
            moderate=0.4,
            complex=0.5,
            extreme=0.6,
            simplified=0.3,
            chunk=0.3,
            chunked_pass=5.0,
        ),
        chunking=ChunkingConfig(
            max_chunk_size=400,
            boundary_window=50,
            processing_delay_seconds=0.0,
            min_splittable_chars=50,
        ),
    )


@pytest.fixture
def sink() -> RecordingSink:
    """Provide a fresh recording status sink."""

    return RecordingSink()


@pytest.fixture
def make_orchestrator(
    fast_config: ConverterConfig, sink: RecordingSink
) -> Iterator[Callable[..., ConversionOrchestrator]]:
    """Build initialised orchestrators and tear them down after the test."""

    created: list[ConversionOrchestrator] = []

    def _factory(
        converter: Converter | None = None,
        *,
        config: ConverterConfig | None = None,
    ) -> ConversionOrchestrator:
        """Create one orchestrator, optionally binding `converter`."""

        orchestrator = build_orchestrator(config or fast_config, sink)
        assert orchestrator.initialise()
        if converter is not None:
            assert orchestrator.bind_converter(converter)
        created.append(orchestrator)
        return orchestrator

    yield _factory

    for orchestrator in created:
        orchestrator.teardown()
