"""Integration-test fixtures for deterministic converter behavior."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import os
import re

import pytest

from pandocflow.config import ConverterConfig
from pandocflow.converter_factory import ConverterFactory
from pandocflow.errors import ConverterError


_SECTION_TITLE = re.compile(r"\\section\{([^}]+)\}")


class FakePandoc:
    """Converter double standing in for the pandoc executable."""

    def __init__(self, failure: str | None = None) -> None:
        """Store an optional failure message raised on every call."""

        self.failure = failure
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def available(self) -> bool:
        """Report the fake executable as installed."""

        return True

    def __call__(self, document: str, arguments: Sequence[str]) -> str:
        """Render section titles as headings, or raise the configured failure."""

        self.calls.append((document, tuple(arguments)))
        if self.failure is not None:
            raise ConverterError(self.failure, failure_kind="conversion_error")
        titles = _SECTION_TITLE.findall(document)
        return "".join(f"<h1>{title}</h1>" for title in titles) or "<p>converted</p>"


@pytest.fixture
def install_converter(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[..., FakePandoc]:
    """Route CLI converter creation to a fake pandoc instance."""

    def _install(failure: str | None = None) -> FakePandoc:
        """Patch the factory so every command receives one fake converter."""

        fake = FakePandoc(failure)

        def _create(config: ConverterConfig) -> FakePandoc:
            _ = config
            return fake

        monkeypatch.setattr(ConverterFactory, "create_converter", staticmethod(_create))
        return fake

    return _install


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer `PANDOCFLOW_*` variables out of CLI runs."""

    for key in list(os.environ):
        if key.startswith("PANDOCFLOW_"):
            monkeypatch.delenv(key)
