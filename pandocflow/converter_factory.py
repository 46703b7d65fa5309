"""Converter factory helpers for the configured backend.

Responsibilities:
- Resolve backend identifiers to concrete converter callables.
- Keep the orchestrator independent from concrete backend construction.
"""

from __future__ import annotations

from .config import ConverterConfig
from .converters.pandoc_cli import PandocCliConverter
from .converters.pandoc_server import PandocServerConverter
from .engine.contracts import Converter


class ConverterFactory:
    """Factory for converter backends used by the orchestrator."""

    @staticmethod
    def create_converter(config: ConverterConfig) -> Converter:
        """Create the converter for `config.backend`."""

        if config.backend == "cli":
            return PandocCliConverter(config.pandoc_executable)
        if config.backend == "server":
            return PandocServerConverter(config.server_url)
        raise ValueError(f"Unsupported converter backend `{config.backend}`.")
