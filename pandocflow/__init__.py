"""Top-level package for pandocflow.

This package drives conversion of large LaTeX documents into HTML through a
synchronous Pandoc backend, adapting its strategy to document complexity and
falling back through simplified and chunked attempts. The main orchestration
entry point is `ConversionOrchestrator`.
"""

from .engine.orchestrator import ConversionOrchestrator, build_orchestrator

__all__ = ["ConversionOrchestrator", "build_orchestrator", "__version__"]

__version__ = "0.1.0"
