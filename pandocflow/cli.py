"""Command-line interface for pandocflow.

Responsibilities:
- Expose user-facing commands for conversion, complexity assessment, and splitting.
- Convert CLI arguments into `ConverterConfig` and drive one orchestrator run.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    echo_complexity_summary,
    echo_outcome_summary,
    echo_section_list,
    exit_with_command_error,
)
from .config import ConfigLoader, ConverterConfig
from .converter_factory import ConverterFactory
from .engine.contracts import Converter
from .engine.orchestrator import build_orchestrator
from .errors import ConversionStageError
from .models.datatypes import ConversionOutcome
from .parsing import normalize_optional_string
from .telemetry.logger import LoggingStatusSink, RunLogger
from .text.chunking import SectionSplitter
from .text.complexity import ComplexityAssessor
from .text.sanitiser import LatexSanitiser

app = typer.Typer(
    name="pandocflow",
    no_args_is_help=True,
    help="Adaptive LaTeX to HTML conversion through Pandoc.",
)


def _load_config(config_path: Path | None) -> ConverterConfig:
    """Load YAML (or environment) config and map failures to stage errors."""

    try:
        if config_path is None:
            return ConfigLoader.from_env()
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise ConversionStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        source = f"config file `{config_path}`" if config_path is not None else "environment"
        raise ConversionStageError(
            stage="config",
            detail=f"Invalid {source}: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _resolve_command_config(
    config_file: Path | None,
    arguments: str | None = None,
    backend: str | None = None,
    server_url: str | None = None,
) -> ConverterConfig:
    """Resolve effective config from YAML defaults and explicit CLI overrides."""

    loaded_config = _load_config(config_file)
    try:
        return loaded_config.with_overrides(
            arguments=normalize_optional_string(arguments),
            backend=normalize_optional_string(backend),
            server_url=normalize_optional_string(server_url),
        )
    except ValueError as exc:
        raise ConversionStageError(
            stage="config",
            detail=f"Invalid command option: {exc}",
            hint="Use `--backend cli` or `--backend server`.",
        ) from exc


def _read_document(input_tex: Path) -> str:
    """Read the LaTeX source and map I/O failures to stage errors."""

    try:
        return input_tex.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConversionStageError(
            stage="input",
            detail=f"Input file not found: `{input_tex}`.",
            hint="Pass an existing `.tex` file.",
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConversionStageError(
            stage="input",
            detail=f"Input file `{input_tex}` could not be read: {exc}",
            hint="Verify the file is UTF-8 encoded and readable.",
        ) from exc


def _ensure_converter_available(config: ConverterConfig, converter: Converter) -> None:
    """Fail fast when the configured backend cannot be reached."""

    available = getattr(converter, "available", None)
    if available is None or available():
        return
    if config.backend == "cli":
        raise ConversionStageError(
            stage="converter",
            detail=f"Pandoc executable `{config.pandoc_executable}` was not found.",
            hint="Install pandoc or set `pandoc_executable` in the config file.",
        )
    raise ConversionStageError(
        stage="converter",
        detail=f"Pandoc server at `{config.server_url}` is not reachable.",
        hint="Start `pandoc-server` or pass `--server-url`.",
    )


async def _run_conversion(
    config: ConverterConfig,
    converter: Converter,
    document: str,
    run_logger: RunLogger,
) -> ConversionOutcome:
    """Run one request through a freshly built orchestrator."""

    orchestrator = build_orchestrator(config, LoggingStatusSink(run_logger))
    try:
        if not orchestrator.initialise():
            raise ConversionStageError(
                stage="initialise",
                detail=str(orchestrator.state.initialisation_error),
            )
        orchestrator.bind_converter(converter)
        return await orchestrator.request_conversion(document, config.arguments)
    finally:
        orchestrator.teardown()


@app.command("convert")
def convert_command(
    input_tex: Annotated[Path, typer.Argument(help="Path to the LaTeX source.")],
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Output HTML path (defaults to `<input>.html`)."),
    ] = None,
    arguments: Annotated[
        str | None,
        typer.Option("--args", help="Converter arguments for the standard attempt."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="Path to YAML config file with command defaults.",
        ),
    ] = None,
    backend: Annotated[
        str | None,
        typer.Option("--backend", help="Converter backend: `cli` or `server`."),
    ] = None,
    server_url: Annotated[
        str | None,
        typer.Option("--server-url", help="Base URL of a running `pandoc-server`."),
    ] = None,
) -> None:
    """Convert one LaTeX document into HTML."""

    try:
        config = _resolve_command_config(config_file, arguments, backend, server_url)
        document = _read_document(input_tex)
        converter = ConverterFactory.create_converter(config)
        _ensure_converter_available(config, converter)
        run_logger = RunLogger()
        try:
            outcome = asyncio.run(_run_conversion(config, converter, document, run_logger))
        finally:
            run_logger.close()

        echo_outcome_summary(outcome)
        if not outcome.success or outcome.output is None:
            error = outcome.error
            raise ConversionStageError(
                stage=outcome.tier_reached.value if outcome.tier_reached else "convert",
                detail=error.user_message if error else "Conversion failed.",
                hint=error.suggestions[0] if error and error.suggestions else None,
            )

        output_path = out if out is not None else input_tex.with_suffix(".html")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(outcome.output, encoding="utf-8")
    except Exception as exc:
        exit_with_command_error("convert", exc)

    typer.echo(f"Output: {output_path}")


@app.command("assess")
def assess_command(
    input_tex: Annotated[Path, typer.Argument(help="Path to the LaTeX source.")],
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with limits."),
    ] = None,
) -> None:
    """Print the complexity assessment of one LaTeX document."""

    try:
        config = _resolve_command_config(config_file)
        document = _read_document(input_tex)
        sanitisation = LatexSanitiser().sanitise(document)
        assessor = ComplexityAssessor(
            max_complexity_score=config.max_complexity_score,
            max_document_length=config.max_document_length,
        )
        result = assessor.assess(sanitisation.sanitised)
    except Exception as exc:
        exit_with_command_error("assess", exc)

    for warning in sanitisation.warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW, err=True)
    echo_complexity_summary(result)


@app.command("sections")
def sections_command(
    input_tex: Annotated[Path, typer.Argument(help="Path to the LaTeX source.")],
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with chunking settings."),
    ] = None,
) -> None:
    """List the sections a document is split into for chunked conversion."""

    try:
        config = _resolve_command_config(config_file)
        document = _read_document(input_tex)
        splitter = SectionSplitter(
            max_chunk_size=config.chunking.max_chunk_size,
            boundary_window=config.chunking.boundary_window,
        )
        sections = splitter.renumber_sections(
            splitter.split_into_chunks(LatexSanitiser().sanitise(document).sanitised)
        )
    except Exception as exc:
        exit_with_command_error("sections", exc)

    echo_section_list(sections)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
