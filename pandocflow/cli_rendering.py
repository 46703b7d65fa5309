"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
conversion outcome summaries, complexity summaries, and section listings.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import ConversionStageError
from .models.datatypes import ComplexityResult, ConversionOutcome, DocumentSection
from .text.complexity import memory_impact, recommendations


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, ConversionStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_outcome_summary(outcome: ConversionOutcome) -> None:
    """Print the tier reached and chunk statistics of one conversion."""

    tier = outcome.tier_reached.value if outcome.tier_reached is not None else "none"
    typer.echo(f"Tier reached: {tier}")
    typer.echo(f"Attempts: {outcome.attempts}")
    if outcome.chunks_processed:
        typer.echo(f"Sections converted: {outcome.chunks_succeeded}/{outcome.chunks_processed}")
    if outcome.partial:
        typer.secho(
            "Some sections could not be converted and were replaced by placeholders.",
            fg=typer.colors.YELLOW,
        )


def echo_complexity_summary(result: ComplexityResult) -> None:
    """Print complexity level, score, and processing recommendations."""

    typer.echo(f"Complexity level: {result.level.value}")
    typer.echo(f"Complexity score: {result.score:.1f}")
    typer.echo(f"Requires chunking: {'yes' if result.requires_chunking else 'no'}")
    typer.echo(f"Estimated time (s): {result.estimated_seconds:.1f}")
    typer.echo(f"Memory impact: {memory_impact(result)}")
    for signal, count in sorted(result.raw_counts.items()):
        typer.echo(f"  {signal}: {count}")
    for note in recommendations(result):
        typer.echo(f"Recommendation: {note}")


def echo_section_list(sections: list[DocumentSection]) -> None:
    """Print one deterministic row per split section."""

    if not sections:
        typer.echo("No sections found.")
        return
    for section in sections:
        start, end = section.source_range
        typer.echo(f"{section.number}. [{section.kind}] {section.title} ({start}-{end})")
