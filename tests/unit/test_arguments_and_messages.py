"""Unit tests for converter argument handling and user-facing error messages."""

from __future__ import annotations

import pytest

from pandocflow.converters.arguments import (
    ArgumentSimplifier,
    iter_options,
    parse_arguments,
    strip_number_sections,
)
from pandocflow.engine.messages import (
    build_error_report,
    classify_error_type,
    section_error_message,
    section_placeholder,
    user_message_for,
)


def test_parse_arguments_splits_shell_style_text() -> None:
    """Quoted values stay together; sequences pass through as tuples."""

    assert parse_arguments('--from latex --metadata "title=My Doc"') == (
        "--from",
        "latex",
        "--metadata",
        "title=My Doc",
    )
    assert parse_arguments(["--to", "html5"]) == ("--to", "html5")
    assert parse_arguments(None) == ()


def test_parse_arguments_rejects_unbalanced_quotes() -> None:
    """Broken quoting is reported as a value error."""

    with pytest.raises(ValueError):
        parse_arguments('--metadata "title')


def test_iter_options_groups_values() -> None:
    """Value options consume the next token; `--opt=value` is split."""

    assert iter_options(("--from", "latex", "--to=html5", "--mathjax")) == [
        ("--from", "latex"),
        ("--to", "html5"),
        ("--mathjax", None),
    ]


def test_simplifier_keeps_formats_and_math_method_only() -> None:
    """Simplification drops everything except formats and the math method."""

    simplified = ArgumentSimplifier().simplify(
        ("--from", "latex+raw_tex", "--to", "html5", "--katex", "--number-sections", "--toc")
    )

    assert simplified == ("--from", "latex+raw_tex", "--to", "html5", "--katex")


def test_simplifier_falls_back_to_default_directives() -> None:
    """Missing formats are filled from the fallback arguments."""

    assert ArgumentSimplifier().simplify(("--standalone",)) == (
        "--from",
        "latex",
        "--to",
        "html5",
        "--mathjax",
    )


def test_strip_number_sections_removes_long_and_short_flags() -> None:
    """Per-section arguments never carry section numbering."""

    assert strip_number_sections(("--number-sections", "--to", "html5", "-N")) == (
        "--to",
        "html5",
    )


@pytest.mark.parametrize(
    ("raw_message", "error_type"),
    [
        ("Out of memory while parsing", "memory"),
        ("Conversion timeout after 5.00s (standard) - document may be too complex", "timeout"),
        ("Error at line 3: unexpected parse failure", "syntax"),
        ("Undefined control sequence \\foo", "unknown_command"),
        ("Permission denied running `pandoc`.", "permission"),
        ("No converter function is bound to the engine.", "unbound"),
        ("something odd happened", "general"),
    ],
)
def test_classify_error_type(raw_message: str, error_type: str) -> None:
    """Raw diagnostics map to stable error-type labels."""

    assert classify_error_type(raw_message) == error_type


def test_error_report_never_exposes_raw_message() -> None:
    """User messages differ from raw diagnostics and carry suggestions."""

    raw = "pandoc: Error at (line 12, column 4): unexpected end of input; parse error"

    report = build_error_report(raw)

    assert report.raw_message == raw
    assert report.user_message
    assert report.user_message != raw
    assert raw not in report.user_message
    assert report.error_type == "syntax"
    assert report.recoverable is False
    assert report.suggestions


def test_generic_message_for_unknown_failures() -> None:
    """Unclassified failures still receive a user-facing message."""

    assert user_message_for("weird") == (
        "Conversion failed. Please check LaTeX syntax and try again."
    )
    assert build_error_report("weird").severity == "medium"


def test_section_messages_and_placeholder() -> None:
    """Failed sections render an escaped placeholder with a section-specific message."""

    message = section_error_message("Conversion timeout after 5.00s (section 2)", 2)
    placeholder = section_placeholder("<A & B>", message)

    assert message.startswith("Section 2 processing timed out")
    assert placeholder.startswith('<div class="error-message">')
    assert "&lt;A &amp; B&gt;" in placeholder
    assert section_error_message("boom", 4) == (
        "Processing error in section 4. Please check content and try again."
    )
