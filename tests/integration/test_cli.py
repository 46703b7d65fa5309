"""CLI integration tests for convert, assess, and sections commands."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from pandocflow.cli import app


_TWO_SECTIONS = "\\section{Intro}\nHello $x$.\n\\section{Method}\nWe compute $y$.\n"
_MATRIX_BLOCK = "$$\\begin{pmatrix}a & b\\\\ c & d\\end{pmatrix}$$\n"


def _write(tmp_path: Path, name: str, text: str) -> Path:
    """Write one input file under `tmp_path`."""

    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_convert_writes_html_next_to_input(tmp_path: Path, install_converter) -> None:
    """Convert should write `<input>.html` and report the tier reached."""

    fake = install_converter()
    source = _write(tmp_path, "paper.tex", _TWO_SECTIONS)

    result = CliRunner().invoke(app, ["convert", str(source)])

    assert result.exit_code == 0, result.output
    assert "Tier reached: standard" in result.output
    assert "Attempts: 1" in result.output
    output_path = tmp_path / "paper.html"
    assert f"Output: {output_path}" in result.output
    assert output_path.read_text(encoding="utf-8") == "<h1>Intro</h1><h1>Method</h1>"
    assert len(fake.calls) == 1


def test_convert_applies_argument_override_and_out_path(
    tmp_path: Path, install_converter
) -> None:
    """`--args` replaces configured arguments and `--out` picks the destination."""

    fake = install_converter()
    source = _write(tmp_path, "paper.tex", "Plain text.")
    destination = tmp_path / "site" / "index.html"

    result = CliRunner().invoke(
        app,
        ["convert", str(source), "--out", str(destination), "--args", "--from latex --to html5"],
    )

    assert result.exit_code == 0, result.output
    assert destination.read_text(encoding="utf-8") == "<p>converted</p>"
    assert fake.calls[0][1] == ("--from", "latex", "--to", "html5")


def test_convert_reads_arguments_from_yaml_config(tmp_path: Path, install_converter) -> None:
    """YAML config values are used when no CLI flag overrides them."""

    fake = install_converter()
    source = _write(tmp_path, "paper.tex", "Plain text.")
    config_path = _write(tmp_path, "pandocflow.yaml", 'arguments: "--to html5 --mathjax"\n')

    result = CliRunner().invoke(app, ["convert", str(source), "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert fake.calls[0][1] == ("--to", "html5", "--mathjax")


def test_convert_reports_terminal_failure_with_user_message(
    tmp_path: Path, install_converter
) -> None:
    """Exhausted tiers exit with code 1 and never write an output file."""

    raw_failure = "Error at line 1: Undefined control sequence \\foo at 0x7ffe"
    install_converter(raw_failure)
    source = _write(tmp_path, "paper.tex", "Broken \\foo text.")

    result = CliRunner().invoke(app, ["convert", str(source)])

    assert result.exit_code == 1
    assert "Tier reached: terminal" in result.output
    assert "convert failed at stage `terminal`" in result.output
    assert raw_failure not in result.output
    assert not (tmp_path / "paper.html").exists()


def test_convert_reports_missing_config_file(tmp_path: Path) -> None:
    """Convert should fail with stage-aware diagnostics when `--config` is missing."""

    source = _write(tmp_path, "paper.tex", "Plain text.")

    result = CliRunner().invoke(
        app, ["convert", str(source), "--config", "missing-pandocflow.yaml"]
    )

    assert result.exit_code == 1
    assert "convert failed at stage `config`" in result.output
    assert "Config file not found: `missing-pandocflow.yaml`." in result.output


def test_convert_rejects_unknown_backend(tmp_path: Path) -> None:
    """Invalid backend overrides are config-stage failures."""

    source = _write(tmp_path, "paper.tex", "Plain text.")

    result = CliRunner().invoke(app, ["convert", str(source), "--backend", "wasm"])

    assert result.exit_code == 1
    assert "convert failed at stage `config`" in result.output
    assert "Hint: Use `--backend cli` or `--backend server`." in result.output


def test_convert_reports_missing_input(tmp_path: Path, install_converter) -> None:
    """A missing input file is an input-stage failure."""

    install_converter()

    result = CliRunner().invoke(app, ["convert", str(tmp_path / "absent.tex")])

    assert result.exit_code == 1
    assert "convert failed at stage `input`" in result.output


def test_assess_prints_complexity_summary(tmp_path: Path) -> None:
    """Assess should print level, score, chunking decision, and counts."""

    document = "".join(f"\\section{{S{index}}}\n" + _MATRIX_BLOCK * 3 for index in range(4))
    source = _write(tmp_path, "matrices.tex", document)

    result = CliRunner().invoke(app, ["assess", str(source)])

    assert result.exit_code == 0, result.output
    assert "Complexity level: extreme" in result.output
    assert "Requires chunking: yes" in result.output
    assert "  matrices: 12" in result.output
    assert "Recommendation: Chunked processing recommended for this document" in result.output


def test_sections_lists_split_sections(tmp_path: Path) -> None:
    """Sections should print one numbered row per split section."""

    source = _write(tmp_path, "paper.tex", _TWO_SECTIONS)

    result = CliRunner().invoke(app, ["sections", str(source)])

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert lines[0].startswith("1. [section] Intro (0-")
    assert lines[1].startswith("2. [section] Method (")
    assert len(lines) == 2
