"""Input sanitisation for LaTeX sources before conversion.

Responsibilities:
- Remove document-level commands that break web math rendering.
- Report each removal category with counts and a few examples.
- Surface non-fatal syntax warnings (unbalanced braces or math delimiters).
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from loguru import logger

from ..models.datatypes import RemovalReport, SanitisationResult


@dataclass(frozen=True, slots=True)
class RemovalRule:
    """One removal pattern with its human-readable category description."""

    pattern: re.Pattern[str]
    description: str


DEFAULT_REMOVAL_RULES: tuple[RemovalRule, ...] = (
    RemovalRule(re.compile(r"\\index\{[^}]*\}"), "index commands (document indexing)"),
    RemovalRule(re.compile(r"\\qedhere\b"), "qedhere commands (QED symbol positioning)"),
)

_MAX_EXAMPLES = 3
_EXCESS_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")
_TRAILING_SPACES = re.compile(r"[ \t]+$", re.MULTILINE)


def syntax_warnings(document: str) -> list[str]:
    """Return non-fatal structural warnings for a LaTeX document."""

    warnings: list[str] = []
    open_braces = len(re.findall(r"(?<!\\)\{", document))
    close_braces = len(re.findall(r"(?<!\\)\}", document))
    if open_braces != close_braces:
        warnings.append(f"Unmatched braces: {open_braces} opening, {close_braces} closing")

    dollar_signs = len(re.findall(r"(?<!\\)\$", document))
    if dollar_signs % 2 != 0:
        warnings.append("Unmatched dollar sign math delimiters")

    bracket_open = document.count("\\[")
    bracket_close = document.count("\\]")
    if bracket_open != bracket_close:
        warnings.append(f"Unmatched bracket math: {bracket_open} \\[, {bracket_close} \\]")
    return warnings


class LatexSanitiser:
    """Strip problematic LaTeX commands and collect removal diagnostics."""

    def __init__(self, rules: tuple[RemovalRule, ...] = DEFAULT_REMOVAL_RULES) -> None:
        self.rules = rules

    def sanitise(self, document: str) -> SanitisationResult:
        """Return sanitised text with removal reports and non-fatal warnings."""

        if not document or not document.strip():
            return SanitisationResult(
                sanitised="",
                warnings=("No valid input provided for sanitisation",),
            )

        sanitised = document
        removed: list[RemovalReport] = []
        for rule in self.rules:
            matches = rule.pattern.findall(sanitised)
            if not matches:
                continue
            removed.append(
                RemovalReport(
                    count=len(matches),
                    description=rule.description,
                    examples=tuple(matches[:_MAX_EXAMPLES]),
                )
            )
            sanitised = rule.pattern.sub("", sanitised)

        sanitised = _EXCESS_BLANK_LINES.sub("\n\n", sanitised)
        sanitised = _TRAILING_SPACES.sub("", sanitised).strip()

        warnings = syntax_warnings(sanitised)
        total_removed = sum(report.count for report in removed)
        if total_removed:
            warnings.insert(
                0,
                f"Removed {total_removed} document-level commands to prevent math rendering errors",
            )
            logger.info(
                "Input sanitisation complete: removed {} problematic elements", total_removed
            )
        else:
            logger.debug("Input sanitisation complete: no changes needed")

        return SanitisationResult(
            sanitised=sanitised,
            removed=tuple(removed),
            warnings=tuple(warnings),
        )
