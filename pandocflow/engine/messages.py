"""User-facing error messages for failed conversions.

Responsibilities:
- Translate raw converter diagnostics into user-facing messages and suggestions.
- Classify error type, severity, and recoverability from message patterns.
- Produce per-section placeholders for failed chunked conversions.
"""

from __future__ import annotations

from dataclasses import dataclass
import html

from loguru import logger

from ..models.datatypes import OutcomeError


@dataclass(frozen=True, slots=True)
class _MessageRule:
    """One ordered message pattern with its user-facing translation."""

    error_type: str
    patterns: tuple[str, ...]
    user_message: str
    severity: str
    recoverable: bool
    suggestions: tuple[str, ...] = ()


_GENERIC_MESSAGE = "Conversion failed. Please check LaTeX syntax and try again."
_GENERIC_SUGGESTIONS = (
    "Check LaTeX syntax for errors",
    "Simplify complex mathematical expressions",
    "Try processing a smaller portion of the document",
)

_RULES: tuple[_MessageRule, ...] = (
    _MessageRule(
        "memory",
        ("out of memory", "stack space overflow", "memoryerror"),
        "Document too complex for processing. Try reducing mathematical content "
        "or splitting into smaller sections.",
        "high",
        True,
        (
            "Split your document into smaller sections",
            "Reduce the number of mathematical expressions per section",
            "Simplify complex mathematical notation",
            "Remove unnecessary LaTeX packages",
        ),
    ),
    _MessageRule(
        "engine",
        ("wasm", "webassembly", "segmentation fault"),
        "Conversion engine error. Please check LaTeX syntax and try again.",
        "critical",
        True,
        (
            "Restart the conversion service",
            "Check LaTeX syntax for errors",
            "Try using simpler mathematical notation",
        ),
    ),
    _MessageRule(
        "timeout",
        ("timeout", "timed out"),
        "Document processing timed out. Document may be too large or complex.",
        "medium",
        True,
        (
            "Reduce document length",
            "Simplify mathematical expressions",
            "Split complex documents into multiple parts",
            "Remove large tables or figures",
        ),
    ),
    _MessageRule(
        "syntax",
        ("syntax", "parse", "parsing"),
        "LaTeX syntax error detected. Please check mathematical expressions and commands.",
        "low",
        False,
        (
            "Check for unmatched braces { }",
            "Verify mathematical expression delimiters ($ $, $$ $$)",
            "Ensure all LaTeX commands are properly formatted",
            "Remove any unsupported LaTeX packages",
        ),
    ),
    _MessageRule(
        "unknown_command",
        ("unknown command", "undefined control sequence"),
        "Unknown LaTeX command found. Please check mathematical expressions and "
        "package requirements.",
        "low",
        False,
        (
            "Check spelling of LaTeX commands",
            "Ensure you're using standard LaTeX commands",
            "Remove custom macros or packages",
        ),
    ),
    _MessageRule(
        "network",
        ("network", "connection", "fetch"),
        "Network error occurred. Please check the conversion service connection and try again.",
        "medium",
        True,
    ),
    _MessageRule(
        "resource",
        ("not found", "no such file", "resource"),
        "Required resource not found. Please ensure all referenced files are available.",
        "medium",
        True,
    ),
    _MessageRule(
        "permission",
        ("permission", "security", "blocked"),
        "Permission error. Please check access settings for the converter and try again.",
        "high",
        False,
    ),
    _MessageRule(
        "math",
        ("math", "equation", "formula"),
        "Mathematical expression error. Please check equation syntax and mathematical notation.",
        "medium",
        True,
    ),
    _MessageRule(
        "unbound",
        ("no converter",),
        "The converter is not available. Please try again once the conversion engine is ready.",
        "critical",
        False,
        ("Wait for the conversion engine to finish loading",),
    ),
)


def _match_rule(raw_message: str) -> _MessageRule | None:
    """Return the first rule whose pattern occurs in the raw message."""

    lowered = raw_message.lower()
    for rule in _RULES:
        if any(pattern in lowered for pattern in rule.patterns):
            return rule
    return None


def user_message_for(raw_message: str) -> str:
    """Return the user-facing message for a raw diagnostic message."""

    rule = _match_rule(raw_message)
    return rule.user_message if rule else _GENERIC_MESSAGE


def classify_error_type(raw_message: str) -> str:
    """Return the error-type label for a raw diagnostic message."""

    rule = _match_rule(raw_message)
    return rule.error_type if rule else "general"


def build_error_report(raw_message: str) -> OutcomeError:
    """Translate a raw diagnostic into a complete user-facing error report."""

    rule = _match_rule(raw_message)
    if rule is None:
        report = OutcomeError(
            raw_message=raw_message,
            user_message=_GENERIC_MESSAGE,
            suggestions=_GENERIC_SUGGESTIONS,
        )
    else:
        report = OutcomeError(
            raw_message=raw_message,
            user_message=rule.user_message,
            error_type=rule.error_type,
            severity=rule.severity,
            recoverable=rule.recoverable,
            suggestions=rule.suggestions or _GENERIC_SUGGESTIONS,
        )
    logger.debug(
        "Created error report for {} error (severity: {})", report.error_type, report.severity
    )
    return report


def section_error_message(raw_message: str, section_number: int) -> str:
    """Return a user-facing message for one failed section."""

    lowered = raw_message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return f"Section {section_number} processing timed out. This section may be too complex."
    if "memory" in lowered or "stack space" in lowered:
        return (
            f"Section {section_number} requires too much memory. "
            "Try simplifying mathematical expressions."
        )
    if "syntax" in lowered or "parse" in lowered:
        return (
            f"LaTeX syntax error in section {section_number}. "
            "Please check mathematical expressions."
        )
    return f"Processing error in section {section_number}. Please check content and try again."


def section_placeholder(title: str, user_message: str) -> str:
    """Return the HTML placeholder that stands in for a failed section."""

    return (
        '<div class="error-message"><strong>Error processing section '
        f'"{html.escape(title)}":</strong> {html.escape(user_message)}</div>'
    )
