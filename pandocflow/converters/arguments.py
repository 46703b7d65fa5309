"""Converter argument parsing and simplification.

Responsibilities:
- Parse user-supplied argument strings into ordered directive tuples.
- Reduce argument lists to the essential format and math directives.
- Drop directives that must not reach per-section conversions.
"""

from __future__ import annotations

from collections.abc import Sequence
import shlex

from ..config import SIMPLIFIED_ARGUMENTS


_VALUE_OPTIONS = frozenset({"--from", "-f", "--read", "-r", "--to", "-t", "--write", "-w"})
_FORMAT_OPTIONS = {
    "--from": "from",
    "-f": "from",
    "--read": "from",
    "-r": "from",
    "--to": "to",
    "-t": "to",
    "--write": "to",
    "-w": "to",
}
_MATH_METHODS = frozenset({"--mathjax", "--katex", "--mathml", "--webtex", "--gladtex"})
_NUMBER_SECTIONS = frozenset({"--number-sections", "-N"})


def parse_arguments(text: str | Sequence[str] | None) -> tuple[str, ...]:
    """Parse an argument string (or pass through a sequence) into a tuple.

    Raises:
        ValueError: If the argument string has unbalanced quotes.
    """

    if text is None:
        return ()
    if isinstance(text, str):
        return tuple(shlex.split(text))
    return tuple(str(item) for item in text)


def iter_options(arguments: Sequence[str]) -> list[tuple[str, str | None]]:
    """Group arguments into `(option, value)` pairs.

    Supports `--opt=value`, `--opt value` for value-taking format options,
    and bare flags.
    """

    pairs: list[tuple[str, str | None]] = []
    index = 0
    while index < len(arguments):
        token = arguments[index]
        if token.startswith("--") and "=" in token:
            option, value = token.split("=", 1)
            pairs.append((option, value))
        elif token in _VALUE_OPTIONS and index + 1 < len(arguments):
            pairs.append((token, arguments[index + 1]))
            index += 1
        else:
            pairs.append((token, None))
        index += 1
    return pairs


def strip_number_sections(arguments: Sequence[str]) -> tuple[str, ...]:
    """Remove section-numbering directives from an argument list."""

    return tuple(argument for argument in arguments if argument not in _NUMBER_SECTIONS)


class ArgumentSimplifier:
    """Reduce an argument list to input format, output format, and math method."""

    def __init__(self, fallback_arguments: str = SIMPLIFIED_ARGUMENTS) -> None:
        self.fallback_arguments = parse_arguments(fallback_arguments)

    def simplify(self, arguments: Sequence[str]) -> tuple[str, ...]:
        """Return the reduced argument list for the simplified tier."""

        formats: dict[str, str] = {}
        math_method: str | None = None
        for option, value in iter_options(self.fallback_arguments):
            if option in _FORMAT_OPTIONS and value is not None:
                formats[_FORMAT_OPTIONS[option]] = value
            elif option in _MATH_METHODS:
                math_method = option

        for option, value in iter_options(arguments):
            if option in _FORMAT_OPTIONS and value is not None:
                formats[_FORMAT_OPTIONS[option]] = value
            elif option in _MATH_METHODS:
                math_method = option

        simplified: list[str] = []
        if "from" in formats:
            simplified.extend(["--from", formats["from"]])
        if "to" in formats:
            simplified.extend(["--to", formats["to"]])
        if math_method is not None:
            simplified.append(math_method)
        return tuple(simplified)
