"""Unit tests for shared configuration value parsing helpers."""

import pytest

from pandocflow.parsing import (
    normalize_optional_string,
    parse_non_negative_float,
    parse_permissive_boolean,
    parse_positive_int,
)


def test_normalize_optional_string_handles_blank_values() -> None:
    """Normalization should return `None` for `None` and blank textual values."""

    assert normalize_optional_string(None) is None
    assert normalize_optional_string("") is None
    assert normalize_optional_string("   ") is None


def test_normalize_optional_string_strips_non_blank_values() -> None:
    """Normalization should return stripped content for non-empty values."""

    assert normalize_optional_string("  --to html5  ") == "--to html5"
    assert normalize_optional_string(42) == "42"


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("TrUe", True),
        ("  ON ", True),
        ("YeS", True),
        ("FALSE", False),
        (" oFf ", False),
        ("nO", False),
        (True, True),
    ],
)
def test_parse_permissive_boolean_accepts_mixed_case_tokens(
    token: object, expected: bool
) -> None:
    """Permissive parsing should accept valid tokens case-insensitively."""

    assert parse_permissive_boolean(token) is expected


@pytest.mark.parametrize("value", ["", "   ", "maybe", "2", object()])
def test_parse_permissive_boolean_returns_none_for_invalid_tokens(value: object) -> None:
    """Permissive parsing should return `None` for invalid or blank inputs."""

    assert parse_permissive_boolean(value) is None


def test_parse_non_negative_float_accepts_numbers_and_text() -> None:
    """Numeric and textual inputs parse to floats, including zero."""

    assert parse_non_negative_float(0, "status_ttl_seconds") == 0.0
    assert parse_non_negative_float(" 0.8 ", "debounce_seconds") == 0.8


@pytest.mark.parametrize("value", [True, "-1", "fast", "  ", -0.5])
def test_parse_non_negative_float_rejects_invalid_values(value: object) -> None:
    """Booleans, non-numeric text, and negatives are rejected by field name."""

    with pytest.raises(ValueError, match="`debounce_seconds` must be a non-negative number"):
        parse_non_negative_float(value, "debounce_seconds")


@pytest.mark.parametrize("value", [False, 0, "-3", "3.5", None])
def test_parse_positive_int_rejects_invalid_values(value: object) -> None:
    """Only strictly positive integers are accepted."""

    with pytest.raises(ValueError, match="`max_chunk_size` must be a positive integer"):
        parse_positive_int(value, "max_chunk_size")


def test_parse_positive_int_accepts_text() -> None:
    """Textual integers are parsed after trimming."""

    assert parse_positive_int(" 3000 ", "max_chunk_size") == 3000
