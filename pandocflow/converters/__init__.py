"""Converter backends and argument helpers.

Every backend is a synchronous callable `(document, arguments) -> str` that
raises `ConverterError` on failure.
"""

from .arguments import ArgumentSimplifier, parse_arguments, strip_number_sections
from .pandoc_cli import PandocCliConverter
from .pandoc_server import PandocServerConverter

__all__ = [
    "ArgumentSimplifier",
    "PandocCliConverter",
    "PandocServerConverter",
    "parse_arguments",
    "strip_number_sections",
]
