"""Text analysis and segmentation components.

This package provides sanitisation, complexity assessment, and section
splitting building blocks used before a document reaches the converter.
"""

from .chunking import SectionSplitter, number_headings, wrap_in_document
from .complexity import ComplexityAssessor, level_for_score
from .sanitiser import LatexSanitiser

__all__ = [
    "ComplexityAssessor",
    "LatexSanitiser",
    "SectionSplitter",
    "level_for_score",
    "number_headings",
    "wrap_in_document",
]
