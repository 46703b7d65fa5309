"""Unit tests for section splitting, document wrapping, and heading numbering."""

from __future__ import annotations

from pandocflow.text.chunking import (
    SectionSplitter,
    balance_math_environments,
    number_headings,
    wrap_in_document,
)


_DOCUMENT = (
    "\\documentclass{article}\n"
    "\\title{Notes}\n"
    "\\begin{document}\n"
    "\\maketitle\n"
    "Intro text.\n"
    "\\section{First}\n"
    "Alpha $x$.\n"
    "\\section{Second}\n"
    "Beta $y$.\n"
    "\\end{document}\n"
)


def test_split_uses_section_boundaries_with_introduction() -> None:
    """Section headings define sections; leading body text becomes an introduction."""

    sections = SectionSplitter().split_into_chunks(_DOCUMENT)

    assert [section.kind for section in sections] == ["preamble", "section", "section"]
    assert [section.title for section in sections] == ["Introduction", "First", "Second"]
    for section in sections:
        start, end = section.source_range
        assert _DOCUMENT[start:end] == section.raw_text


def test_only_first_section_keeps_title_metadata() -> None:
    """Every section is standalone; title metadata stays with the first section."""

    sections = SectionSplitter().split_into_chunks(_DOCUMENT)

    assert "\\title{Notes}" in sections[0].content
    assert "\\title{Notes}" not in sections[2].content
    assert "\\maketitle" not in sections[2].content
    for section in sections:
        assert section.content.startswith("\\documentclass{article}")
        assert "\\begin{document}" in section.content
        assert section.content.rstrip().endswith("\\end{document}")
        assert "amsmath" in section.content


def test_split_falls_back_to_subsections() -> None:
    """Subsections are used when a document has no top-level sections."""

    sections = SectionSplitter().split_into_chunks("\\subsection{A}\nx\n\\subsection{B}\ny")

    assert [section.kind for section in sections] == ["subsection", "subsection"]
    assert [section.title for section in sections] == ["A", "B"]


def test_size_based_split_prefers_paragraph_breaks() -> None:
    """Headless documents are split into fragments that cover the whole body."""

    body = "".join(f"Paragraph {index} with some words.\n\n" for index in range(12))
    sections = SectionSplitter(max_chunk_size=100, boundary_window=20).split_into_chunks(body)

    assert len(sections) > 1
    assert {section.kind for section in sections} == {"fragment"}
    assert "".join(section.raw_text for section in sections) == body
    assert all(section.raw_text.endswith("\n\n") for section in sections)


def test_short_headless_document_is_one_whole_section() -> None:
    """A single fragment is reported as the complete document."""

    sections = SectionSplitter().split_into_chunks("Just text")

    assert len(sections) == 1
    assert sections[0].kind == "whole"
    assert sections[0].title == "Complete Document"


def test_empty_document_has_no_sections() -> None:
    """Blank input yields no sections."""

    assert SectionSplitter().split_into_chunks("  \n ") == []


def test_long_titles_are_truncated() -> None:
    """Section titles are capped for display."""

    sections = SectionSplitter().split_into_chunks("\\section{" + "x" * 80 + "}\nBody")

    assert len(sections[0].title) == 50


def test_renumber_sections_orders_by_source_position() -> None:
    """Renumbering restores source order and assigns 1-based numbers."""

    splitter = SectionSplitter()
    sections = splitter.split_into_chunks(_DOCUMENT)

    renumbered = splitter.renumber_sections(list(reversed(sections)))

    assert [section.title for section in renumbered] == ["Introduction", "First", "Second"]
    assert [section.number for section in renumbered] == [1, 2, 3]
    assert [section.index for section in renumbered] == [0, 1, 2]


def test_balance_removes_orphan_math_end_tags() -> None:
    """Closing math tags without an opener are dropped."""

    balanced = balance_math_environments("\\end{align}\nText")

    assert "\\end{align}" not in balanced
    assert "Text" in balanced


def test_balance_removes_orphan_math_begin_up_to_next_section() -> None:
    """Unclosed math is dropped up to the next sectioning command."""

    balanced = balance_math_environments("Intro\n\\begin{equation}\nx=1\n\\section{Next}\nBody")

    assert balanced == "Intro\n\\section{Next}\nBody"


def test_balance_keeps_non_math_environments() -> None:
    """Only math environments are balanced."""

    assert balance_math_environments("\\end{itemize}\nText") == "\\end{itemize}\nText"


def test_wrap_in_document_adds_missing_preamble_parts() -> None:
    """A bare preamble gains a document class and math packages."""

    wrapped = wrap_in_document("", "Body", is_first=True)

    assert wrapped.startswith("\\documentclass{article}")
    assert "\\usepackage{amsmath,amssymb,amsthm}" in wrapped
    assert wrapped.endswith("\\begin{document}\nBody\n\\end{document}")


def test_number_headings_is_sequential_and_skips_title() -> None:
    """Headings are renumbered hierarchically across merged fragments."""

    html = '<h1 class="title">T</h1><h1>A</h1><h2>B</h2><h1>1 C</h1>'

    assert number_headings(html) == (
        '<h1 class="title">T</h1><h1>1 A</h1><h2>1.1 B</h2><h1>2 C</h1>'
    )


def test_number_headings_numbers_headings_whose_ids_mention_title() -> None:
    """Heading ids derived from text never exempt a heading from numbering."""

    html = (
        '<h1 id="title-page">Title Page</h1>\n'
        '<h1 id="results">Results</h1>\n'
        '<h2 id="subtitles">Subtitles</h2>'
    )

    assert number_headings(html) == (
        '<h1 id="title-page">1 Title Page</h1>\n'
        '<h1 id="results">2 Results</h1>\n'
        '<h2 id="subtitles">2.1 Subtitles</h2>'
    )


def test_number_headings_skips_title_class_only_on_leading_heading() -> None:
    """A later title-class heading is numbered like any other section."""

    html = '<h1>Intro</h1><h1 class="title">Again</h1>'

    assert number_headings(html) == '<h1>1 Intro</h1><h1 class="title">2 Again</h1>'
