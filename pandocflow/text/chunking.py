"""Document-to-section segmentation for chunked conversion.

Responsibilities:
- Split a LaTeX document into ordered, independently convertible sections.
- Wrap every section into a standalone document sharing the source preamble.
- Remove orphaned math-environment delimiters created by the split.
- Apply sequential heading numbering to reassembled HTML output.
"""

from __future__ import annotations

from dataclasses import replace
import re

from loguru import logger

from ..models.datatypes import DocumentSection


DEFAULT_PREAMBLE = "\\documentclass{article}\n\\usepackage{amsmath,amssymb,amsthm}\n"
MATH_ENVIRONMENTS = frozenset(
    {
        "equation",
        "equation*",
        "align",
        "align*",
        "alignat",
        "alignat*",
        "gather",
        "gather*",
        "multline",
        "multline*",
        "split",
        "flalign",
        "flalign*",
        "eqnarray",
        "eqnarray*",
        "math",
        "displaymath",
    }
)

_DOCUMENT_PATTERN = re.compile(r"([\s\S]*?)\\begin\{document\}([\s\S]*?)\\end\{document\}")
_HEADING_PATTERNS: tuple[tuple[str, re.Pattern[str], re.Pattern[str]], ...] = (
    ("section", re.compile(r"\\section\*?\{"), re.compile(r"\\section\*?\{([^}]+)\}")),
    ("subsection", re.compile(r"\\subsection\*?\{"), re.compile(r"\\subsection\*?\{([^}]+)\}")),
)
_TITLE_METADATA = re.compile(r"\\(?:title|author|date)\{[^}]*\}|\\maketitle")
_DOCUMENT_STRUCTURE = re.compile(
    r"\\documentclass(?:\[[^\]]*\])?\{[^}]+\}|\\usepackage(?:\[[^\]]*\])?\{[^}]*\}"
    r"|\\begin\{document\}|\\end\{document\}"
)
_ENVIRONMENT_NAME = re.compile(r"\\(?:begin|end)\{([^}]+)\}")
_COMMENT = re.compile(r"(?<!\\)%[^\n]*")
_NEXT_STRUCTURE = re.compile(r"\\section\*?\{|\\subsection\*?\{")
_MAX_TITLE_LENGTH = 50


def wrap_in_document(preamble: str, content: str, *, is_first: bool) -> str:
    """Wrap one section body into a standalone convertible LaTeX document."""

    clean_preamble = re.sub(r"\\begin\{document\}[\s\S]*$", "", preamble).strip()
    clean_content = _DOCUMENT_STRUCTURE.sub("", content).strip()
    if not is_first:
        clean_preamble = _TITLE_METADATA.sub("", clean_preamble)
        clean_content = _TITLE_METADATA.sub("", clean_content)
    if "\\documentclass" not in clean_preamble:
        clean_preamble = "\\documentclass{article}\n" + clean_preamble
    if "amsmath" not in clean_preamble:
        clean_preamble += "\n\\usepackage{amsmath,amssymb,amsthm}"

    clean_content = balance_math_environments(clean_content)
    return f"{clean_preamble}\n\\begin{{document}}\n{clean_content}\n\\end{{document}}"


def balance_math_environments(content: str) -> str:
    """Remove orphaned math-environment delimiters left behind by a split.

    Orphaned `\\end{env}` tags are dropped from the front of the content; orphaned
    `\\begin{env}` tags are dropped together with the math that follows them up
    to the next sectioning command. Non-math environments are left untouched.
    """

    uncommented = _COMMENT.sub("", content)
    names = {match.group(1) for match in _ENVIRONMENT_NAME.finditer(uncommented)}
    balanced = content
    total_fixes = 0
    for name in sorted(names & MATH_ENVIRONMENTS):
        escaped = re.escape(name)
        begin_pattern = re.compile(rf"\\begin\{{{escaped}\}}")
        end_pattern = re.compile(rf"\n?\\end\{{{escaped}\}}")
        begins = len(begin_pattern.findall(uncommented))
        ends = len(end_pattern.findall(uncommented))

        if ends > begins:
            balanced = end_pattern.sub("", balanced, count=ends - begins)
            total_fixes += ends - begins

        if begins > ends:
            positions = [match.start() for match in begin_pattern.finditer(balanced)]
            for start in reversed(positions[-(begins - ends):]):
                tail = balanced[start:]
                next_structure = _NEXT_STRUCTURE.search(tail, 1)
                keep_from = start + next_structure.start() if next_structure else len(balanced)
                balanced = balanced[:start] + balanced[keep_from:]
            total_fixes += begins - ends

    if total_fixes:
        logger.debug("Environment balancing removed {} orphan math delimiters", total_fixes)
    return balanced


class SectionSplitter:
    """Split LaTeX documents along sectioning boundaries with a size fallback."""

    def __init__(self, max_chunk_size: int = 3000, boundary_window: int = 200) -> None:
        if max_chunk_size <= 0:
            raise ValueError("`max_chunk_size` must be a positive integer.")
        self.max_chunk_size = max_chunk_size
        self.boundary_window = boundary_window

    def split_into_chunks(self, document: str) -> list[DocumentSection]:
        """Split a document into ordered sections.

        Strategy order is `\\section` boundaries, then `\\subsection` boundaries,
        then size-based splitting at paragraph breaks. Source ranges are offsets
        into the original `document`.

        Returns:
            Ordered sections; empty when the document has no content.
        """

        match = _DOCUMENT_PATTERN.search(document)
        if match:
            preamble, body, body_offset = match.group(1), match.group(2), match.start(2)
        else:
            preamble, body, body_offset = DEFAULT_PREAMBLE, document, 0

        if not body.strip():
            return []

        for kind, boundary, title_pattern in _HEADING_PATTERNS:
            starts = [found.start() for found in boundary.finditer(body)]
            if starts:
                sections = self._heading_sections(
                    body, body_offset, preamble, starts, kind, title_pattern
                )
                break
        else:
            sections = self._size_sections(body, body_offset, preamble)

        logger.debug(
            "Document splitting strategy: {}, {} sections created",
            sections[0].kind if sections else "none",
            len(sections),
        )
        return sections

    def renumber_sections(self, sections: list[DocumentSection]) -> list[DocumentSection]:
        """Return sections with sequential 1-based numbers in source order."""

        ordered = sorted(sections, key=lambda section: section.source_range[0])
        return [
            replace(section, index=position, number=position + 1)
            for position, section in enumerate(ordered)
        ]

    def _heading_sections(
        self,
        body: str,
        body_offset: int,
        preamble: str,
        starts: list[int],
        kind: str,
        title_pattern: re.Pattern[str],
    ) -> list[DocumentSection]:
        """Build sections from heading start offsets."""

        sections: list[DocumentSection] = []
        intro = body[: starts[0]]
        if intro.strip():
            sections.append(
                self._section(
                    index=0,
                    title="Introduction",
                    kind="preamble",
                    start=body_offset,
                    raw_text=intro,
                    preamble=preamble,
                )
            )

        bounds = starts + [len(body)]
        for position, start in enumerate(starts, start=1):
            raw_text = body[start : bounds[position]]
            title_match = title_pattern.search(raw_text)
            label = "Section" if kind == "section" else "Subsection"
            title = title_match.group(1) if title_match else f"{label} {position}"
            sections.append(
                self._section(
                    index=len(sections),
                    title=title[:_MAX_TITLE_LENGTH],
                    kind=kind,
                    start=body_offset + start,
                    raw_text=raw_text,
                    preamble=preamble,
                )
            )
        return sections

    def _size_sections(
        self, body: str, body_offset: int, preamble: str
    ) -> list[DocumentSection]:
        """Build fragments of roughly `max_chunk_size` characters at paragraph breaks."""

        sections: list[DocumentSection] = []
        current = 0
        body_length = len(body)
        while current < body_length:
            end = self._resolve_boundary(body, current)
            sections.append(
                self._section(
                    index=len(sections),
                    title=f"Fragment {len(sections) + 1}",
                    kind="fragment",
                    start=body_offset + current,
                    raw_text=body[current:end],
                    preamble=preamble,
                )
            )
            current = end

        if len(sections) == 1:
            sections[0] = replace(sections[0], kind="whole", title="Complete Document")
        return sections

    def _resolve_boundary(self, body: str, start: int) -> int:
        """Resolve one fragment end, preferring a nearby paragraph break."""

        target_end = min(start + self.max_chunk_size, len(body))
        if target_end >= len(body):
            return len(body)

        window_start = max(start + 1, target_end - self.boundary_window)
        paragraph_break = body.find("\n\n", window_start, target_end + self.boundary_window)
        if paragraph_break != -1:
            return paragraph_break + 2
        return target_end

    def _section(
        self,
        *,
        index: int,
        title: str,
        kind: str,
        start: int,
        raw_text: str,
        preamble: str,
    ) -> DocumentSection:
        """Create one document-wrapped section record."""

        return DocumentSection(
            index=index,
            title=title,
            kind=kind,
            source_range=(start, start + len(raw_text)),
            raw_text=raw_text,
            content=wrap_in_document(preamble, raw_text, is_first=index == 0),
        )


_HEADING_TAG = re.compile(r"<h([1-6])(\s[^>]*)?>(.*?)</h\1>", re.DOTALL | re.IGNORECASE)
_EXISTING_NUMBER = re.compile(r"^\s*(?:<span[^>]*>)?(?:\d+\.)*\d+(?:</span>)?\s+")
_TITLE_CLASS = re.compile(r"""\bclass\s*=\s*["'][^"']*\btitle\b[^"']*["']""", re.IGNORECASE)


def number_headings(html: str) -> str:
    """Apply sequential hierarchical numbering to HTML headings.

    Only a leading `<h1 class="title">` document title is left unnumbered;
    existing leading numbers are replaced so numbering stays continuous across
    reassembled sections.
    """

    counters = [0] * 6
    first_heading = True

    def _renumber(match: re.Match[str]) -> str:
        nonlocal first_heading
        level = int(match.group(1)) - 1
        attributes = match.group(2) or ""
        is_first, first_heading = first_heading, False
        if is_first and level == 0 and _TITLE_CLASS.search(attributes):
            return match.group(0)

        counters[level] += 1
        for deeper in range(level + 1, 6):
            counters[deeper] = 0
        number = ".".join(str(value) for value in counters[: level + 1] if value > 0)
        text = _EXISTING_NUMBER.sub("", match.group(3), count=1)
        return f"<h{level + 1}{attributes}>{number} {text}</h{level + 1}>"

    return _HEADING_TAG.sub(_renumber, html)
