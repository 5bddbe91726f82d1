"""
ai_context_mcp.metadata

Pure metadata extraction for markdown resources. No I/O.

Strategies, first match wins:
- structured:      leading '---' frontmatter block, returned verbatim (not parsed)
- inline-comment:  '<!-- metadata ... -->' block anywhere in the document
- derived:         first paragraph after an optional heading, before any 'Read:' directive
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

DERIVED_PLACEHOLDER = "No description available"
DERIVED_MAX_CHARS = 500
DERIVED_MIN_CUT = 200

_STRUCTURED_RE = re.compile(r"^---\n(?:---|(.*?)\n---)", re.DOTALL)
_INLINE_COMMENT_RE = re.compile(r"<!--\s*metadata\s*\n(.*?)\s*-->", re.DOTALL)
_LEADING_HEADING_RE = re.compile(r"^#[^\n]*\n+")
_READ_DIRECTIVE = "\nRead:"


class MetadataSource(str, Enum):
    STRUCTURED = "structured"
    INLINE_COMMENT = "inline-comment"
    DERIVED = "derived"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExtractedMetadata:
    content: str
    source: MetadataSource


def _derive_paragraph(text: str) -> str:
    body = _LEADING_HEADING_RE.sub("", text, count=1)
    body = body.split(_READ_DIRECTIVE, 1)[0]

    paragraph_end = body.find("\n\n")
    if paragraph_end != -1:
        paragraph = body[:paragraph_end]
    else:
        paragraph = body[:DERIVED_MAX_CHARS]
        cut = max(paragraph.rfind("."), paragraph.rfind("\n"))
        if cut > DERIVED_MIN_CUT:
            paragraph = paragraph[: cut + 1]

    return paragraph.strip()


def extract_metadata(text: str) -> ExtractedMetadata:
    """
    function_purpose: Produce (content, source) for a markdown document.

    Never raises for string input; the derived fallback always yields non-empty content.
    """
    structured = _STRUCTURED_RE.match(text)
    if structured:
        block = structured.group(1) or ""
        return ExtractedMetadata(block.strip(), MetadataSource.STRUCTURED)

    inline = _INLINE_COMMENT_RE.search(text)
    if inline:
        return ExtractedMetadata(inline.group(1).strip(), MetadataSource.INLINE_COMMENT)

    return ExtractedMetadata(
        _derive_paragraph(text) or DERIVED_PLACEHOLDER, MetadataSource.DERIVED
    )
