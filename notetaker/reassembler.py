"""
Glyph Stream Reassembler

Rebuilds readable page text from the positioned text fragments a PDF page
carries. PDF content streams have no notion of lines or paragraphs, so line
and word boundaries are inferred from fragment geometry.
"""

import re
from typing import Iterable, Optional
from dataclasses import dataclass

# Vertical movement (in PDF units) that starts a new line of text
DEFAULT_LINE_BREAK_THRESHOLD = 5.0
# Horizontal gap (in PDF units) treated as a word or column gap
DEFAULT_WORD_GAP_THRESHOLD = 50.0

_ENDS_WITH_SEPARATOR = re.compile(r'[.!?:;,\s]$')
_HORIZONTAL_SPACE = re.compile(r'[^\S\n]+')
_SPACE_AROUND_BREAK = re.compile(r' *\n *')
_EXTRA_BREAKS = re.compile(r'\n{3,}')


@dataclass(frozen=True)
class PageFragment:
    """One positioned run of text on a page."""
    text: str
    x: float
    y: float
    width: float

    @property
    def right_edge(self) -> float:
        return self.x + self.width


def reassemble_page_text(
    fragments: Iterable[PageFragment],
    line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD,
    word_gap_threshold: float = DEFAULT_WORD_GAP_THRESHOLD
) -> str:
    """
    Join a page's fragments into normalized text with paragraph breaks.

    Args:
        fragments: Fragments in content-stream order
        line_break_threshold: Minimum vertical change that starts a new line
        word_gap_threshold: Minimum horizontal gap that inserts a space

    Returns:
        Normalized page text, or an empty string when no fragment has text
    """
    parts = []
    last_y: Optional[float] = None
    last_right: Optional[float] = None

    for fragment in fragments:
        text = fragment.text.strip()
        if not text:
            continue

        if last_y is not None and abs(last_y - fragment.y) > line_break_threshold:
            parts.append('\n\n')
        elif last_right is not None and fragment.x - last_right > word_gap_threshold:
            parts.append(' ')

        parts.append(text)

        # Keep adjacent fragments from gluing words together
        if not _ENDS_WITH_SEPARATOR.search(text):
            parts.append(' ')

        last_y = fragment.y
        last_right = fragment.right_edge

    return normalize_text(''.join(parts))


def normalize_text(text: str) -> str:
    """Collapse whitespace while keeping paragraph breaks intact."""
    text = _EXTRA_BREAKS.sub('\n\n', text)
    text = _HORIZONTAL_SPACE.sub(' ', text)
    text = _SPACE_AROUND_BREAK.sub('\n', text)
    text = _EXTRA_BREAKS.sub('\n\n', text)
    return text.strip()
