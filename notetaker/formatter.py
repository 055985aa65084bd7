"""
Page Formatter

Turns one ExtractedPage into the markdown-flavoured block shown to readers.
The literal markers below are shared with the exporter, which string-matches
and strips them, so changing one means changing both.
"""

import re
from typing import List

from .importance import annotate_importance
from .pdf_extractor import ExtractedPage

PAGE_HEADER = "**📄 Page {number}**"
VISUAL_CONTENT_HEADER = "**🎯 Visual Content on This Page:**"
FIGURES_HEADER = "**📊 Figures Referenced:**"
TABLES_HEADER = "**📋 Tables Referenced:**"
GRAPHS_HEADER = "**📈 Graphs/Charts Referenced:**"
TEXT_CONTENT_HEADER = "**📝 Text Content:**"
CAPTION_LINE = "  📝 Caption: *{caption}*"
LOCATION_LINE = "  📍 Location: {position}"
HEADING_PREFIX = "### 🔸 "
BULLET = "• "
DIVIDER = "---"
IMAGES_DETECTED_LINE = "• **Visual elements detected** (images, diagrams, or graphics present)"
NO_TEXT_NOTICE = "*No readable text content found on this page.*"

MARKER_EMOJI = ('🎯', '📊', '📋', '📈', '📝', '🔸', '📍')

HEADING_MAX_CHARS = 80
HEADING_MAX_WORDS = 8
SHORT_SENTENCE_CHARS = 150
MIN_SENTENCE_CHARS = 10

_CAPITALIZED_PHRASE = re.compile(r'^[A-Z][A-Za-z\s]+$')
_NUMBERED_HEADING = re.compile(r'^\d+\.?\s+[A-Z]')
_SENTENCE_END = re.compile(r'[.!?]$')
_SENTENCE_SPLIT = re.compile(r'(?<=[.!?])\s+')
_IMPORTANT_SENTENCE = re.compile(
    r'(?:important|significant|key|critical|essential|note|conclusion|result|finding'
    r'|figure|table|chart|graph|shows|indicates|demonstrates)',
    re.IGNORECASE
)


def bold(text: str) -> str:
    return f"**{text}**"


def is_heading(section: str) -> bool:
    """
    Classify a paragraph-level section as a heading.

    Sections ending in sentence punctuation are read as prose even when short.
    """
    if len(section) >= HEADING_MAX_CHARS:
        return False
    if _SENTENCE_END.search(section) and not _NUMBERED_HEADING.match(section):
        return False
    return (
        section == section.upper()
        or len(section.split(' ')) <= HEADING_MAX_WORDS
        or bool(_CAPITALIZED_PHRASE.match(section))
        or bool(_NUMBERED_HEADING.match(section))
    )


def split_sentences(section: str) -> List[str]:
    return [s for s in _SENTENCE_SPLIT.split(section) if s.strip()]


class PageFormatter:
    """Composes header, visual references and text bullets for a page."""

    def format(self, page: ExtractedPage) -> str:
        """
        Format one page.

        Args:
            page: Extracted page

        Returns:
            Formatted block; identical input always gives identical output
        """
        blocks = [PAGE_HEADER.format(number=page.page_number)]

        if page.figures or page.tables or page.graphs or page.has_images:
            blocks.extend(self._visual_blocks(page))

        blocks.extend(self._text_blocks(page.text))

        return '\n\n'.join(blocks).strip()

    def _visual_blocks(self, page: ExtractedPage) -> List[str]:
        blocks = [VISUAL_CONTENT_HEADER]

        if page.figures:
            blocks.append(FIGURES_HEADER)
            for figure in page.figures:
                blocks.append(BULLET + bold(figure.description))
                if figure.caption:
                    blocks.append(CAPTION_LINE.format(caption=figure.caption))
                blocks.append(LOCATION_LINE.format(position=figure.position))

        if page.tables:
            blocks.append(TABLES_HEADER)
            for table in page.tables:
                blocks.append(BULLET + bold(table.description))
                if table.caption:
                    blocks.append(CAPTION_LINE.format(caption=table.caption))
                blocks.append(LOCATION_LINE.format(position=table.position))

        if page.graphs:
            blocks.append(GRAPHS_HEADER)
            for graph in page.graphs:
                blocks.append(f"{BULLET}{bold(graph.description)} ({graph.type})")
                if graph.caption:
                    blocks.append(CAPTION_LINE.format(caption=graph.caption))
                blocks.append(LOCATION_LINE.format(position=graph.position))

        if page.has_images and not page.figures:
            blocks.append(IMAGES_DETECTED_LINE)
            blocks.append(LOCATION_LINE.format(position=f"Page {page.page_number}"))

        blocks.append(DIVIDER)
        return blocks

    def _text_blocks(self, text: str) -> List[str]:
        sections = [s.strip() for s in text.split('\n\n') if s.strip()]
        if not sections:
            return [NO_TEXT_NOTICE]

        blocks = [TEXT_CONTENT_HEADER]
        for section in sections:
            if is_heading(section):
                blocks.append(HEADING_PREFIX + section)
                continue

            sentences = split_sentences(section)
            if len(sentences) == 1 and len(sentences[0]) < SHORT_SENTENCE_CHARS:
                blocks.append(BULLET + bold(annotate_importance(sentences[0]).strip()))
                continue

            for sentence in sentences:
                sentence = sentence.strip()
                if len(sentence) <= MIN_SENTENCE_CHARS:
                    continue
                annotated = annotate_importance(sentence)
                if _IMPORTANT_SENTENCE.search(sentence):
                    blocks.append(BULLET + bold(annotated))
                else:
                    blocks.append(BULLET + annotated)

        return blocks


def format_page_content(page: ExtractedPage) -> str:
    """Format a page with the default PageFormatter."""
    return PageFormatter().format(page)
