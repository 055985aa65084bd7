"""
Document Assembler

Builds the NotesDocument from an ExtractedDocument: one note section per page,
a naive extractive summary, first-sentence key points, vocabulary tags and a
word count. Aggregation is order sensitive and expects pages in page order.
"""

import re
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from .formatter import PageFormatter
from .pdf_extractor import ExtractedDocument, ExtractedPage

logger = logging.getLogger(__name__)

TITLE_PREFIX = "Full Content: "
SUMMARY_PAGE_COUNT = 3
SUMMARY_CHAR_LIMIT = 500
MAX_KEY_POINTS = 15
MAX_TAGS = 8

TAG_VOCABULARY = [
    'introduction', 'conclusion', 'analysis', 'methodology', 'results',
    'discussion', 'theory', 'practice', 'implementation', 'evaluation',
    'research', 'study', 'data', 'findings', 'recommendations'
]

_KEY_POINT_SPLIT = re.compile(r'[.!?]+')


@dataclass(frozen=True)
class NoteSection:
    """A node of the notes tree; pages are top-level sections."""
    id: str
    title: str
    content: str
    subsections: Optional[List['NoteSection']] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'title': self.title,
            'content': self.content
        }
        if self.subsections is not None:
            data['subsections'] = [s.to_dict() for s in self.subsections]
        return data


@dataclass(frozen=True)
class NotesDocument:
    """Final notes produced for one PDF."""
    title: str
    summary: str
    sections: List[NoteSection]
    key_points: List[str]
    tags: List[str]
    word_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert notes to a JSON-serializable dictionary."""
        return {
            'title': self.title,
            'summary': self.summary,
            'sections': [section.to_dict() for section in self.sections],
            'key_points': list(self.key_points),
            'tags': list(self.tags),
            'word_count': self.word_count
        }


def build_summary(
    pages: List[ExtractedPage],
    total_pages: int,
    page_count: int = SUMMARY_PAGE_COUNT,
    char_limit: int = SUMMARY_CHAR_LIMIT
) -> str:
    leading_text = ' '.join(page.text for page in pages[:page_count])[:char_limit]
    return f"This document contains {total_pages} pages of content. {leading_text}..."


def extract_key_points(pages: List[ExtractedPage], limit: int = MAX_KEY_POINTS) -> List[str]:
    """First meaningful sentence of each page, in page order."""
    key_points = []

    for page in pages:
        if not page.text:
            continue
        sentences = [s for s in _KEY_POINT_SPLIT.split(page.text) if len(s.strip()) > 20]
        if not sentences:
            continue
        first_sentence = sentences[0].strip()
        if 10 < len(first_sentence) < 200:
            key_points.append(f"Page {page.page_number}: {first_sentence}")

    return key_points[:limit]


def generate_tags(pages: List[ExtractedPage], limit: int = MAX_TAGS) -> List[str]:
    """Vocabulary terms present in the document, in vocabulary order."""
    all_text = ' '.join(page.text for page in pages).lower()
    found = [tag for tag in TAG_VOCABULARY if tag in all_text or tag + 's' in all_text]
    return found[:limit]


def count_words(pages: List[ExtractedPage]) -> int:
    return sum(len(page.text.split()) if page.text else 0 for page in pages)


class NotesAssembler:
    """Turns extracted pages into a NotesDocument."""

    def __init__(
        self,
        formatter: Optional[PageFormatter] = None,
        title_prefix: str = TITLE_PREFIX,
        summary_page_count: int = SUMMARY_PAGE_COUNT,
        summary_char_limit: int = SUMMARY_CHAR_LIMIT,
        max_key_points: int = MAX_KEY_POINTS,
        max_tags: int = MAX_TAGS
    ):
        self.formatter = formatter or PageFormatter()
        self.title_prefix = title_prefix
        self.summary_page_count = summary_page_count
        self.summary_char_limit = summary_char_limit
        self.max_key_points = max_key_points
        self.max_tags = max_tags

    def build_sections(self, pages: List[ExtractedPage]) -> List[NoteSection]:
        return [
            NoteSection(
                id=f"page-{page.page_number}",
                title=page.title or f"Page {page.page_number}",
                content=self.formatter.format(page)
            )
            for page in pages
        ]

    def assemble(self, document: ExtractedDocument) -> NotesDocument:
        """
        Assemble notes for a whole document.

        Args:
            document: Extracted document with pages in page order

        Returns:
            NotesDocument with one section per page
        """
        # Summary and key points depend on page order
        pages = sorted(document.pages, key=lambda p: p.page_number)

        notes = NotesDocument(
            title=f"{self.title_prefix}{document.title}",
            summary=build_summary(pages, document.total_pages,
                                  self.summary_page_count, self.summary_char_limit),
            sections=self.build_sections(pages),
            key_points=extract_key_points(pages, self.max_key_points),
            tags=generate_tags(pages, self.max_tags),
            word_count=count_words(pages)
        )

        logger.info(f"Assembled notes for {document.title}: {len(notes.sections)} sections, "
                    f"{len(notes.key_points)} key points, {notes.word_count} words")

        return notes
