"""
PDF Content Extractor

Reads PDF bytes with PyMuPDF and produces one ExtractedPage per page:
reassembled text, an inferred title, figure/table/graph references and a flag
for raster images. Extraction is all-or-nothing at the document level.
"""

import re
import logging
import threading
from typing import Callable, List, Optional, Tuple
from pathlib import Path
from dataclasses import dataclass, field

import fitz  # PyMuPDF

from .reassembler import (
    PageFragment,
    reassemble_page_text,
    DEFAULT_LINE_BREAK_THRESHOLD,
    DEFAULT_WORD_GAP_THRESHOLD
)
from .references import (
    ReferenceDetector,
    FigureReference,
    TableReference,
    GraphReference
)

logger = logging.getLogger(__name__)

PDF_MAGIC = b'%PDF-'
# The PDF header may be preceded by junk within the first 1024 bytes
PDF_HEADER_WINDOW = 1024
INVALID_PDF_MESSAGE = "Failed to extract PDF content. Please ensure the file is a valid PDF."

# MuPDF is not thread safe; every call into it goes through this lock
_MUPDF_LOCK = threading.Lock()

_EXTENSION = re.compile(r'\.[^/.]+$')


class ExtractionError(Exception):
    """Raised when a PDF cannot be opened or a page cannot be extracted."""
    pass


class ProcessingCancelled(Exception):
    """Raised at a page boundary when processing was cancelled."""
    pass


@dataclass(frozen=True)
class ExtractedPage:
    """Extracted content of a single page."""
    page_number: int
    text: str
    title: Optional[str] = None
    figures: List[FigureReference] = field(default_factory=list)
    tables: List[TableReference] = field(default_factory=list)
    graphs: List[GraphReference] = field(default_factory=list)
    has_images: bool = False


@dataclass(frozen=True)
class ExtractedDocument:
    """All pages of a document plus aggregate reference counts."""
    pages: List[ExtractedPage]
    total_pages: int
    title: str
    total_figures: int = 0
    total_tables: int = 0
    total_graphs: int = 0


def document_title_from_filename(file_name: str) -> str:
    """Strip the extension from a file name."""
    return _EXTENSION.sub('', file_name)


def infer_page_title(text: str) -> Optional[str]:
    """Use the first non-empty line as the title when it has a plausible length."""
    lines = [line for line in text.split('\n') if line.strip()]
    if not lines:
        return None
    first_line = lines[0].strip()
    if 5 < len(first_line) < 100:
        return first_line
    return None


def read_page_fragments(page) -> Tuple[List[PageFragment], bool]:
    """
    Pull positioned text fragments and the image flag from a PyMuPDF page.

    Args:
        page: fitz.Page

    Returns:
        Tuple of (fragments in content order, page paints images)
    """
    fragments = []
    has_images = False

    for block in page.get_text("dict")["blocks"]:
        if block.get("type") == 1:
            has_images = True
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                x0, _, x1, _ = span["bbox"]
                fragments.append(PageFragment(
                    text=span["text"],
                    x=x0,
                    y=span["origin"][1],
                    width=x1 - x0
                ))

    if not has_images and page.get_images(full=True):
        has_images = True

    return fragments, has_images


class PDFExtractor:
    """Extracts per-page text and visual references from PDF bytes."""

    def __init__(
        self,
        line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD,
        word_gap_threshold: float = DEFAULT_WORD_GAP_THRESHOLD,
        reference_detector: Optional[ReferenceDetector] = None
    ):
        """
        Initialize PDF extractor.

        Args:
            line_break_threshold: Vertical change that starts a new paragraph
            word_gap_threshold: Horizontal gap that inserts a space
            reference_detector: Detector used for figure/table/graph mentions
        """
        self.line_break_threshold = line_break_threshold
        self.word_gap_threshold = word_gap_threshold
        self.reference_detector = reference_detector or ReferenceDetector()

    def extract(
        self,
        data: bytes,
        file_name: str,
        on_page: Optional[Callable[[int, int], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> ExtractedDocument:
        """
        Extract every page of a PDF.

        Args:
            data: Raw file bytes
            file_name: Display name, used for the document title
            on_page: Called with (page_number, total_pages) after each page
            should_cancel: Polled before each page; returning True stops extraction

        Returns:
            ExtractedDocument with pages in page order

        Raises:
            ExtractionError: If the bytes are not a readable, unencrypted PDF
                or any page fails to extract
        """
        if not data or PDF_MAGIC not in data[:PDF_HEADER_WINDOW]:
            logger.error(f"Rejected {file_name}: missing PDF header")
            raise ExtractionError(INVALID_PDF_MESSAGE)

        logger.info(f"Extracting content from: {file_name}")

        doc, total_pages = self._open(data, file_name)
        try:
            pages = []

            for index in range(total_pages):
                if should_cancel and should_cancel():
                    logger.info(f"Cancelled {file_name} before page {index + 1}")
                    raise ProcessingCancelled(f"Processing of {file_name} was cancelled")

                page_number = index + 1
                try:
                    with _MUPDF_LOCK:
                        fragments, has_images = read_page_fragments(doc[index])
                except Exception as e:
                    logger.error(f"Failed to extract page {page_number} of {file_name}: {e}")
                    raise ExtractionError(
                        f"Failed to extract page {page_number} of {file_name}: {e}"
                    ) from e

                pages.append(self.build_page(page_number, fragments, has_images))

                if on_page:
                    on_page(page_number, total_pages)
        finally:
            with _MUPDF_LOCK:
                doc.close()

        document = ExtractedDocument(
            pages=pages,
            total_pages=total_pages,
            title=document_title_from_filename(file_name),
            total_figures=sum(len(p.figures) for p in pages),
            total_tables=sum(len(p.tables) for p in pages),
            total_graphs=sum(len(p.graphs) for p in pages)
        )

        logger.info(f"Extracted {document.total_pages} pages from {file_name} "
                    f"({document.total_figures} figures, {document.total_tables} tables, "
                    f"{document.total_graphs} graphs referenced)")

        return document

    def build_page(
        self,
        page_number: int,
        fragments: List[PageFragment],
        has_images: bool = False
    ) -> ExtractedPage:
        """Reassemble fragments and detect references for one page."""
        text = reassemble_page_text(
            fragments,
            line_break_threshold=self.line_break_threshold,
            word_gap_threshold=self.word_gap_threshold
        )
        references = self.reference_detector.detect(text, page_number)

        if not text:
            logger.debug(f"Page {page_number} has no extractable text")

        return ExtractedPage(
            page_number=page_number,
            text=text,
            title=infer_page_title(text),
            figures=references.figures,
            tables=references.tables,
            graphs=references.graphs,
            has_images=has_images
        )

    def _open(self, data: bytes, file_name: str):
        """Open PDF bytes; returns the document and its page count."""
        try:
            with _MUPDF_LOCK:
                doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open {file_name}: {e}")
            raise ExtractionError(INVALID_PDF_MESSAGE) from e

        with _MUPDF_LOCK:
            encrypted = doc.needs_pass
            if encrypted:
                doc.close()
            else:
                page_count = doc.page_count

        if encrypted:
            logger.error(f"Rejected {file_name}: document is encrypted")
            raise ExtractionError(f"{file_name} is password protected and cannot be read.")

        return doc, page_count


def extract_pdf_content(pdf_path: str, extractor: Optional[PDFExtractor] = None) -> ExtractedDocument:
    """
    Convenience function to extract a PDF from disk.

    Args:
        pdf_path: Path to the PDF file
        extractor: Extractor to use; a default one when omitted

    Returns:
        ExtractedDocument for the file
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    extractor = extractor or PDFExtractor()
    return extractor.extract(pdf_path.read_bytes(), pdf_path.name)
