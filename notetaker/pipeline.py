"""
Notes Pipeline

Runs extraction and assembly for one PDF and reports progress at fixed
checkpoints: structure loaded (5%), each page (5-85%), post-processing
(85%, 95%) and completion (100%).
"""

import logging
import time
from typing import Callable, Optional
from dataclasses import dataclass

from .pdf_extractor import PDFExtractor, ExtractionError, ProcessingCancelled
from .assembler import NotesAssembler, NotesDocument
from .reassembler import DEFAULT_LINE_BREAK_THRESHOLD, DEFAULT_WORD_GAP_THRESHOLD

logger = logging.getLogger(__name__)

# (percentage, stage, current page)
ProgressCallback = Callable[[float, str, Optional[int]], None]

STRUCTURE_LOADED = 5.0
EXTRACTION_END = 85.0
FINALIZING = 95.0
COMPLETE = 100.0


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification for a single file."""
    progress: float
    stage: str
    current_page: Optional[int] = None


def page_progress(page_number: int, total_pages: int) -> float:
    """Overall percentage once ``page_number`` of ``total_pages`` is extracted."""
    if total_pages <= 0:
        return EXTRACTION_END
    return STRUCTURE_LOADED + (EXTRACTION_END - STRUCTURE_LOADED) * page_number / total_pages


@dataclass
class PipelineConfig:
    """Configuration for the notes pipeline."""
    line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD
    word_gap_threshold: float = DEFAULT_WORD_GAP_THRESHOLD
    title_prefix: str = "Full Content: "
    summary_page_count: int = 3
    summary_char_limit: int = 500
    max_key_points: int = 15
    max_tags: int = 8


class NotesPipeline:
    """
    Turns PDF bytes into a NotesDocument.

    Pages are processed strictly in order. Any failure aborts the whole
    document; no partial notes are produced.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline configuration
        """
        self.config = config or PipelineConfig()

        self.extractor = PDFExtractor(
            line_break_threshold=self.config.line_break_threshold,
            word_gap_threshold=self.config.word_gap_threshold
        )
        self.assembler = NotesAssembler(
            title_prefix=self.config.title_prefix,
            summary_page_count=self.config.summary_page_count,
            summary_char_limit=self.config.summary_char_limit,
            max_key_points=self.config.max_key_points,
            max_tags=self.config.max_tags
        )

    def process(
        self,
        data: bytes,
        file_name: str,
        progress_callback: Optional[ProgressCallback] = None,
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> NotesDocument:
        """
        Process one PDF into notes.

        Args:
            data: Raw PDF bytes
            file_name: Display name of the uploaded file
            progress_callback: Called with (percentage, stage, current page)
            should_cancel: Polled at every page boundary

        Returns:
            Notes for the document

        Raises:
            ExtractionError: If the PDF cannot be read or processing faults
            ProcessingCancelled: If should_cancel returned True
        """
        start_time = time.time()

        def report(progress: float, stage: str, current_page: Optional[int] = None):
            if progress_callback:
                progress_callback(progress, stage, current_page)

        def on_page(page_number: int, total_pages: int):
            report(page_progress(page_number, total_pages),
                   f"Extracting content from page {page_number}...", page_number)

        logger.info(f"Starting notes pipeline for: {file_name}")

        try:
            report(STRUCTURE_LOADED, "Reading PDF structure...")

            document = self.extractor.extract(
                data, file_name, on_page=on_page, should_cancel=should_cancel
            )

            report(EXTRACTION_END, "Processing extracted content...")
            notes = self.assembler.assemble(document)

            report(FINALIZING, "Finalizing notes structure...")
            report(COMPLETE, "Complete!")

        except (ExtractionError, ProcessingCancelled):
            raise
        except Exception as e:
            logger.error(f"Unexpected failure while processing {file_name}: {e}")
            raise ExtractionError(f"Failed to process {file_name}: {e}") from e

        logger.info(f"Processed {file_name} in {time.time() - start_time:.2f}s "
                    f"({len(notes.sections)} sections)")
        return notes


def create_pipeline(config: Optional[PipelineConfig] = None) -> NotesPipeline:
    """
    Convenience function to create a notes pipeline.

    Args:
        config: Pipeline configuration

    Returns:
        Configured pipeline
    """
    return NotesPipeline(config)
