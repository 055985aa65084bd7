"""
Notetaker

Turns PDF documents into structured notes: page text reassembled from
positioned glyphs, figure/table/graph references, highlighted key phrases,
and a document-level summary with key points and tags.

Main Components:
- PDFExtractor: Per-page text and reference extraction with PyMuPDF
- PageFormatter: Markdown-flavoured notes for a single page
- NotesAssembler: Summary, key points, tags and sections for a document
- NotesPipeline: Extraction and assembly with progress reporting
- ProcessingSession: Concurrent processing with an in-memory history

Usage:
    from notetaker import create_pipeline, to_markdown

    pipeline = create_pipeline()
    with open("report.pdf", "rb") as f:
        notes = pipeline.process(f.read(), "report.pdf")
    print(to_markdown(notes))
"""

from .reassembler import (
    PageFragment,
    reassemble_page_text,
    normalize_text
)

from .references import (
    FigureReference,
    TableReference,
    GraphReference,
    DetectedReferences,
    ReferenceDetector,
    detect_references
)

from .importance import annotate_importance

from .pdf_extractor import (
    PDFExtractor,
    ExtractedPage,
    ExtractedDocument,
    ExtractionError,
    ProcessingCancelled,
    extract_pdf_content
)

from .formatter import (
    PageFormatter,
    format_page_content
)

from .assembler import (
    NotesAssembler,
    NotesDocument,
    NoteSection
)

from .pipeline import (
    NotesPipeline,
    PipelineConfig,
    ProgressEvent,
    create_pipeline
)

from .session import (
    ProcessingSession,
    ProcessingRecord,
    ProcessingStatus,
    Upload,
    ValidationError
)

from .exporter import (
    to_markdown,
    to_plain_text,
    to_history_markdown,
    export_filename,
    save_markdown,
    count_visual_elements
)

from .config import (
    NotetakerConfig,
    ConfigManager,
    get_config
)

__version__ = "1.0.0"
__author__ = "Notetaker Team"

__all__ = [
    # Reassembly
    "PageFragment",
    "reassemble_page_text",
    "normalize_text",

    # References
    "FigureReference",
    "TableReference",
    "GraphReference",
    "DetectedReferences",
    "ReferenceDetector",
    "detect_references",

    # Importance
    "annotate_importance",

    # PDF Extraction
    "PDFExtractor",
    "ExtractedPage",
    "ExtractedDocument",
    "ExtractionError",
    "ProcessingCancelled",
    "extract_pdf_content",

    # Formatting and assembly
    "PageFormatter",
    "format_page_content",
    "NotesAssembler",
    "NotesDocument",
    "NoteSection",

    # Pipeline
    "NotesPipeline",
    "PipelineConfig",
    "ProgressEvent",
    "create_pipeline",

    # Session
    "ProcessingSession",
    "ProcessingRecord",
    "ProcessingStatus",
    "Upload",
    "ValidationError",

    # Export
    "to_markdown",
    "to_plain_text",
    "to_history_markdown",
    "export_filename",
    "save_markdown",
    "count_visual_elements",

    # Configuration
    "NotetakerConfig",
    "ConfigManager",
    "get_config"
]
