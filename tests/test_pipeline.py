"""
Tests for the notes pipeline and its progress reporting.
"""

import pytest

from notetaker.pipeline import (
    NotesPipeline,
    PipelineConfig,
    create_pipeline,
    page_progress
)
from notetaker.pdf_extractor import ExtractionError, ProcessingCancelled


class TestPageProgress:

    @pytest.mark.parametrize("page,total,expected", [
        (1, 2, 45.0),
        (2, 2, 85.0),
        (1, 4, 25.0),
        (0, 0, 85.0),
    ])
    def test_values(self, page, total, expected):
        assert page_progress(page, total) == pytest.approx(expected)


class TestNotesPipeline:
    """Test cases for NotesPipeline."""

    @pytest.fixture
    def pipeline(self):
        return create_pipeline()

    def test_progress_sequence(self, pipeline, sample_pdf_bytes):
        events = []
        pipeline.process(sample_pdf_bytes, "sample.pdf",
                         progress_callback=lambda p, stage, page: events.append((p, stage, page)))

        assert events == [
            (5.0, "Reading PDF structure...", None),
            (45.0, "Extracting content from page 1...", 1),
            (85.0, "Extracting content from page 2...", 2),
            (85.0, "Processing extracted content...", None),
            (95.0, "Finalizing notes structure...", None),
            (100.0, "Complete!", None),
        ]
        progress = [e[0] for e in events]
        assert progress == sorted(progress)

    def test_sections_match_page_count(self, pipeline, pdf_factory):
        data = pdf_factory(["First page.", None, "Third page text."])
        notes = pipeline.process(data, "three.pdf")

        assert len(notes.sections) == 3
        assert "*No readable text content found on this page.*" in notes.sections[1].content

    def test_deterministic(self, pipeline, sample_pdf_bytes):
        first = pipeline.process(sample_pdf_bytes, "sample.pdf")
        second = create_pipeline().process(sample_pdf_bytes, "sample.pdf")

        assert first.to_dict() == second.to_dict()

    def test_notes_content(self, pipeline, sample_pdf_bytes):
        notes = pipeline.process(sample_pdf_bytes, "sample.pdf")

        assert notes.title == "Full Content: sample"
        assert notes.summary.startswith("This document contains 2 pages of content. INTRODUCTION")
        assert notes.key_points[0] == "Page 1: INTRODUCTION\n\nThis finding is significant for future research"
        assert "introduction" in notes.tags
        assert "**📊 Figures Referenced:**" in notes.sections[0].content

    def test_non_pdf_fails(self, pipeline):
        with pytest.raises(ExtractionError):
            pipeline.process(b"plain text, not a pdf", "notes.txt")

    def test_cancellation_propagates(self, pipeline, sample_pdf_bytes):
        with pytest.raises(ProcessingCancelled):
            pipeline.process(sample_pdf_bytes, "sample.pdf", should_cancel=lambda: True)

    def test_unexpected_error_is_wrapped(self, pipeline, sample_pdf_bytes):
        def broken_callback(progress, stage, page):
            raise RuntimeError("display went away")

        with pytest.raises(ExtractionError) as exc_info:
            pipeline.process(sample_pdf_bytes, "sample.pdf", progress_callback=broken_callback)

        assert "display went away" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_config_is_applied(self, sample_pdf_bytes):
        pipeline = NotesPipeline(PipelineConfig(title_prefix="Notes: ", max_tags=1))
        notes = pipeline.process(sample_pdf_bytes, "sample.pdf")

        assert notes.title == "Notes: sample"
        assert len(notes.tags) == 1
