"""
Tests for the processing session: records, concurrency, cancellation and validation.
"""

import asyncio
import threading
import time
from datetime import datetime

import pytest

from notetaker.config import NotetakerConfig
from notetaker.pdf_extractor import INVALID_PDF_MESSAGE, ProcessingCancelled
from notetaker.session import (
    ProcessingSession,
    ProcessingRecord,
    ProcessingStatus,
    Upload,
    ValidationError
)


def make_record(**changes):
    fields = dict(
        id="r1",
        name="a.pdf",
        size=10,
        content_type="application/pdf",
        upload_date=datetime(2024, 1, 1),
        status=ProcessingStatus.PROCESSING,
        progress=10.0
    )
    fields.update(changes)
    return ProcessingRecord(**fields)


class ScriptedPipeline:
    """Pipeline double that replays fixed progress values."""

    def __init__(self, progress_values, result=None, error=None):
        self.progress_values = progress_values
        self.result = result
        self.error = error

    def process(self, data, file_name, progress_callback=None, should_cancel=None):
        for value in self.progress_values:
            progress_callback(value, f"stage {value}", None)
        if self.error:
            raise self.error
        return self.result


class BlockingPipeline:
    """Pipeline double that waits until it is cancelled."""

    def __init__(self):
        self.started = threading.Event()

    def process(self, data, file_name, progress_callback=None, should_cancel=None):
        progress_callback(5.0, "Reading PDF structure...", None)
        self.started.set()
        for _ in range(500):
            if should_cancel():
                raise ProcessingCancelled(f"Processing of {file_name} was cancelled")
            time.sleep(0.01)
        raise AssertionError("cancellation was never requested")


@pytest.fixture
def session():
    session = ProcessingSession()
    yield session
    session.shutdown()


class TestProcessingRecord:
    """Test cases for record invariants."""

    def test_processing_record(self):
        record = make_record()
        assert record.notes is None and record.error is None

    def test_completed_requires_notes(self):
        with pytest.raises(ValueError):
            make_record(status=ProcessingStatus.COMPLETED, progress=100.0)

    def test_failed_requires_error(self):
        with pytest.raises(ValueError):
            make_record(status=ProcessingStatus.FAILED, progress=0.0)

    def test_error_only_when_failed(self):
        with pytest.raises(ValueError):
            make_record(error="boom")

    def test_failed_progress_is_zero(self):
        with pytest.raises(ValueError):
            make_record(status=ProcessingStatus.FAILED, progress=40.0, error="boom")

    def test_progress_range(self):
        with pytest.raises(ValueError):
            make_record(progress=120.0)

    def test_records_are_frozen(self):
        record = make_record()
        with pytest.raises(Exception):
            record.progress = 50.0


class TestValidation:

    def test_rejects_non_pdf(self, session):
        with pytest.raises(ValidationError):
            session.validate_upload("notes.txt", 100, "text/plain")

    def test_rejects_large_file(self):
        config = NotetakerConfig()
        config.session.max_file_size_mb = 1
        session = ProcessingSession(config=config)
        try:
            with pytest.raises(ValidationError) as exc_info:
                session.validate_upload("big.pdf", 2 * 1024 * 1024, "application/pdf")
            assert "1MB" in str(exc_info.value)
        finally:
            session.shutdown()

    def test_rejected_upload_creates_no_record(self, session):
        with pytest.raises(ValidationError):
            asyncio.run(session.process_file(b"%PDF-1.4", "notes.txt", "text/plain"))
        assert session.records() == []

    def test_limit_is_inclusive(self, session):
        session.validate_upload("edge.pdf", 50 * 1024 * 1024, "application/pdf")


class TestProcessFile:
    """Test cases for ProcessingSession.process_file."""

    def test_completed(self, session, sample_pdf_bytes):
        record = asyncio.run(session.process_file(sample_pdf_bytes, "sample.pdf"))

        assert record.status is ProcessingStatus.COMPLETED
        assert record.progress == 100.0
        assert record.notes is not None
        assert record.error is None
        assert len(record.notes.sections) == 2
        assert session.get(record.id) == record
        assert session.current_record() == record

    def test_non_pdf_bytes_fail(self, session):
        record = asyncio.run(session.process_file(b"not a pdf", "fake.pdf"))

        assert record.status is ProcessingStatus.FAILED
        assert record.progress == 0
        assert record.notes is None
        assert record.error == INVALID_PDF_MESSAGE

    def test_empty_error_message_gets_default(self):
        session = ProcessingSession(pipeline=ScriptedPipeline([5.0], error=RuntimeError()))
        try:
            record = asyncio.run(session.process_file(b"%PDF-1.4", "a.pdf"))
        finally:
            session.shutdown()
        assert record.error == "Processing failed"

    def test_progress_is_monotonic(self, sample_pdf_bytes):
        updates = []
        session = ProcessingSession(on_update=updates.append)
        try:
            asyncio.run(session.process_file(sample_pdf_bytes, "sample.pdf"))
        finally:
            session.shutdown()

        progress = [r.progress for r in updates if r.status is ProcessingStatus.PROCESSING]
        assert progress[0] == 0.0
        assert progress == sorted(progress)
        assert updates[-1].status is ProcessingStatus.COMPLETED
        assert any(r.current_page == 2 for r in updates)

    def test_stale_progress_is_ignored(self):
        updates = []
        session = ProcessingSession(pipeline=ScriptedPipeline([50.0, 30.0, 60.0], error=RuntimeError("x")),
                                    on_update=updates.append)
        try:
            asyncio.run(session.process_file(b"%PDF-1.4", "a.pdf"))
        finally:
            session.shutdown()

        stages = [r.processing_stage for r in updates if r.status is ProcessingStatus.PROCESSING]
        assert stages == [None, "stage 50.0", "stage 60.0"]

    def test_failing_listener_does_not_stall_record(self):
        seen = []

        def listener(record):
            seen.append(record.progress)
            if record.progress == 45.0:
                raise RuntimeError("display went away")

        session = ProcessingSession(pipeline=ScriptedPipeline([45.0, 80.0], error=RuntimeError("bad pdf")),
                                    on_update=listener)
        try:
            record = asyncio.run(session.process_file(b"%PDF-1.4", "a.pdf"))
        finally:
            session.shutdown()

        assert record.status is ProcessingStatus.FAILED
        assert record.error == "bad pdf"
        assert session.records() == [record]
        assert seen == [0.0, 45.0, 80.0, 0.0]

    def test_cancel(self):
        pipeline = BlockingPipeline()
        session = ProcessingSession(pipeline=pipeline)

        async def scenario():
            task = asyncio.create_task(session.process_file(b"%PDF-1.4", "slow.pdf"))
            while not pipeline.started.is_set():
                await asyncio.sleep(0.01)
            record_id = session.records()[0].id
            assert session.cancel(record_id)
            return await task

        try:
            record = asyncio.run(scenario())
        finally:
            session.shutdown()

        assert record.status is ProcessingStatus.CANCELLED
        assert record.progress == 0
        assert record.notes is None and record.error is None
        assert session.cancel(record.id) is False

    def test_concurrent_files(self, pdf_factory):
        config = NotetakerConfig()
        config.session.max_workers = 2
        session = ProcessingSession(config=config)
        uploads = [
            Upload(pdf_factory([f"Document {i} has a sentence of reasonable length."] * (i + 1)), f"doc{i}.pdf")
            for i in range(3)
        ]
        try:
            records = asyncio.run(session.process_many(uploads))
        finally:
            session.shutdown()

        assert [r.name for r in records] == ["doc0.pdf", "doc1.pdf", "doc2.pdf"]
        assert all(r.status is ProcessingStatus.COMPLETED for r in records)
        assert [len(r.notes.sections) for r in records] == [1, 2, 3]
        assert len({r.id for r in records}) == 3
        assert [r.name for r in session.records()] == ["doc0.pdf", "doc1.pdf", "doc2.pdf"]

    def test_process_many_validates_first(self, session, sample_pdf_bytes):
        uploads = [Upload(sample_pdf_bytes, "ok.pdf"), Upload(b"text", "bad.txt", "text/plain")]
        with pytest.raises(ValidationError):
            asyncio.run(session.process_many(uploads))
        assert session.records() == []

    def test_failure_does_not_affect_other_files(self, session, sample_pdf_bytes):
        uploads = [Upload(sample_pdf_bytes, "good.pdf"), Upload(b"broken", "broken.pdf")]
        records = asyncio.run(session.process_many(uploads))

        assert [r.status for r in records] == [ProcessingStatus.COMPLETED, ProcessingStatus.FAILED]


class TestStore:
    """Test cases for the keyed record store."""

    @pytest.fixture
    def populated(self, session, sample_pdf_bytes):
        asyncio.run(session.process_many([
            Upload(sample_pdf_bytes, "alpha.pdf"),
            Upload(b"broken", "beta.pdf"),
        ]))
        return session

    def test_update_replaces_processing_record(self):
        pipeline = BlockingPipeline()
        session = ProcessingSession(pipeline=pipeline)

        async def scenario():
            task = asyncio.create_task(session.process_file(b"%PDF-1.4", "slow.pdf"))
            while session.records() == [] or session.records()[0].progress < 5.0:
                await asyncio.sleep(0.01)
            record = session.records()[0]

            updated = session.update(record.id, name="renamed.pdf", progress=20.0)
            assert updated is not record
            assert session.get(record.id).name == "renamed.pdf"
            assert record.name == "slow.pdf"

            with pytest.raises(ValueError):
                session.update(record.id, progress=10.0)
            assert session.get(record.id).progress == 20.0

            session.cancel(record.id)
            return await task

        try:
            final = asyncio.run(scenario())
        finally:
            session.shutdown()

        assert final.status is ProcessingStatus.CANCELLED
        assert final.name == "renamed.pdf"

    @pytest.mark.parametrize("index", [0, 1])
    def test_final_records_cannot_change(self, populated, index):
        record = populated.records()[index]

        with pytest.raises(ValueError):
            populated.update(record.id, name="renamed.pdf")
        with pytest.raises(ValueError):
            populated.update(record.id, status=ProcessingStatus.PROCESSING,
                             notes=None, error=None, progress=3.0)
        assert populated.get(record.id) == record

    def test_update_enforces_invariants(self, populated):
        record = populated.records()[0]
        with pytest.raises(ValueError):
            populated.update(record.id, notes=None)

    def test_update_unknown(self, populated):
        with pytest.raises(KeyError):
            populated.update("missing", name="x")

    def test_search(self, populated):
        assert [r.name for r in populated.search("ALP")] == ["alpha.pdf"]
        assert [r.name for r in populated.search(status=ProcessingStatus.FAILED)] == ["beta.pdf"]
        assert len(populated.search()) == 2

    def test_delete_current_clears_selection(self, populated):
        current = populated.current_record()
        assert populated.delete(current.id)
        assert populated.current_record() is None
        assert populated.get(current.id) is None
        assert populated.delete(current.id) is False

    def test_select(self, populated):
        first = populated.records()[0]
        populated.select(first.id)
        assert populated.current_record() == first

        with pytest.raises(KeyError):
            populated.select("missing")

    def test_clear_history(self, populated):
        populated.clear_history()
        assert populated.records() == []
        assert populated.current_record() is None


class TestUpload:

    def test_from_path(self, sample_pdf_path):
        upload = Upload.from_path(sample_pdf_path)
        assert upload.name == "sample.pdf"
        assert upload.content_type == "application/pdf"
        assert upload.data.startswith(b"%PDF-")
