"""
Processing Session

Tracks uploaded files through processing. Each file runs the notes pipeline
on a worker thread; progress events travel back to the event loop through an
asyncio queue and are applied in order. The session store is only mutated on
the event loop, by replacing a record under its id.
"""

import asyncio
import logging
import mimetypes
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .assembler import NotesDocument
from .config import NotetakerConfig
from .pdf_extractor import ProcessingCancelled
from .pipeline import NotesPipeline, ProgressEvent, COMPLETE

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
FILE_TOO_LARGE_MESSAGE = "File size must be less than {limit}MB"
UNSUPPORTED_TYPE_MESSAGE = ("Please upload a PDF file. Other formats are not currently "
                            "supported for content extraction.")
DEFAULT_FAILURE_MESSAGE = "Processing failed"


class ValidationError(ValueError):
    """Raised when an upload is rejected before processing starts."""
    pass


class ProcessingStatus(Enum):
    """Lifecycle status of an uploaded file."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProcessingRecord:
    """Snapshot of one uploaded file; replaced, never mutated."""
    id: str
    name: str
    size: int
    content_type: str
    upload_date: datetime
    status: ProcessingStatus
    progress: float
    current_page: Optional[int] = None
    processing_stage: Optional[str] = None
    notes: Optional[NotesDocument] = None
    error: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.progress <= COMPLETE:
            raise ValueError(f"progress out of range: {self.progress}")
        if (self.notes is not None) != (self.status is ProcessingStatus.COMPLETED):
            raise ValueError(f"notes must be present exactly when completed (status={self.status.value})")
        if (self.error is not None) != (self.status is ProcessingStatus.FAILED):
            raise ValueError(f"error must be present exactly when failed (status={self.status.value})")
        if self.status is ProcessingStatus.COMPLETED and self.progress != COMPLETE:
            raise ValueError("completed records must have progress 100")
        if self.status in (ProcessingStatus.FAILED, ProcessingStatus.CANCELLED) and self.progress != 0:
            raise ValueError(f"{self.status.value} records must have progress 0")


@dataclass(frozen=True)
class Upload:
    """Bytes of one file together with its display name and content type."""
    data: bytes
    name: str
    content_type: str = PDF_CONTENT_TYPE

    @classmethod
    def from_path(cls, path) -> 'Upload':
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(data=path.read_bytes(), name=path.name, content_type=content_type)


class ProcessingSession:
    """
    In-memory history of processed files.

    Files are independent: several may be processed concurrently, pages of a
    single file are always processed in order.
    """

    def __init__(
        self,
        pipeline: Optional[NotesPipeline] = None,
        config: Optional[NotetakerConfig] = None,
        on_update: Optional[Callable[[ProcessingRecord], None]] = None
    ):
        """
        Initialize the session.

        Args:
            pipeline: Notes pipeline; built from config when omitted
            config: Notetaker configuration
            on_update: Called on the event loop with every new record snapshot
        """
        self.config = config or NotetakerConfig()
        self.pipeline = pipeline or NotesPipeline(self.config.pipeline_config())
        self.on_update = on_update
        self.executor = ThreadPoolExecutor(max_workers=self.config.session.max_workers)

        self._records: Dict[str, ProcessingRecord] = {}
        self._cancel_events: Dict[str, threading.Event] = {}
        self._current_id: Optional[str] = None

    def validate_upload(self, name: str, size: int, content_type: str):
        """
        Reject uploads that cannot be processed.

        Raises:
            ValidationError: If the file is too large or not a PDF
        """
        session_config = self.config.session
        if size > session_config.max_file_size_bytes:
            logger.warning(f"Rejected {name}: {size} bytes exceeds the upload limit")
            raise ValidationError(FILE_TOO_LARGE_MESSAGE.format(limit=session_config.max_file_size_mb))
        if content_type not in session_config.allowed_content_types:
            logger.warning(f"Rejected {name}: unsupported content type {content_type}")
            raise ValidationError(UNSUPPORTED_TYPE_MESSAGE)

    async def process_file(
        self,
        data: bytes,
        name: str,
        content_type: str = PDF_CONTENT_TYPE
    ) -> ProcessingRecord:
        """
        Process one uploaded file to a terminal record.

        Args:
            data: Raw file bytes
            name: Display name of the file
            content_type: MIME type reported for the upload

        Returns:
            The completed, failed or cancelled record

        Raises:
            ValidationError: If the upload is rejected; no record is created
        """
        self.validate_upload(name, len(data), content_type)

        record = ProcessingRecord(
            id=str(uuid.uuid4()),
            name=name,
            size=len(data),
            content_type=content_type,
            upload_date=datetime.now(),
            status=ProcessingStatus.PROCESSING,
            progress=0.0
        )
        self._store(record)
        self._current_id = record.id

        cancel_event = threading.Event()
        self._cancel_events[record.id] = cancel_event

        loop = asyncio.get_running_loop()
        events: asyncio.Queue = asyncio.Queue()

        def on_progress(progress: float, stage: str, current_page: Optional[int]):
            loop.call_soon_threadsafe(events.put_nowait, ProgressEvent(progress, stage, current_page))

        consumer = asyncio.create_task(self._apply_progress(record.id, events))

        logger.info(f"Processing {name} ({len(data)} bytes) as record {record.id}")

        notes = None
        error = None
        cancelled = False
        try:
            notes = await loop.run_in_executor(
                self.executor,
                self.pipeline.process,
                data,
                name,
                on_progress,
                cancel_event.is_set
            )
        except ProcessingCancelled:
            cancelled = True
        except Exception as e:
            error = str(e) or DEFAULT_FAILURE_MESSAGE
            logger.error(f"Processing failed for {name}: {error}")
        finally:
            # Every progress event was queued before the worker returned
            events.put_nowait(None)
            await consumer
            self._cancel_events.pop(record.id, None)

        current = self._records.get(record.id, record)
        if current.status is not ProcessingStatus.PROCESSING:
            return current
        if cancelled:
            final = replace(current, status=ProcessingStatus.CANCELLED, progress=0.0,
                            processing_stage="Cancelled")
            logger.info(f"Cancelled processing of {name}")
        elif error is not None:
            final = replace(current, status=ProcessingStatus.FAILED, progress=0.0, error=error)
        else:
            final = replace(current, status=ProcessingStatus.COMPLETED, progress=COMPLETE,
                            notes=notes)
            logger.info(f"Completed {name}: {len(notes.sections)} sections")

        if record.id in self._records:
            self._store(final)
        return final

    async def process_many(self, uploads: Iterable[Upload]) -> List[ProcessingRecord]:
        """
        Process several files concurrently.

        All uploads are validated before any processing starts.

        Returns:
            Terminal records in the order of ``uploads``
        """
        uploads = list(uploads)
        for upload in uploads:
            self.validate_upload(upload.name, len(upload.data), upload.content_type)

        logger.info(f"Processing {len(uploads)} files")
        return list(await asyncio.gather(
            *(self.process_file(u.data, u.name, u.content_type) for u in uploads)
        ))

    def cancel(self, record_id: str) -> bool:
        """
        Request cancellation; takes effect at the next page boundary.

        Returns:
            True if the record was still processing
        """
        cancel_event = self._cancel_events.get(record_id)
        if cancel_event is None:
            return False
        cancel_event.set()
        logger.info(f"Cancellation requested for record {record_id}")
        return True

    def get(self, record_id: str) -> Optional[ProcessingRecord]:
        return self._records.get(record_id)

    def records(self) -> List[ProcessingRecord]:
        """History in upload order."""
        return list(self._records.values())

    def search(self, term: str = "", status: Optional[ProcessingStatus] = None) -> List[ProcessingRecord]:
        """History entries whose name contains ``term`` (case-insensitive), optionally by status."""
        term = term.lower()
        return [
            record for record in self._records.values()
            if term in record.name.lower() and (status is None or record.status is status)
        ]

    def current_record(self) -> Optional[ProcessingRecord]:
        if self._current_id is None:
            return None
        return self._records.get(self._current_id)

    def select(self, record_id: Optional[str]):
        """Make an existing record current, or clear the selection with None."""
        if record_id is not None and record_id not in self._records:
            raise KeyError(f"Unknown record: {record_id}")
        self._current_id = record_id

    def update(self, record_id: str, **changes) -> ProcessingRecord:
        """
        Replace a processing record with a copy carrying ``changes``.

        Completed, failed and cancelled records are final.

        Raises:
            KeyError: If no record has this id
            ValueError: If the record is final, progress would decrease,
                or the new record breaks the status invariants
        """
        if record_id not in self._records:
            raise KeyError(f"Unknown record: {record_id}")
        current = self._records[record_id]
        if current.status is not ProcessingStatus.PROCESSING:
            raise ValueError(f"Record {record_id} is {current.status.value} and can no longer change")
        if changes.get('progress', current.progress) < current.progress:
            raise ValueError(f"progress cannot decrease from {current.progress} to {changes['progress']}")
        record = replace(current, **changes)
        self._store(record)
        return record

    def delete(self, record_id: str) -> bool:
        if record_id not in self._records:
            return False
        del self._records[record_id]
        if self._current_id == record_id:
            self._current_id = None
        logger.info(f"Deleted record {record_id}")
        return True

    def clear_history(self):
        self._records.clear()
        self._current_id = None
        logger.info("Cleared processing history")

    def shutdown(self):
        """Stop the worker threads."""
        self.executor.shutdown(wait=True)

    async def _apply_progress(self, record_id: str, events: asyncio.Queue):
        while True:
            event = await events.get()
            if event is None:
                return
            record = self._records.get(record_id)
            if record is None or record.status is not ProcessingStatus.PROCESSING:
                continue
            if event.progress < record.progress:
                logger.debug(f"Ignoring stale progress {event.progress:.1f} for {record_id}")
                continue
            self._store(replace(
                record,
                progress=event.progress,
                processing_stage=event.stage,
                current_page=event.current_page
            ))

    def _store(self, record: ProcessingRecord):
        self._records[record.id] = record
        if self.on_update:
            try:
                self.on_update(record)
            except Exception as e:
                logger.error(f"Update listener failed for record {record.id}: {e}")
