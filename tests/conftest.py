"""
Shared fixtures: small PDFs built on the fly with PyMuPDF.
"""

import os
import sys
from typing import Iterable, List, Optional

import pytest
import fitz  # PyMuPDF

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

PAGE_ONE = (
    "INTRODUCTION\n"
    "This finding is significant for future research.\n"
    "Figure 1: Revenue growth\n"
    "Table 2 shows quarterly results"
)
PAGE_TWO = (
    "Methodology\n"
    "The study collected data from 120 participants over six months. "
    "Analysis shows a clear trend in the results."
)

ENV_VARS = [
    "NOTETAKER_OUTPUT_DIR",
    "NOTETAKER_LOG_LEVEL",
    "NOTETAKER_LOG_FILE",
    "NOTETAKER_MAX_FILE_SIZE_MB",
    "NOTETAKER_MAX_WORKERS",
    "NOTETAKER_DEBUG",
]


def build_pdf(
    pages: List[Optional[str]],
    image_pages: Iterable[int] = (),
    user_password: Optional[str] = None
) -> bytes:
    """Create a PDF with one page per entry; None or "" leaves the page blank."""
    image_pages = set(image_pages)
    doc = fitz.open()

    for index, text in enumerate(pages):
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11, fontname="helv")
        if index in image_pages:
            pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 16, 16), False)
            pix.clear_with(200)
            page.insert_image(fitz.Rect(72, 400, 172, 500), pixmap=pix)

    if user_password:
        data = doc.tobytes(
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner-secret",
            user_pw=user_password
        )
    else:
        data = doc.tobytes()

    doc.close()
    return data


@pytest.fixture
def pdf_factory():
    return build_pdf


@pytest.fixture
def sample_pdf_bytes():
    return build_pdf([PAGE_ONE, PAGE_TWO])


@pytest.fixture
def sample_pdf_path(tmp_path, sample_pdf_bytes):
    path = tmp_path / "sample.pdf"
    path.write_bytes(sample_pdf_bytes)
    return path


@pytest.fixture
def clean_env(monkeypatch):
    """Isolate tests from NOTETAKER_* variables, including ones loaded from .env files."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in ENV_VARS:
        os.environ.pop(name, None)
