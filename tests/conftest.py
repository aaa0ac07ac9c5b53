"""
Shared fixtures for the test suite
"""
import io

import pytest
import PyPDF2


def build_pdf(pages: int) -> bytes:
    """Build an in-memory PDF with the given number of blank letter pages"""
    writer = PyPDF2.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_pdf():
    """Factory fixture returning PDF bytes with ``pages`` pages"""
    return build_pdf


def page_count(content: bytes) -> int:
    return len(PyPDF2.PdfReader(io.BytesIO(content)).pages)


@pytest.fixture
def count_pages():
    """Count the pages of PDF bytes"""
    return page_count
