"""
Page-range splitting of large PDFs into overlapping chunks
"""
import io
import logging
from typing import List, Optional, Tuple

import PyPDF2

from config import settings
from models.extraction import PageRange
from utils.exceptions import DocumentParseError

logger = logging.getLogger(__name__)


def compute_page_ranges(total_pages: int, chunk_size: int = 5, overlap: int = 1) -> List[PageRange]:
    """
    Partition ``total_pages`` pages into fixed-size ranges sharing ``overlap`` pages.

    Args:
        total_pages: Number of pages in the document
        chunk_size: Pages per chunk
        overlap: Pages shared by consecutive chunks

    Returns:
        Ordered page ranges covering pages 1..total_pages
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(f"overlap must be in [0, {chunk_size}), got {overlap}")
    if total_pages < 1:
        raise ValueError(f"total_pages must be positive, got {total_pages}")

    if total_pages <= chunk_size:
        return [PageRange(1, total_pages)]

    ranges = []
    start = 1
    while True:
        end = min(start + chunk_size - 1, total_pages)
        ranges.append(PageRange(start, end))
        if end >= total_pages:
            break
        start = end - overlap + 1

    return ranges


class PDFSplitter:
    """
    Splits a PDF into overlapping page-range chunks, each re-encoded as a
    standalone PDF document.
    """

    def __init__(self, chunk_size: Optional[int] = None, overlap: Optional[int] = None):
        self.chunk_size = chunk_size if chunk_size is not None else settings.chunk_size_pages
        self.overlap = overlap if overlap is not None else settings.chunk_overlap_pages

        # Fail fast on an impossible configuration
        compute_page_ranges(1, self.chunk_size, self.overlap)

    def split(self, content: bytes, filename: str = "document.pdf") -> List[Tuple[bytes, PageRange]]:
        """
        Split PDF bytes into (chunk bytes, page range) pairs.

        Documents with no more pages than the chunk size are passed through
        unchanged as a single chunk.

        Raises:
            DocumentParseError: If the PDF cannot be read or written
        """
        reader = self._load(content, filename)
        total_pages = len(reader.pages)

        logger.info(
            f"PDF {filename} has {total_pages} pages, splitting into chunks of "
            f"{self.chunk_size} with {self.overlap} overlap"
        )

        ranges = compute_page_ranges(total_pages, self.chunk_size, self.overlap)
        if len(ranges) == 1:
            return [(content, ranges[0])]

        chunks = []
        for index, page_range in enumerate(ranges):
            chunk_bytes = self._write_pages(reader, page_range, filename)
            chunks.append((chunk_bytes, page_range))
            logger.debug(f"Created chunk {index + 1} of {filename}: pages {page_range.label}")

        return chunks

    def _load(self, content: bytes, filename: str) -> PyPDF2.PdfReader:
        try:
            reader = PyPDF2.PdfReader(io.BytesIO(content))
            page_count = len(reader.pages)
        except Exception as e:
            logger.error(f"Error reading PDF {filename}: {e}")
            raise DocumentParseError(
                f"Failed to split PDF by pages: {e}",
                filename=filename,
                original_exception=e
            ) from e

        if page_count == 0:
            raise DocumentParseError("Failed to split PDF by pages: PDF contains no pages", filename=filename)

        return reader

    def _write_pages(self, reader: PyPDF2.PdfReader, page_range: PageRange, filename: str) -> bytes:
        writer = PyPDF2.PdfWriter()
        try:
            # PdfReader pages are 0-indexed
            for page_index in range(page_range.start - 1, page_range.end):
                writer.add_page(reader.pages[page_index])

            buffer = io.BytesIO()
            writer.write(buffer)
        except Exception as e:
            logger.error(f"Error writing pages {page_range.label} of {filename}: {e}")
            raise DocumentParseError(
                f"Failed to split PDF by pages: {e}",
                filename=filename,
                original_exception=e
            ) from e

        return buffer.getvalue()
