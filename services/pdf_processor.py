"""
PDF text extraction for the question extraction endpoint
"""
import io
import logging
import re
from typing import List

import PyPDF2
import pdfplumber

from utils.exceptions import PDFProcessingError

logger = logging.getLogger(__name__)


class PDFProcessor:
    """
    Service for extracting page text from PDF bytes.
    Tries pdfplumber first and falls back to PyPDF2.
    """

    def extract_text(self, content: bytes, filename: str = "document.pdf") -> str:
        """
        Extract text content from a PDF, page by page.

        Each non-empty page is prefixed with a ``[Page n]`` marker so that
        downstream prompts can keep questions in reading order.

        Args:
            content: PDF file bytes
            filename: Name used in log and error messages

        Returns:
            Extracted text content

        Raises:
            PDFProcessingError: If no method yields any text
        """
        if not content:
            raise PDFProcessingError(f"File is empty: {filename}", filename=filename)

        # pdfplumber copes better with multi-column exam layouts
        try:
            text = self._join_pages(self._extract_with_pdfplumber(content))
            if text.strip():
                logger.info(f"Successfully extracted text using pdfplumber from {filename}")
                return text
        except Exception as e:
            logger.warning(f"pdfplumber extraction failed for {filename}: {e}")

        try:
            text = self._join_pages(self._extract_with_pypdf2(content))
            if text.strip():
                logger.info(f"Successfully extracted text using PyPDF2 from {filename}")
                return text
        except Exception as e:
            logger.warning(f"PyPDF2 extraction failed for {filename}: {e}")

        raise PDFProcessingError(
            f"Failed to extract text from {filename} using all available methods",
            filename=filename
        )

    def _extract_with_pdfplumber(self, content: bytes) -> List[str]:
        pages = []
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            if len(pdf.pages) == 0:
                raise PDFProcessingError("PDF contains no pages")

            for page_num, page in enumerate(pdf.pages, 1):
                try:
                    pages.append(self._clean_text(page.extract_text() or ""))
                except Exception as e:
                    logger.warning(f"Failed to extract text from page {page_num}: {e}")
                    pages.append("")

        return pages

    def _extract_with_pypdf2(self, content: bytes) -> List[str]:
        reader = PyPDF2.PdfReader(io.BytesIO(content))
        if len(reader.pages) == 0:
            raise PDFProcessingError("PDF contains no pages")

        pages = []
        for page_num, page in enumerate(reader.pages, 1):
            try:
                pages.append(self._clean_text(page.extract_text() or ""))
            except Exception as e:
                logger.warning(f"Failed to extract text from page {page_num}: {e}")
                pages.append("")

        return pages

    def _join_pages(self, pages: List[str]) -> str:
        return "\n\n".join(
            f"[Page {page_num}]\n{text}"
            for page_num, text in enumerate(pages, 1)
            if text.strip()
        )

    def _clean_text(self, text: str) -> str:
        """
        Clean extracted text while keeping line structure, which matters for
        numbered questions and lettered options.
        """
        if not text:
            return ""

        # Remove control characters left by some PDF producers
        text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)

        lines = [re.sub(r'[ \t]+', ' ', line).strip() for line in text.split('\n')]
        text = '\n'.join(lines)

        text = re.sub(r'\n{3,}', '\n\n', text)

        return text.strip()
