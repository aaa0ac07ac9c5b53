"""
Tests for page-range splitting of large PDFs
"""
import pytest
from hypothesis import given, strategies as st

from models.extraction import PageRange
from services.pdf_splitter import PDFSplitter, compute_page_ranges
from utils.exceptions import DocumentParseError, ErrorCode


class TestComputePageRanges:
    """Test the page range arithmetic"""

    def test_twelve_pages(self):
        """12 pages split into 5-page chunks sharing one page"""
        ranges = compute_page_ranges(12, chunk_size=5, overlap=1)

        assert ranges == [PageRange(1, 5), PageRange(5, 9), PageRange(9, 12)]

    def test_small_document_single_range(self):
        assert compute_page_ranges(3) == [PageRange(1, 3)]
        assert compute_page_ranges(5) == [PageRange(1, 5)]

    def test_six_pages(self):
        assert compute_page_ranges(6) == [PageRange(1, 5), PageRange(5, 6)]

    def test_no_overlap(self):
        ranges = compute_page_ranges(10, chunk_size=5, overlap=0)

        assert ranges == [PageRange(1, 5), PageRange(6, 10)]

    @pytest.mark.parametrize("total_pages,chunk_size,overlap", [
        (10, 0, 0),
        (10, 5, 5),
        (10, 5, -1),
        (0, 5, 1),
    ])
    def test_invalid_configuration(self, total_pages, chunk_size, overlap):
        with pytest.raises(ValueError):
            compute_page_ranges(total_pages, chunk_size, overlap)

    @given(
        st.integers(min_value=1, max_value=500),
        st.integers(min_value=1, max_value=20),
        st.data()
    )
    def test_ranges_cover_every_page(self, total_pages, chunk_size, data):
        """Every page lands in at least one chunk and ranges stay in bounds"""
        overlap = data.draw(st.integers(min_value=0, max_value=chunk_size - 1))

        ranges = compute_page_ranges(total_pages, chunk_size, overlap)

        assert ranges[0].start == 1
        assert ranges[-1].end == total_pages
        covered = set()
        for page_range in ranges:
            assert 1 <= page_range.start <= page_range.end <= total_pages
            assert page_range.page_count <= chunk_size
            covered.update(range(page_range.start, page_range.end + 1))
        assert covered == set(range(1, total_pages + 1))

    @given(
        st.integers(min_value=1, max_value=500),
        st.integers(min_value=1, max_value=20),
        st.data()
    )
    def test_consecutive_ranges_share_overlap(self, total_pages, chunk_size, data):
        overlap = data.draw(st.integers(min_value=0, max_value=chunk_size - 1))

        ranges = compute_page_ranges(total_pages, chunk_size, overlap)

        for previous, current in zip(ranges, ranges[1:]):
            assert current.start == previous.end - overlap + 1
            assert previous.page_count == chunk_size

    @given(st.integers(min_value=1, max_value=5))
    def test_no_split_up_to_chunk_size(self, total_pages):
        assert compute_page_ranges(total_pages) == [PageRange(1, total_pages)]


class TestPDFSplitter:
    """Test PDF splitting with real documents"""

    def setup_method(self):
        self.splitter = PDFSplitter(chunk_size=5, overlap=1)

    def test_split_twelve_page_pdf(self, make_pdf, count_pages):
        content = make_pdf(12)

        chunks = self.splitter.split(content, "exam.pdf")

        assert [page_range for _, page_range in chunks] == [
            PageRange(1, 5), PageRange(5, 9), PageRange(9, 12)
        ]
        assert [count_pages(chunk_bytes) for chunk_bytes, _ in chunks] == [5, 5, 4]

    def test_small_pdf_passed_through_unchanged(self, make_pdf):
        content = make_pdf(4)

        chunks = self.splitter.split(content, "short.pdf")

        assert len(chunks) == 1
        assert chunks[0][0] is content
        assert chunks[0][1] == PageRange(1, 4)

    def test_invalid_pdf_raises_parse_error(self):
        with pytest.raises(DocumentParseError) as exc_info:
            self.splitter.split(b"definitely not a pdf", "broken.pdf")

        assert exc_info.value.error_code == ErrorCode.DOCUMENT_PARSE_FAILED
        assert exc_info.value.details["filename"] == "broken.pdf"
        assert "Failed to split PDF by pages" in exc_info.value.message

    def test_empty_pdf_raises_parse_error(self, make_pdf):
        with pytest.raises(DocumentParseError):
            self.splitter.split(make_pdf(0), "empty.pdf")

    def test_invalid_configuration_fails_fast(self):
        with pytest.raises(ValueError):
            PDFSplitter(chunk_size=3, overlap=3)

    def test_defaults_from_settings(self):
        splitter = PDFSplitter()

        assert splitter.chunk_size == 5
        assert splitter.overlap == 1
