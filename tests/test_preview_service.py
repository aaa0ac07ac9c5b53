"""
Tests for the preview service and PDF text extraction
"""
import pytest
from unittest.mock import Mock

from models.api import PreviewData
from services.llm_service import ExtractionResponse
from services.pdf_processor import PDFProcessor
from services.preview_service import PreviewUpload, QuizPreviewService, to_preview_question
from utils.exceptions import (
    ErrorCode, FileHandlingError, LLMServiceError, PDFProcessingError,
    QuizExtractorException, ValidationError
)


class TestToPreviewQuestion:
    """Test conversion of raw LLM questions into the preview form"""

    def test_single_choice(self):
        converted = to_preview_question({
            "question": "Red planet?",
            "options": ["Venus", "Mars"],
            "type": "single",
            "correctIndex": 1
        })

        assert converted == {
            "question": "Red planet?",
            "options": ["Venus", "Mars"],
            "type": "single",
            "correctAnswer": 1,
            "originalCorrectIndex": 1,
            "correctIndex": 1,
        }

    def test_multiple_choice(self):
        converted = to_preview_question({
            "question": "Primes?",
            "options": ["2", "3", "4"],
            "type": "multiple",
            "correctIndexes": [0, 1]
        })

        assert converted["type"] == "multiple"
        assert converted["correctAnswer"] == 0
        assert converted["correctIndexes"] == [0, 1]
        assert converted["originalCorrectIndexes"] == [0, 1]
        assert "correctIndex" not in converted

    def test_missing_answer_defaults_to_zero(self):
        converted = to_preview_question({"question": "Q", "options": ["a", "b"]})

        assert converted["type"] == "single"
        assert converted["correctAnswer"] == 0
        assert converted["correctIndex"] == 0
        assert "originalCorrectIndex" not in converted

    def test_negative_index_falls_back(self):
        converted = to_preview_question({
            "question": "Q", "options": ["a", "b"], "correctIndex": -1, "correctIndexes": [1]
        })

        assert converted["correctAnswer"] == 1
        assert converted["originalCorrectIndex"] == -1

    def test_images_passed_through(self):
        converted = to_preview_question({
            "question": "Q", "options": ["a"], "correctIndex": 0,
            "questionImage": "q.png", "optionImages": ["a.png"]
        })

        assert converted["questionImage"] == "q.png"
        assert converted["optionImages"] == ["a.png"]


class TestQuizPreviewService:
    """Test request validation and preview assembly"""

    def setup_method(self):
        self.pdf_processor = Mock(spec=PDFProcessor)
        self.pdf_processor.extract_text.side_effect = lambda content, filename: f"[Page 1]\n{filename}"
        self.extraction_service = Mock()
        self.extraction_service.extract_questions.side_effect = lambda text, filename: ExtractionResponse(
            questions=[{"question": f"From {filename}", "options": ["a", "b"], "type": "single", "correctIndex": 1}],
            model_used="test-model"
        )
        self.service = QuizPreviewService(
            pdf_processor=self.pdf_processor,
            extraction_service=self.extraction_service,
            max_workers=2,
            max_file_size_mb=1
        )

    def upload(self, name="exam.pdf", content=b"%PDF-1.4 data", content_type="application/pdf"):
        return PreviewUpload(filename=name, content=content, content_type=content_type)

    def test_build_preview(self):
        uploads = [self.upload("a.pdf"), self.upload("b.pdf"), self.upload("c.pdf")]

        preview = self.service.build_preview("Exam", "Final", uploads)

        assert isinstance(preview, PreviewData)
        assert [q["question"] for q in preview.questions] == ["From a.pdf", "From b.pdf", "From c.pdf"]
        assert preview.original_file_name == "a.pdf, b.pdf, c.pdf"
        assert preview.file_count == 3
        assert preview.file_names == ["a.pdf", "b.pdf", "c.pdf"]
        assert preview.file_size == 3 * len(b"%PDF-1.4 data")
        assert preview.chunk_index is None

    def test_chunk_metadata_echoed(self):
        preview = self.service.build_preview(
            "Exam", "", [self.upload()],
            {"chunk_index": 1, "total_chunks": 3, "page_range": {"start": 5, "end": 9}}
        )

        assert preview.chunk_index == 1
        assert preview.total_chunks == 3
        assert preview.page_range == {"start": 5, "end": 9}

    def test_title_required(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.build_preview("  ", "", [self.upload()])

        assert exc_info.value.message == "Title and at least one PDF file are required"

    def test_files_required(self):
        with pytest.raises(ValidationError):
            self.service.build_preview("Exam", "", [])

    def test_pdf_by_extension_accepted(self):
        self.service.validate_request("Exam", [self.upload("exam.PDF", content_type="application/octet-stream")])

    def test_non_pdf_rejected(self):
        with pytest.raises(FileHandlingError) as exc_info:
            self.service.validate_request("Exam", [self.upload("notes.docx", content_type="application/msword")])

        assert exc_info.value.error_code == ErrorCode.INVALID_FILE_TYPE
        assert exc_info.value.message == "File 'notes.docx' is not a PDF file"

    def test_empty_file_rejected(self):
        with pytest.raises(FileHandlingError) as exc_info:
            self.service.validate_request("Exam", [self.upload(content=b"")])

        assert exc_info.value.error_code == ErrorCode.EMPTY_FILE

    def test_too_large_rejected(self):
        with pytest.raises(FileHandlingError) as exc_info:
            self.service.validate_request("Exam", [self.upload(content=b"x" * (1024 * 1024 + 1))])

        assert exc_info.value.error_code == ErrorCode.FILE_TOO_LARGE
        assert exc_info.value.message == "File 'exam.pdf' size must be less than 1MB"

    def test_no_questions(self):
        self.extraction_service.extract_questions.side_effect = None
        self.extraction_service.extract_questions.return_value = ExtractionResponse(questions=[])

        with pytest.raises(QuizExtractorException) as exc_info:
            self.service.build_preview("Exam", "", [self.upload()])

        assert exc_info.value.error_code == ErrorCode.NO_QUESTIONS_EXTRACTED
        assert exc_info.value.message == "Could not extract questions from PDF"

    def test_llm_errors_propagate(self):
        self.extraction_service.extract_questions.side_effect = LLMServiceError(
            "LLM service request timed out. Please try again.", error_code=ErrorCode.LLM_TIMEOUT
        )

        with pytest.raises(LLMServiceError):
            self.service.build_preview("Exam", "", [self.upload()])


class TestPDFProcessor:
    """Test PDF text extraction"""

    def setup_method(self):
        self.processor = PDFProcessor()

    def test_empty_content(self):
        with pytest.raises(PDFProcessingError):
            self.processor.extract_text(b"", "empty.pdf")

    def test_blank_pages_have_no_text(self, make_pdf):
        with pytest.raises(PDFProcessingError) as exc_info:
            self.processor.extract_text(make_pdf(2), "blank.pdf")

        assert exc_info.value.error_code == ErrorCode.PDF_PROCESSING_FAILED
        assert exc_info.value.details["filename"] == "blank.pdf"

    def test_invalid_pdf(self):
        with pytest.raises(PDFProcessingError):
            self.processor.extract_text(b"not a pdf at all", "broken.pdf")

    def test_page_markers(self):
        text = self.processor._join_pages(["1. First question", "", "2. Second question"])

        assert text == "[Page 1]\n1. First question\n\n[Page 3]\n2. Second question"

    def test_clean_text_keeps_lines(self):
        cleaned = self.processor._clean_text("1.  What\tis\x07 this?\n\n\n\nA)  one\nB) two ")

        assert cleaned == "1. What is this?\n\nA) one\nB) two"
