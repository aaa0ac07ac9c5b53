"""
Quiz preview service: question extraction behind the preview endpoint

Whole uploaded files are extracted concurrently, each one going through
PDF text extraction and LLM question extraction, and the raw questions are
converted into the preview form consumed by the review screen and by the
chunk uploader.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import settings
from models.api import PreviewData
from services.llm_service import QuestionExtractionService
from services.pdf_processor import PDFProcessor
from utils.exceptions import (
    ErrorCode, FileHandlingError, ValidationError,
    create_file_too_large_error, create_invalid_file_type_error, create_no_questions_error
)
from utils.error_handlers import log_processing_step, log_performance_metric

logger = logging.getLogger(__name__)


@dataclass
class PreviewUpload:
    """A PDF received by the preview endpoint"""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_preview_question(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a raw LLM question into the preview wire form.

    ``correctAnswer`` always carries a usable index: the declared
    ``correctIndex`` when it is a non-negative number, otherwise the first
    of ``correctIndexes``, otherwise 0. The original answer fields are kept
    alongside for clients that prefer them.
    """
    correct_index = raw.get("correctIndex")
    correct_indexes = raw.get("correctIndexes")
    question_type = raw.get("type") or "single"

    if _is_number(correct_index) and correct_index >= 0:
        correct_answer = int(correct_index)
    elif isinstance(correct_indexes, list) and correct_indexes:
        correct_answer = correct_indexes[0]
    else:
        logger.warning(f"No valid correct answer found for {str(raw.get('question'))[:50]!r}, defaulting to 0")
        correct_answer = 0

    converted = {
        "question": raw.get("question"),
        "options": raw.get("options"),
        "type": question_type,
        "correctAnswer": correct_answer,
        "originalCorrectIndex": correct_index,
        "originalCorrectIndexes": correct_indexes,
    }
    if question_type == "single":
        converted["correctIndex"] = correct_index if correct_index is not None else correct_answer
    elif question_type == "multiple":
        converted["correctIndexes"] = correct_indexes

    for image_field in ("questionImage", "optionImages"):
        if raw.get(image_field) is not None:
            converted[image_field] = raw[image_field]

    return {key: value for key, value in converted.items() if value is not None}


class QuizPreviewService:
    """
    Extracts preview questions from uploaded PDFs.
    """

    def __init__(
        self,
        pdf_processor: Optional[PDFProcessor] = None,
        extraction_service: Optional[QuestionExtractionService] = None,
        max_workers: Optional[int] = None,
        max_file_size_mb: Optional[int] = None
    ):
        self.pdf_processor = pdf_processor or PDFProcessor()
        self.extraction_service = extraction_service or QuestionExtractionService()
        self.max_workers = max_workers or settings.max_concurrent_requests
        self.max_file_size = (max_file_size_mb or settings.max_file_size_mb) * 1024 * 1024

        logger.info(f"QuizPreviewService initialized with {self.max_workers} workers")

    def validate_request(self, title: str, uploads: List[PreviewUpload]) -> None:
        """
        Validate the title and the uploaded files.

        Raises:
            ValidationError: If the title or the files are missing
            FileHandlingError: If a file is not a PDF, is empty or is too large
        """
        if not title or not title.strip() or not uploads:
            raise ValidationError(
                message="Title and at least one PDF file are required",
                field_name="title" if uploads else "pdfFile_0"
            )

        for upload in uploads:
            is_pdf = upload.content_type == "application/pdf" or upload.filename.lower().endswith(".pdf")
            if not is_pdf:
                raise create_invalid_file_type_error(upload.filename)

            if upload.size == 0:
                raise FileHandlingError(
                    message=f"File '{upload.filename}' is empty",
                    filename=upload.filename,
                    file_size=0,
                    error_code=ErrorCode.EMPTY_FILE
                )

            if upload.size > self.max_file_size:
                raise create_file_too_large_error(upload.filename, upload.size, self.max_file_size)

    def extract_file(self, upload: PreviewUpload) -> List[Dict[str, Any]]:
        """Extract raw questions from one uploaded PDF"""
        log_processing_step("preview_file", {"file": upload.filename, "size": upload.size})

        text = self.pdf_processor.extract_text(upload.content, upload.filename)
        response = self.extraction_service.extract_questions(text, upload.filename)

        if response.questions:
            logger.info(f"Extracted {len(response.questions)} questions from {upload.filename}")
        else:
            logger.warning(f"No questions extracted from {upload.filename}")

        return response.questions

    def build_preview(
        self,
        title: str,
        description: str,
        uploads: List[PreviewUpload],
        chunk_metadata: Optional[Dict[str, Any]] = None
    ) -> PreviewData:
        """
        Validate the uploads, extract their questions and build the preview.

        Args:
            title: Quiz title
            description: Quiz description
            uploads: Uploaded PDFs, in form order
            chunk_metadata: Optional chunkIndex/totalChunks/pageRange echoed back

        Returns:
            PreviewData with questions in upload order
        """
        start_time = time.time()
        self.validate_request(title, uploads)

        workers = min(self.max_workers, len(uploads))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            per_file_questions = list(executor.map(self.extract_file, uploads))

        raw_questions = [question for questions in per_file_questions for question in questions]
        file_names = [upload.filename for upload in uploads]

        if not raw_questions:
            raise create_no_questions_error(file_names)

        questions = [to_preview_question(raw) for raw in raw_questions]

        duration_ms = int((time.time() - start_time) * 1000)
        log_performance_metric("quiz_preview", duration_ms, {
            "files": len(uploads),
            "questions": len(questions)
        })

        return PreviewData(
            title=title,
            description=description or "",
            questions=questions,
            original_file_name=", ".join(file_names),
            file_size=sum(upload.size for upload in uploads),
            file_count=len(uploads),
            file_names=file_names,
            **(chunk_metadata or {})
        )
