"""
Custom exception classes for the Quiz PDF Extractor

This module defines all custom exceptions used throughout the application,
providing structured error handling with proper error codes and messages.
"""
import time
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorCode(Enum):
    """Enumeration of error codes for consistent error handling"""

    # General errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # File handling errors
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    EMPTY_FILE = "EMPTY_FILE"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Document processing errors
    DOCUMENT_PROCESSING_FAILED = "DOCUMENT_PROCESSING_FAILED"
    DOCUMENT_PARSE_FAILED = "DOCUMENT_PARSE_FAILED"
    PDF_PROCESSING_FAILED = "PDF_PROCESSING_FAILED"

    # Extraction pipeline errors
    CHUNK_UPLOAD_FAILED = "CHUNK_UPLOAD_FAILED"
    FILE_EXTRACTION_FAILED = "FILE_EXTRACTION_FAILED"
    NO_QUESTIONS_EXTRACTED = "NO_QUESTIONS_EXTRACTED"

    # LLM errors
    LLM_SERVICE_UNAVAILABLE = "LLM_SERVICE_UNAVAILABLE"
    LLM_API_ERROR = "LLM_API_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    INVALID_LLM_RESPONSE = "INVALID_LLM_RESPONSE"


class QuizExtractorException(Exception):
    """
    Base exception class for all Quiz PDF Extractor errors

    Provides structured error information with error codes, messages,
    and optional details for debugging and user feedback.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize the exception

        Args:
            message: Human-readable error message
            error_code: Structured error code for programmatic handling
            details: Optional dictionary with additional error details
            original_exception: Original exception that caused this error (if any)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for API responses

        Returns:
            Dictionary representation of the error
        """
        error_dict = {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict

    def __str__(self) -> str:
        """String representation of the exception"""
        return f"{self.error_code.value}: {self.message}"


class FileHandlingError(QuizExtractorException):
    """Exception for uploaded file validation"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        file_size: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.INVALID_FILE_TYPE,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if filename:
            details["filename"] = filename
        if file_size is not None:
            details["file_size"] = file_size

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class DocumentProcessingError(QuizExtractorException):
    """Exception for document processing operations"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        processing_stage: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.DOCUMENT_PROCESSING_FAILED,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if filename:
            details["filename"] = filename
        if processing_stage:
            details["processing_stage"] = processing_stage

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class DocumentParseError(DocumentProcessingError):
    """Raised when a PDF cannot be loaded or split into page chunks"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            filename=filename,
            processing_stage="page_splitting",
            error_code=ErrorCode.DOCUMENT_PARSE_FAILED,
            original_exception=original_exception
        )


class PDFProcessingError(DocumentProcessingError):
    """Exception for PDF text extraction"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        page_number: Optional[int] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            filename=filename,
            processing_stage="pdf_extraction",
            error_code=ErrorCode.PDF_PROCESSING_FAILED,
            original_exception=original_exception
        )

        if page_number is not None:
            self.details["page_number"] = page_number


class ChunkUploadError(QuizExtractorException):
    """
    A single attempt to extract questions from a chunk failed.

    Raised inside the chunk uploader's retry loop only; once the retry budget
    is spent the failure is recorded on the ChunkResult instead.
    """

    def __init__(
        self,
        message: str,
        chunk_index: Optional[int] = None,
        filename: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if chunk_index is not None:
            details["chunk_index"] = chunk_index
        if filename:
            details["filename"] = filename
        if status_code is not None:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            error_code=ErrorCode.CHUNK_UPLOAD_FAILED,
            details=details,
            original_exception=original_exception
        )


class FileExtractionError(QuizExtractorException):
    """A whole source file could not produce any questions"""

    def __init__(
        self,
        message: str,
        filename: str,
        failed_chunks: Optional[List[int]] = None,
        cause: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {"filename": filename}
        if failed_chunks:
            details["failed_chunks"] = failed_chunks
        if cause:
            details["cause"] = cause

        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_EXTRACTION_FAILED,
            details=details,
            original_exception=original_exception
        )
        self.filename = filename


class LLMServiceError(QuizExtractorException):
    """Exception for LLM service operations"""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        tokens_used: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.LLM_API_ERROR,
        original_exception: Optional[Exception] = None
    ):
        details = {"processing_stage": "question_extraction"}
        if model_name:
            details["model_name"] = model_name
        if tokens_used is not None:
            details["tokens_used"] = tokens_used

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class ValidationError(QuizExtractorException):
    """Exception for input validation errors"""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        validation_rule: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            # Convert to string and truncate for safety
            value_str = str(field_value)
            details["field_value"] = value_str[:100] + "..." if len(value_str) > 100 else value_str
        if validation_rule:
            details["validation_rule"] = validation_rule

        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            original_exception=original_exception
        )


# Convenience functions for creating common exceptions

def create_file_too_large_error(filename: str, file_size: int, max_size: int) -> FileHandlingError:
    """Create a file too large error"""
    return FileHandlingError(
        message=f"File '{filename}' size must be less than {max_size // (1024 * 1024)}MB",
        filename=filename,
        file_size=file_size,
        error_code=ErrorCode.FILE_TOO_LARGE
    )


def create_invalid_file_type_error(filename: str) -> FileHandlingError:
    """Create an invalid file type error"""
    return FileHandlingError(
        message=f"File '{filename}' is not a PDF file",
        filename=filename,
        error_code=ErrorCode.INVALID_FILE_TYPE
    )


def create_no_questions_error(file_names: List[str]) -> QuizExtractorException:
    """Create an error for documents that yielded no questions"""
    return QuizExtractorException(
        message="Could not extract questions from PDF",
        error_code=ErrorCode.NO_QUESTIONS_EXTRACTED,
        details={"file_names": file_names}
    )
