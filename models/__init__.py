"""
Data models for the Quiz PDF Extractor
"""

from .question import Question, QuestionType
from .extraction import (
    PageRange,
    SourceFile,
    ChunkJob,
    ChunkResult,
    UploadStatus,
    ProgressEvent,
    ProgressCallback,
    ExtractionResult
)
from .api import PreviewData, PreviewResponse, PreviewErrorResponse

__all__ = [
    # Question models
    "Question",
    "QuestionType",

    # Extraction pipeline models
    "PageRange",
    "SourceFile",
    "ChunkJob",
    "ChunkResult",
    "UploadStatus",
    "ProgressEvent",
    "ProgressCallback",
    "ExtractionResult",

    # API models
    "PreviewData",
    "PreviewResponse",
    "PreviewErrorResponse"
]
