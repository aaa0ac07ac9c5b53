"""
Dependency injection for the Quiz PDF Extractor API
"""
import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from services.chunk_uploader import ChunkUploader
from services.large_file_extractor import LargeFileExtractor
from services.llm_service import QuestionExtractionService
from services.pdf_splitter import PDFSplitter
from services.preview_service import QuizPreviewService

logger = logging.getLogger(__name__)


@lru_cache()
def get_extraction_service() -> QuestionExtractionService:
    """
    Get LLM question extraction service instance (cached singleton)
    """
    return QuestionExtractionService()


@lru_cache()
def get_preview_service() -> QuizPreviewService:
    """
    Get quiz preview service instance (cached singleton)
    """
    return QuizPreviewService(extraction_service=get_extraction_service())


@lru_cache()
def get_large_file_extractor() -> LargeFileExtractor:
    """
    Get the chunked extraction pipeline pointed at the configured extraction service
    """
    return LargeFileExtractor(uploader=ChunkUploader(), splitter=PDFSplitter())


# Type annotations for dependency injection
PreviewServiceDep = Annotated[QuizPreviewService, Depends(get_preview_service)]
