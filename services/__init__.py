"""
Service layer for the Quiz PDF Extractor
"""
from .pdf_splitter import PDFSplitter, compute_page_ranges
from .question_normalizer import normalize_question
from .question_merger import question_hash, merge_chunk_results
from .chunk_uploader import ChunkUploader, default_retry_policy
from .large_file_extractor import LargeFileExtractor, FileExtraction
from .pdf_processor import PDFProcessor
from .llm_service import QuestionExtractionService, ExtractionResponse, TokenCounter, PromptTemplate
from .preview_service import QuizPreviewService, PreviewUpload, to_preview_question

__all__ = [
    'PDFSplitter', 'compute_page_ranges',
    'normalize_question',
    'question_hash', 'merge_chunk_results',
    'ChunkUploader', 'default_retry_policy',
    'LargeFileExtractor', 'FileExtraction',
    'PDFProcessor',
    'QuestionExtractionService', 'ExtractionResponse', 'TokenCounter', 'PromptTemplate',
    'QuizPreviewService', 'PreviewUpload', 'to_preview_question'
]
