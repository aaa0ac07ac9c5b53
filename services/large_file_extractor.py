"""
Extraction of quiz questions from large PDFs

This service orchestrates the chunked extraction pipeline:
1. Size check per file (small files are uploaded whole)
2. Page splitting of large files into overlapping chunks
3. Sequential chunk upload with retry
4. Hash-based merge of the chunk results

Progress is reported through an optional callback.
"""
import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from config import settings
from models.extraction import (
    ChunkJob, ChunkResult, ExtractionResult, ProgressCallback,
    ProgressEvent, SourceFile, UploadStatus
)
from models.question import Question
from services.chunk_uploader import ChunkUploader
from services.pdf_splitter import PDFSplitter
from services.question_merger import merge_chunk_results
from utils.error_handlers import log_processing_step, log_performance_metric
from utils.exceptions import FileExtractionError

logger = logging.getLogger(__name__)


@dataclass
class FileExtraction:
    """Questions extracted from one source file"""
    file_name: str
    questions: List[Question] = field(default_factory=list)
    skipped_chunks: int = 0


class LargeFileExtractor:
    """
    Service for extracting questions from one or more PDFs through the
    extraction service, splitting files above the size threshold into
    page-range chunks.
    """

    def __init__(
        self,
        uploader: Optional[ChunkUploader] = None,
        splitter: Optional[PDFSplitter] = None,
        split_threshold_bytes: Optional[int] = None,
        inter_chunk_delay: Optional[float] = None,
        max_parallel_files: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the extractor with its collaborators.

        Args:
            uploader: Chunk uploader used for every extraction request
            splitter: Page splitter for files above the threshold
            split_threshold_bytes: Files larger than this are split
            inter_chunk_delay: Pause in seconds between chunk uploads of a file
            max_parallel_files: Number of files processed concurrently
            sleep: Function used for the inter-chunk pause
        """
        self.uploader = uploader or ChunkUploader()
        self.splitter = splitter or PDFSplitter()
        self.split_threshold_bytes = (
            split_threshold_bytes if split_threshold_bytes is not None else settings.split_threshold_bytes
        )
        self.inter_chunk_delay = (
            inter_chunk_delay if inter_chunk_delay is not None else settings.inter_chunk_delay_seconds
        )
        self.max_parallel_files = max(1, max_parallel_files or settings.max_parallel_files)
        self.sleep = sleep

    def extract(
        self,
        files: Sequence[SourceFile],
        title: str,
        description: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> ExtractionResult:
        """
        Extract questions from all files.

        Args:
            files: Source PDFs, processed in order
            title: Quiz title
            description: Quiz description
            on_progress: Optional progress callback

        Returns:
            ExtractionResult with questions in file order, then chunk order

        Raises:
            FileExtractionError: If a file produced no usable extraction
            DocumentParseError: If a large file could not be split
        """
        start_time = time.time()
        files = list(files)
        total_files = len(files)

        logger.info(f"Starting extraction of {total_files} files")

        if self.max_parallel_files > 1 and total_files > 1:
            extractions = self._extract_parallel(files, title, description, on_progress)
        else:
            extractions = [
                self._extract_file(source, index + 1, total_files, title, description, on_progress)
                for index, source in enumerate(files)
            ]

        result = ExtractionResult(title=title, description=description)
        for extraction in extractions:
            result.questions.extend(extraction.questions)
            result.file_names.append(extraction.file_name)

        self._emit(
            on_progress, 0, 0, total_files, total_files, "", UploadStatus.COMPLETED,
            f"All files processed successfully ({len(result.questions)} total unique questions)"
        )

        duration_ms = int((time.time() - start_time) * 1000)
        log_performance_metric("question_extraction", duration_ms, {
            "files": total_files,
            "questions": len(result.questions)
        })

        return result

    def _extract_parallel(
        self,
        files: List[SourceFile],
        title: str,
        description: str,
        on_progress: Optional[ProgressCallback]
    ) -> List[FileExtraction]:
        """Run whole-file pipelines concurrently, keeping input order"""
        on_progress = _serialized(on_progress)
        total_files = len(files)
        cancelled = threading.Event()

        with ThreadPoolExecutor(max_workers=min(self.max_parallel_files, total_files)) as executor:
            futures = [
                executor.submit(
                    self._extract_file, source, index + 1, total_files, title, description,
                    on_progress, cancelled
                )
                for index, source in enumerate(files)
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            if any(future.exception() is not None for future in done):
                # Running pipelines stop before their next upload
                cancelled.set()
                for future in futures:
                    future.cancel()

        for future in futures:
            if future.cancelled():
                continue
            error = future.exception()
            if error is not None and not isinstance(error, ExtractionCancelled):
                raise error

        return [future.result() for future in futures]

    def _extract_file(
        self,
        source: SourceFile,
        file_number: int,
        total_files: int,
        title: str,
        description: str,
        on_progress: Optional[ProgressCallback],
        cancelled: Optional[threading.Event] = None
    ) -> FileExtraction:
        _check_cancelled(cancelled, source.name)
        self._emit(
            on_progress, 0, 0, file_number, total_files, source.name, UploadStatus.UPLOADING,
            f"Processing file {file_number}/{total_files}: {source.name}"
        )

        if source.size <= self.split_threshold_bytes:
            extraction = self._extract_whole_file(
                source, file_number, total_files, title, description, on_progress
            )
            total_chunks = 1
        else:
            extraction, total_chunks = self._extract_chunked_file(
                source, file_number, total_files, title, description, on_progress, cancelled
            )

        message = (
            f"Completed processing {source.name} "
            f"({len(extraction.questions)} unique questions extracted"
        )
        if extraction.skipped_chunks:
            message += f", {extraction.skipped_chunks} chunks skipped"
        message += ")"

        self._emit(
            on_progress, total_chunks, total_chunks, file_number, total_files, source.name,
            UploadStatus.COMPLETED, message
        )
        return extraction

    def _extract_whole_file(
        self,
        source: SourceFile,
        file_number: int,
        total_files: int,
        title: str,
        description: str,
        on_progress: Optional[ProgressCallback]
    ) -> FileExtraction:
        log_processing_step("whole_file_upload", {"file": source.name, "size": source.size})

        job = ChunkJob(
            source_file_name=source.name,
            chunk_index=0,
            total_chunks=1,
            payload=source.content,
            current_file=file_number,
            total_files=total_files
        )
        result = self.uploader.upload(job, on_progress, title=title, description=description)

        if not result.success:
            raise FileExtractionError(
                f"Failed to process {source.name}: {result.error}",
                filename=source.name,
                cause=result.error
            )

        return FileExtraction(file_name=source.name, questions=list(result.questions))

    def _extract_chunked_file(
        self,
        source: SourceFile,
        file_number: int,
        total_files: int,
        title: str,
        description: str,
        on_progress: Optional[ProgressCallback],
        cancelled: Optional[threading.Event] = None
    ):
        self._emit(
            on_progress, 0, 0, file_number, total_files, source.name, UploadStatus.UPLOADING,
            f"Splitting {source.name} into page-based chunks..."
        )

        chunks = self.splitter.split(source.content, source.name)
        total_chunks = len(chunks)
        log_processing_step("page_split", {"file": source.name, "chunks": total_chunks})

        self._emit(
            on_progress, 0, total_chunks, file_number, total_files, source.name, UploadStatus.UPLOADING,
            f"Created {total_chunks} chunks for {source.name}"
        )

        chunk_results: List[ChunkResult] = []
        for chunk_index, (payload, page_range) in enumerate(chunks):
            _check_cancelled(cancelled, source.name)
            job = ChunkJob(
                source_file_name=source.name,
                chunk_index=chunk_index,
                total_chunks=total_chunks,
                payload=payload,
                page_range=page_range,
                current_file=file_number,
                total_files=total_files
            )
            chunk_results.append(
                self.uploader.upload(job, on_progress, title=title, description=description)
            )

            if chunk_index < total_chunks - 1:
                self.sleep(self.inter_chunk_delay)

        failed = [result for result in chunk_results if not result.success]
        if failed:
            error_messages = "; ".join(
                f"Chunk {result.chunk_index + 1}: {result.error}" for result in failed
            )
            logger.warning(f"{len(failed)} chunks of {source.name} failed: {error_messages}")

            if len(failed) == total_chunks:
                raise FileExtractionError(
                    f"Failed to process {source.name}: All chunks failed. {error_messages}",
                    filename=source.name,
                    failed_chunks=[result.chunk_index for result in failed],
                    cause=error_messages
                )

            logger.info(f"Continuing with {total_chunks - len(failed)} successful chunks of {source.name}")

        questions = merge_chunk_results(chunk_results)
        extraction = FileExtraction(
            file_name=source.name,
            questions=questions,
            skipped_chunks=len(failed)
        )
        return extraction, total_chunks

    @staticmethod
    def _emit(
        on_progress: Optional[ProgressCallback],
        current_chunk: int,
        total_chunks: int,
        current_file: int,
        total_files: int,
        file_name: str,
        status: UploadStatus,
        message: str
    ) -> None:
        if on_progress is None:
            return
        on_progress(ProgressEvent(
            current_chunk=current_chunk,
            total_chunks=total_chunks,
            current_file=current_file,
            total_files=total_files,
            file_name=file_name,
            status=status,
            message=message
        ))


class ExtractionCancelled(Exception):
    """Raised inside a file pipeline once another file has failed"""


def _check_cancelled(cancelled: Optional[threading.Event], file_name: str) -> None:
    if cancelled is not None and cancelled.is_set():
        logger.info(f"Stopping {file_name}: another file failed")
        raise ExtractionCancelled(file_name)


def _serialized(on_progress: Optional[ProgressCallback]) -> Optional[ProgressCallback]:
    """Wrap a callback so concurrent file pipelines deliver events one at a time"""
    if on_progress is None:
        return None

    lock = threading.Lock()

    def emit(event: ProgressEvent) -> None:
        with lock:
            on_progress(event)

    return emit
