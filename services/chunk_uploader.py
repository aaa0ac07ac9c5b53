"""
Upload of PDF chunks to the question extraction service with bounded retry
"""
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, List, Optional

import requests

from config import settings
from models.extraction import ChunkJob, ChunkResult, ProgressCallback, ProgressEvent, UploadStatus
from models.question import Question
from services.question_normalizer import normalize_question
from utils.error_handlers import RetryPolicy, log_performance_metric
from utils.exceptions import ChunkUploadError

logger = logging.getLogger(__name__)


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.chunk_max_retries,
        base_delay=settings.chunk_retry_initial_delay_seconds,
        backoff_factor=settings.chunk_retry_backoff_factor,
    )


class ChunkUploader:
    """
    Sends one ChunkJob to the extraction service and returns a ChunkResult.

    Ordinary failures (network errors, timeouts, non-2xx responses, service
    reported failures, malformed bodies) are retried with exponential backoff
    and, once the retry budget is spent, reported on the result rather than
    raised.
    """

    def __init__(
        self,
        service_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None,
        normalizer: Callable[[Dict[str, Any]], Question] = normalize_question,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            service_url: Extraction endpoint URL
            session: HTTP session, created on demand
            retry_policy: Attempt budget and backoff schedule
            timeout: Per-attempt timeout in seconds
            normalizer: Maps raw question objects to Question
            sleep: Function used to wait between attempts
        """
        self.service_url = service_url or settings.extraction_service_url
        self.session = session or requests.Session()
        self.retry_policy = retry_policy or default_retry_policy()
        self.timeout = timeout if timeout is not None else settings.chunk_request_timeout_seconds
        self.normalizer = normalizer
        self.sleep = sleep

    def upload(
        self,
        job: ChunkJob,
        on_progress: Optional[ProgressCallback] = None,
        title: str = "",
        description: str = ""
    ) -> ChunkResult:
        """
        Upload a chunk, retrying per the retry policy.

        Args:
            job: The chunk to extract questions from
            on_progress: Optional progress callback
            title: Quiz title sent along with the chunk
            description: Quiz description sent along with the chunk

        Returns:
            ChunkResult, with success=False and an error message if every attempt failed
        """
        total_attempts = self.retry_policy.total_attempts
        label = job.describe()
        last_error = ""

        for attempt in range(total_attempts):
            if attempt == 0:
                self._emit(on_progress, job, UploadStatus.UPLOADING, f"Uploading {label}...")
            else:
                self._emit(
                    on_progress, job, UploadStatus.PROCESSING,
                    f"Retrying {label} (attempt {attempt + 1}/{total_attempts})..."
                )

            try:
                raw_questions = self._attempt(job, title, description)
            except ChunkUploadError as e:
                last_error = e.message
                if self.retry_policy.should_retry(attempt):
                    delay = self.retry_policy.delay_for(attempt)
                    logger.warning(
                        f"{job.source_file_name}: {label} failed "
                        f"(attempt {attempt + 1}/{total_attempts}): {last_error}. Retrying in {delay}s"
                    )
                    self._emit(
                        on_progress, job, UploadStatus.ERROR,
                        f"{label[:1].upper()}{label[1:]} failed, retrying in {delay:g}s... ({last_error})"
                    )
                    self.sleep(delay)
                else:
                    logger.error(
                        f"{job.source_file_name}: {label} failed after "
                        f"{total_attempts} attempts: {last_error}"
                    )
                continue

            self._emit(on_progress, job, UploadStatus.PROCESSING, f"Processing {label}...")
            questions = [self.normalizer(raw) for raw in raw_questions]
            logger.info(f"{job.source_file_name}: {label} processed, {len(questions)} questions")

            return ChunkResult(
                chunk_index=job.chunk_index,
                source_file_name=job.source_file_name,
                success=True,
                questions=questions
            )

        return ChunkResult(
            chunk_index=job.chunk_index,
            source_file_name=job.source_file_name,
            success=False,
            error=f"Failed after {total_attempts} attempts: {last_error}"
        )

    def _attempt(self, job: ChunkJob, title: str, description: str) -> List[Dict[str, Any]]:
        """Perform a single request and return the raw question objects"""
        start_time = time.time()
        opened: List[requests.Response] = []

        # The requests timeout only bounds connect and the gap between bytes,
        # so the whole exchange runs under a watchdog holding the total limit.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chunk-upload")
        try:
            future = executor.submit(self._send, job, title, description, opened)
            response = future.result(timeout=self.timeout)
        except FutureTimeout as e:
            for pending in opened:
                pending.close()
            raise self._error(job, f"Request timed out after {self.timeout}s", original_exception=e)
        except requests.exceptions.Timeout as e:
            raise self._error(job, f"Request timed out after {self.timeout}s", original_exception=e)
        except requests.exceptions.RequestException as e:
            raise self._error(job, f"Request failed: {e}", original_exception=e)
        finally:
            executor.shutdown(wait=False)

        duration_ms = int((time.time() - start_time) * 1000)
        log_performance_metric("chunk_upload", duration_ms, {
            "file": job.source_file_name,
            "chunk": job.chunk_index + 1,
            "status_code": response.status_code
        })

        if not 200 <= response.status_code < 300:
            raise self._error(job, f"HTTP {response.status_code}: {response.reason}", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise self._error(job, "Malformed response body: not valid JSON", original_exception=e)

        if not isinstance(body, dict):
            raise self._error(job, "Malformed response body: expected a JSON object")

        if not body.get("success"):
            raise self._error(job, body.get("error") or "Failed to extract questions from chunk")

        data = body.get("data")
        raw_questions = data.get("questions") if isinstance(data, dict) else None
        if not isinstance(raw_questions, list) or not all(isinstance(q, dict) for q in raw_questions):
            raise self._error(job, "Malformed response body: missing question list")

        return raw_questions

    def _send(
        self,
        job: ChunkJob,
        title: str,
        description: str,
        opened: List[requests.Response]
    ) -> requests.Response:
        """POST the chunk and read the full body; runs on the watchdog thread"""
        response = self.session.post(
            self.service_url,
            data=self._form_fields(job, title, description),
            files={"pdfFile_0": (job.upload_name, job.payload, "application/pdf")},
            timeout=self.timeout,
            stream=True
        )
        opened.append(response)
        # Body download counts against the attempt limit
        response.content
        return response

    def _form_fields(self, job: ChunkJob, title: str, description: str) -> Dict[str, str]:
        fields = {
            "fileCount": "1",
            "title": title,
            "description": description,
        }
        if job.page_range is not None:
            fields.update({
                "chunkIndex": str(job.chunk_index),
                "totalChunks": str(job.total_chunks),
                "originalFileName": job.source_file_name,
                "pageRange": json.dumps(job.page_range.to_dict()),
            })
        return fields

    def _error(self, job: ChunkJob, message: str, **kwargs) -> ChunkUploadError:
        return ChunkUploadError(
            message,
            chunk_index=job.chunk_index,
            filename=job.source_file_name,
            **kwargs
        )

    def _emit(
        self,
        on_progress: Optional[ProgressCallback],
        job: ChunkJob,
        status: UploadStatus,
        message: str
    ) -> None:
        if on_progress is None:
            return
        on_progress(ProgressEvent(
            current_chunk=job.chunk_index + 1,
            total_chunks=job.total_chunks,
            current_file=job.current_file,
            total_files=job.total_files,
            file_name=job.source_file_name,
            status=status,
            message=message
        ))
