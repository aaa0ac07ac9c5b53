"""
Quiz preview controller for the Quiz PDF Extractor REST API
"""
import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.datastructures import FormData, UploadFile

from api.dependencies import PreviewServiceDep
from models.api import PreviewErrorResponse, PreviewResponse
from services.preview_service import PreviewUpload
from utils.error_handlers import get_status_code_for_error_code
from utils.exceptions import ErrorCode, QuizExtractorException, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


def _error_response(status_code: int, message: str, code: Optional[str] = None) -> JSONResponse:
    body = PreviewErrorResponse(error=message, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _parse_int(value: Any, field_name: str, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            message=f"Field '{field_name}' must be an integer",
            field_name=field_name,
            field_value=value
        )


def _chunk_metadata(form: FormData) -> Dict[str, Any]:
    """Chunk fields sent by the chunk uploader, echoed back in the response"""
    metadata: Dict[str, Any] = {}

    chunk_index = _parse_int(form.get("chunkIndex"), "chunkIndex")
    if chunk_index is not None:
        if chunk_index < 0:
            raise ValidationError(
                message="Field 'chunkIndex' must not be negative",
                field_name="chunkIndex",
                field_value=chunk_index
            )
        metadata["chunk_index"] = chunk_index

    total_chunks = _parse_int(form.get("totalChunks"), "totalChunks")
    if total_chunks is not None:
        if total_chunks < 1:
            raise ValidationError(
                message="Field 'totalChunks' must be at least 1",
                field_name="totalChunks",
                field_value=total_chunks
            )
        metadata["total_chunks"] = total_chunks

    page_range = form.get("pageRange")
    if page_range:
        try:
            parsed = json.loads(page_range)
        except (TypeError, ValueError):
            parsed = None
        if not isinstance(parsed, dict):
            raise ValidationError(
                message="Field 'pageRange' must be a JSON object",
                field_name="pageRange",
                field_value=page_range
            )
        metadata["page_range"] = parsed

    return metadata


async def _read_uploads(form: FormData) -> List[PreviewUpload]:
    file_count = _parse_int(form.get("fileCount"), "fileCount", default=0)

    uploads = []
    for index in range(file_count):
        part = form.get(f"pdfFile_{index}")
        if not isinstance(part, UploadFile):
            continue
        uploads.append(PreviewUpload(
            filename=part.filename or f"pdfFile_{index}.pdf",
            content=await part.read(),
            content_type=part.content_type
        ))
    return uploads


@router.post(
    "/preview",
    response_model=PreviewResponse,
    responses={
        400: {"model": PreviewErrorResponse},
        413: {"model": PreviewErrorResponse},
        422: {"model": PreviewErrorResponse},
        502: {"model": PreviewErrorResponse},
        503: {"model": PreviewErrorResponse},
    },
    summary="Extract questions from PDFs for preview",
    description="Upload one or more PDF files (or one chunk of a large PDF) and get the extracted quiz questions back"
)
async def preview_quiz(request: Request, preview_service: PreviewServiceDep):
    """
    Extract quiz questions from uploaded PDFs.

    The multipart form carries ``title``, ``description``, ``fileCount`` and
    the files as ``pdfFile_0`` .. ``pdfFile_{n-1}``. Chunk uploads also send
    ``chunkIndex``, ``totalChunks``, ``originalFileName`` and ``pageRange``.

    Returns:
        ``{"success": true, "data": {...}}`` or ``{"success": false, "error": "..."}``
    """
    try:
        form = await request.form()
        title = str(form.get("title") or "")
        description = str(form.get("description") or "")
        uploads = await _read_uploads(form)
        metadata = _chunk_metadata(form)

        if form.get("originalFileName"):
            logger.info(
                f"Preview request for chunk {metadata.get('chunk_index', 0) + 1}/"
                f"{metadata.get('total_chunks', 1)} of {form.get('originalFileName')}"
            )

        preview = await run_in_threadpool(
            preview_service.build_preview, title, description, uploads, metadata
        )

        body = PreviewResponse(data=preview)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=body.model_dump(mode="json", by_alias=True, exclude_none=True)
        )

    except QuizExtractorException as e:
        logger.warning(f"Preview quiz error: {e}")
        return _error_response(get_status_code_for_error_code(e.error_code), e.message, e.error_code.value)

    except Exception as e:
        logger.error(f"Unexpected error in quiz preview: {e}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            ErrorCode.INTERNAL_SERVER_ERROR.value
        )
