"""
Error handling middleware and utilities for the Quiz PDF Extractor

This module provides the error handling middleware, HTTP status mapping,
retry/backoff helpers and logging utilities shared by the API and the
extraction pipeline.
"""
import logging
import time
import traceback
from dataclasses import dataclass
from typing import Dict, Any, Optional, Callable
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from utils.exceptions import QuizExtractorException, ErrorCode

logger = logging.getLogger(__name__)


STATUS_CODE_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FILE_TOO_LARGE: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrorCode.INVALID_FILE_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EMPTY_FILE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FILE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NO_QUESTIONS_EXTRACTED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.DOCUMENT_PROCESSING_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.DOCUMENT_PARSE_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.PDF_PROCESSING_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.CHUNK_UPLOAD_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.FILE_EXTRACTION_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.LLM_SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.LLM_RATE_LIMIT: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.LLM_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorCode.LLM_API_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.INVALID_LLM_RESPONSE: status.HTTP_502_BAD_GATEWAY,
}


def get_status_code_for_error_code(error_code: ErrorCode) -> int:
    """Map error codes to HTTP status codes"""
    return STATUS_CODE_MAP.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ErrorHandlingMiddleware:
    """
    Middleware for handling errors and providing consistent error responses
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        """ASGI middleware implementation"""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)

        try:
            await self.app(scope, receive, send)
        except Exception as e:
            response = await self.handle_error(request, e)
            await response(scope, receive, send)

    async def handle_error(self, request: Request, exc: Exception) -> JSONResponse:
        """
        Handle different types of exceptions and return appropriate responses

        Args:
            request: The FastAPI request object
            exc: The exception that occurred

        Returns:
            JSONResponse with error details
        """
        self._log_error(request, exc)

        if isinstance(exc, QuizExtractorException):
            return JSONResponse(
                status_code=get_status_code_for_error_code(exc.error_code),
                content=exc.to_dict()
            )
        elif isinstance(exc, HTTPException):
            return self._handle_http_exception(exc)
        elif isinstance(exc, RequestValidationError):
            return create_error_response(
                ErrorCode.VALIDATION_ERROR,
                "Request validation failed",
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                details={"validation_errors": exc.errors()}
            )
        else:
            return create_error_response(
                ErrorCode.INTERNAL_SERVER_ERROR,
                "An unexpected error occurred",
                details={"error_type": type(exc).__name__}
            )

    def _log_error(self, request: Request, exc: Exception) -> None:
        """Log error with request context"""
        context = {
            "error_id": f"error_{int(time.time() * 1000)}",
            "method": request.method,
            "url": str(request.url),
            "client_ip": request.client.host if request.client else "unknown",
            "exception_type": type(exc).__name__,
            "exception_message": str(exc)
        }

        if isinstance(exc, (QuizExtractorException, HTTPException)):
            logger.warning(f"Handled exception: {context}")
        else:
            logger.error(f"Unhandled exception: {context}")
            logger.error(f"Traceback: {traceback.format_exc()}")

    def _handle_http_exception(self, exc: HTTPException) -> JSONResponse:
        """Handle FastAPI HTTP exceptions"""
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": "HTTP_ERROR",
                    "message": str(exc.detail),
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
                }
            }
        )


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff schedule.

    ``max_retries`` retries follow the first attempt, so a call is tried at
    most ``max_retries + 1`` times. The delay before retry ``n`` (0-based) is
    ``base_delay * backoff_factor ** n`` seconds, capped at ``max_delay``.
    """
    max_retries: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 60.0

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds to wait after the given failed 0-based attempt"""
        return min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries


class RetryHandler:
    """
    Retry decorator with exponential backoff
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        backoff_factor: float = 2.0,
        retryable_exceptions: tuple = (Exception,),
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize retry handler

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Initial delay between retries (seconds)
            max_delay: Maximum delay between retries (seconds)
            backoff_factor: Multiplier for exponential backoff
            retryable_exceptions: Tuple of exception types that should trigger retry
            sleep: Function used to wait between attempts (time.sleep by default)
        """
        self.policy = RetryPolicy(
            max_retries=max_retries,
            base_delay=base_delay,
            backoff_factor=backoff_factor,
            max_delay=max_delay
        )
        self.retryable_exceptions = retryable_exceptions
        self.sleep = sleep

    def __call__(self, func):
        """Decorator implementation"""
        def wrapper(*args, **kwargs):
            for attempt in range(self.policy.total_attempts):
                try:
                    return func(*args, **kwargs)
                except self.retryable_exceptions as e:
                    if not self.policy.should_retry(attempt):
                        logger.error(f"Function {func.__name__} failed after {self.policy.max_retries} retries: {e}")
                        raise

                    delay = self.policy.delay_for(attempt)
                    logger.warning(f"Function {func.__name__} failed (attempt {attempt + 1}), retrying in {delay}s: {e}")
                    (self.sleep or time.sleep)(delay)

        return wrapper


# Utility functions for error handling

def log_processing_step(step_name: str, details: Optional[Dict[str, Any]] = None):
    """
    Log a processing step with optional details

    Args:
        step_name: Name of the processing step
        details: Optional dictionary with step details
    """
    log_message = f"Processing step: {step_name}"
    if details:
        log_message += f" - {details}"

    logger.info(log_message)


def log_performance_metric(operation: str, duration_ms: int, details: Optional[Dict[str, Any]] = None):
    """
    Log performance metrics for operations

    Args:
        operation: Name of the operation
        duration_ms: Duration in milliseconds
        details: Optional dictionary with additional details
    """
    log_message = f"Performance: {operation} completed in {duration_ms}ms"
    if details:
        log_message += f" - {details}"

    logger.info(log_message)


def create_error_response(
    error_code: ErrorCode,
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Create a standardized error response

    Args:
        error_code: The error code
        message: Error message
        status_code: HTTP status code
        details: Optional error details

    Returns:
        JSONResponse with error information
    """
    error_dict = {
        "error": {
            "code": error_code.value,
            "message": message,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        }
    }

    if details:
        error_dict["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=error_dict
    )
