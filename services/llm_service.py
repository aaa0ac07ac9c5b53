"""
LLM-backed question extraction for the Quiz PDF Extractor using OpenRouter
"""
import logging
import re
import time
import json
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import requests
from config import settings
from utils.exceptions import LLMServiceError, ErrorCode
from utils.error_handlers import RetryHandler, log_performance_metric

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResponse:
    """Raw questions returned by the LLM for one document"""
    questions: List[Dict[str, Any]] = field(default_factory=list)
    tokens_used: int = 0
    processing_time_ms: int = 0
    model_used: str = ""


class TokenCounter:
    """Utility class for counting tokens"""

    @staticmethod
    def estimate_tokens(text: str) -> int:
        """
        Estimate token count using a simple heuristic
        """
        # Conservative for multilingual exam papers
        return len(text) // 3

    @staticmethod
    def truncate_to_token_limit(text: str, max_tokens: int) -> str:
        """Truncate text to fit within token limit"""
        if TokenCounter.estimate_tokens(text) <= max_tokens:
            return text

        left, right = 0, len(text)
        while left < right:
            mid = (left + right + 1) // 2
            if TokenCounter.estimate_tokens(text[:mid]) <= max_tokens:
                left = mid
            else:
                right = mid - 1

        return text[:left]


class PromptTemplate:
    """Template for generating extraction prompts"""

    SYSTEM_PROMPT = """You extract multiple-choice quiz questions from exam documents.
Follow these guidelines:
1. Extract every question in the order it appears in the document
2. Keep the question and option text in the document's original language
3. Do not include option labels such as "A." or "B)" in the option text
4. Use "single" for questions with one correct answer and "multiple" otherwise
5. Answer with JSON only, no commentary"""

    EXTRACTION_TEMPLATE = """Document content:
{content}

Return a JSON array where each element has the form:
{{"question": "...", "options": ["...", "..."], "type": "single", "correctIndex": 0}}
or, for questions with several correct options:
{{"question": "...", "options": ["...", "..."], "type": "multiple", "correctIndexes": [0, 2]}}
Indexes are 0-based positions in "options". If the document marks no answer, use 0 for single choice and [] for multiple choice."""

    @classmethod
    def create_prompt(cls, content: str) -> str:
        return cls.EXTRACTION_TEMPLATE.format(content=content)


_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_questions_json(answer: str) -> List[Dict[str, Any]]:
    """
    Parse the model answer into a list of raw question objects.

    Accepts a bare JSON array, an array wrapped in Markdown code fences, or
    an object with a ``questions`` array.

    Raises:
        ValueError: If no question list can be decoded
    """
    text = _CODE_FENCE.sub("", answer.strip())

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        # Models sometimes wrap the array in prose
        start, end = text.find("["), text.rfind("]")
        if start == -1 or end <= start:
            raise ValueError("No JSON array found in model answer")
        parsed = json.loads(text[start:end + 1])

    if isinstance(parsed, dict):
        parsed = parsed.get("questions")

    if not isinstance(parsed, list):
        raise ValueError("Model answer is not a list of questions")

    return [item for item in parsed if isinstance(item, dict)]


class QuestionExtractionService:
    """Service for question extraction with the OpenRouter API"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Initialize the extraction service

        Args:
            api_key: OpenRouter API key (if None, will use settings.openrouter_api_key)
            model: Model to use (if None, will use settings.llm_model)
        """
        self.api_key = api_key or settings.openrouter_api_key
        self.model = model or settings.llm_model
        self.fallback_model = settings.llm_fallback_model
        self.max_context_tokens = settings.max_context_tokens
        self.max_output_tokens = settings.llm_max_output_tokens
        self.base_url = "https://openrouter.ai/api/v1/chat/completions"
        self.timeout = settings.llm_request_timeout_seconds

        if self.api_key:
            logger.info(f"OpenRouter client initialized with model: {self.model}")
        else:
            logger.warning("No OpenRouter API key provided, question extraction unavailable")

    @RetryHandler(max_retries=2, retryable_exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError))
    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": settings.app_name
        }
        return requests.post(
            url=self.base_url,
            headers=headers,
            data=json.dumps(payload),
            timeout=self.timeout
        )

    def _make_api_call(self, prompt: str, model: str) -> Tuple[str, int]:
        """
        Make API call to OpenRouter

        Args:
            prompt: The formatted prompt
            model: Model to use

        Returns:
            Tuple of (response_text, tokens_used)
        """
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": PromptTemplate.SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            "max_tokens": self.max_output_tokens,
            "temperature": 0.0,
        }

        start_time = time.time()
        try:
            response = self._post(payload)
        except requests.exceptions.Timeout as e:
            logger.error(f"API timeout: {e}")
            raise LLMServiceError(
                message="LLM service request timed out. Please try again.",
                model_name=model,
                error_code=ErrorCode.LLM_TIMEOUT,
                original_exception=e
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection error: {e}")
            raise LLMServiceError(
                message="Failed to connect to LLM service.",
                model_name=model,
                error_code=ErrorCode.LLM_SERVICE_UNAVAILABLE,
                original_exception=e
            )

        duration_ms = int((time.time() - start_time) * 1000)
        log_performance_metric("llm_api_call", duration_ms, {"model": model})

        if response.status_code != 200:
            error_message = f"HTTP {response.status_code}"
            try:
                error_message = response.json().get("error", {}).get("message", error_message)
            except (ValueError, AttributeError):
                pass

            if response.status_code == 429:
                logger.error(f"Rate limit exceeded: {error_message}")
                raise LLMServiceError(
                    message="Rate limit exceeded for LLM service. Please try again later.",
                    model_name=model,
                    error_code=ErrorCode.LLM_RATE_LIMIT
                )
            if response.status_code == 401:
                logger.error(f"Authentication error: {error_message}")
                raise LLMServiceError(
                    message="LLM service authentication failed. Please check OpenRouter API key configuration.",
                    model_name=model,
                    error_code=ErrorCode.LLM_SERVICE_UNAVAILABLE
                )
            logger.error(f"OpenRouter API error: {error_message}")
            raise LLMServiceError(
                message=f"LLM service API error: {error_message}",
                model_name=model,
                error_code=ErrorCode.LLM_API_ERROR
            )

        try:
            response_data = response.json()
            answer = response_data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMServiceError(
                message="Invalid response from LLM service.",
                model_name=model,
                error_code=ErrorCode.INVALID_LLM_RESPONSE,
                original_exception=e
            )

        tokens_used = response_data.get("usage", {}).get("total_tokens", 0)
        return answer or "", tokens_used

    def extract_questions(self, document_text: str, filename: str = "document.pdf") -> ExtractionResponse:
        """
        Extract raw question objects from document text

        Args:
            document_text: Page-marked text of the document
            filename: Name used in log messages

        Returns:
            ExtractionResponse with the raw questions

        Raises:
            LLMServiceError: If every model fails or answers with unusable output
        """
        start_time = time.time()

        if not self.api_key:
            raise LLMServiceError(
                message="LLM service not properly initialized - missing OpenRouter API key",
                error_code=ErrorCode.LLM_SERVICE_UNAVAILABLE
            )

        budget = self.max_context_tokens - TokenCounter.estimate_tokens(PromptTemplate.SYSTEM_PROMPT)
        content = TokenCounter.truncate_to_token_limit(document_text, budget)
        if len(content) < len(document_text):
            logger.warning(f"Document {filename} truncated to ~{budget} tokens for extraction")

        prompt = PromptTemplate.create_prompt(content)

        models_to_try = [self.model]
        if self.fallback_model != self.model:
            models_to_try.append(self.fallback_model)

        last_error: Optional[LLMServiceError] = None
        for model in models_to_try:
            try:
                logger.info(f"Extracting questions from {filename} using model: {model}")
                answer, tokens_used = self._make_api_call(prompt, model)

                try:
                    questions = parse_questions_json(answer)
                except ValueError as e:
                    raise LLMServiceError(
                        message=f"Could not parse questions from model output: {e}",
                        model_name=model,
                        tokens_used=tokens_used,
                        error_code=ErrorCode.INVALID_LLM_RESPONSE,
                        original_exception=e
                    )

                processing_time = int((time.time() - start_time) * 1000)
                logger.info(f"Extracted {len(questions)} questions from {filename} with {model} in {processing_time}ms")

                return ExtractionResponse(
                    questions=questions,
                    tokens_used=tokens_used,
                    processing_time_ms=processing_time,
                    model_used=model
                )

            except LLMServiceError as e:
                last_error = e
                logger.warning(f"Failed to extract questions with {model}: {e}")
                continue

        logger.error(f"All LLM models failed. Last error: {last_error}")
        raise last_error

    def is_available(self) -> bool:
        """Check if the LLM service is available"""
        return bool(self.api_key)

    def get_model_info(self) -> Dict[str, str]:
        """Get information about the configured models"""
        return {
            "primary_model": self.model,
            "fallback_model": self.fallback_model,
            "available": str(self.is_available())
        }
