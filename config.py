"""
Configuration management for the Quiz PDF Extractor
"""
import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Configuration
    app_name: str = "Quiz PDF Extractor"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Security Configuration
    allowed_hosts: str = "*"
    cors_origins: str = "*"

    # Extraction pipeline (client side of the preview endpoint)
    extraction_service_url: str = "http://localhost:8000/api/quizzes/preview"
    chunk_size_pages: int = 5
    chunk_overlap_pages: int = 1
    split_threshold_bytes: int = 4 * 1024 * 1024  # 4MB
    chunk_max_retries: int = 3
    chunk_retry_initial_delay_seconds: float = 1.0
    chunk_retry_backoff_factor: float = 2.0
    chunk_request_timeout_seconds: int = 300
    inter_chunk_delay_seconds: float = 0.5
    max_parallel_files: int = 1

    # Preview endpoint
    max_file_size_mb: int = 20
    max_concurrent_requests: int = 10

    # LLM Configuration (OpenRouter)
    openrouter_api_key: Optional[str] = None
    llm_model: str = "google/gemini-2.0-flash-001"
    llm_fallback_model: str = "meta-llama/llama-3.3-70b-instruct:free"
    max_context_tokens: int = 60000
    llm_max_output_tokens: int = 8000
    llm_request_timeout_seconds: int = 120

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "structured"
    log_file: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Build settings from the environment and the given env file (ENV_FILE or .env by default)"""
    return Settings(_env_file=env_file or os.getenv("ENV_FILE", ".env"))


def reload_settings(env_file: str) -> Settings:
    """Re-read configuration from env_file into the shared settings instance"""
    fresh = get_settings(env_file)
    for name in Settings.model_fields:
        setattr(settings, name, getattr(fresh, name))
    return settings


# Global settings instance
settings = get_settings()
