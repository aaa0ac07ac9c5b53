"""
Quiz PDF Extractor - Main application entry point
"""
import time
from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from config import settings
from api.dependencies import get_extraction_service, get_preview_service
from api.quiz_controller import router as quiz_router
from utils.error_handlers import ErrorHandlingMiddleware, get_status_code_for_error_code
from utils.logging import setup_logging, log_api_request
from utils.exceptions import QuizExtractorException, ErrorCode

logger = setup_logging()

# Global application state
app_state: Dict[str, Any] = {}


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events
    """
    start_time = time.time()
    app_state["start_time"] = start_time

    logger.info(f"Starting {settings.app_name} v{settings.app_version}...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")

    try:
        extraction_service = get_extraction_service()
        app_state["extraction_service"] = extraction_service
        logger.info(f"Question extraction service initialized: {extraction_service.get_model_info()}")

        app_state["preview_service"] = get_preview_service()
        logger.info("Preview service initialized")

        startup_time = time.time() - start_time
        logger.info(f"{settings.app_name} startup completed successfully in {startup_time:.2f} seconds")

        yield

    except Exception as e:
        logger.error(f"Failed to start {settings.app_name}: {e}")
        raise

    logger.info(f"Shutting down {settings.app_name}...")
    app_state.clear()
    logger.info(f"{settings.app_name} shutdown completed")


app = FastAPI(
    title=settings.app_name,
    description="Extracts multiple-choice quiz questions from PDF exam papers, splitting large files into page chunks",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


def configure_middleware():
    """Configure all application middleware"""

    if settings.allowed_hosts:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.allowed_hosts.split(",")
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,  # Cache preflight requests for 1 hour
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent", "unknown")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Request failed: {request.method} {request.url.path} - {str(e)}")
            log_api_request(
                method=request.method,
                path=str(request.url.path),
                status_code=500,
                duration_ms=duration_ms,
                user_agent=user_agent,
                client_ip=client_ip
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        log_api_request(
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_ms=duration_ms,
            user_agent=user_agent,
            client_ip=client_ip
        )
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response

    app.add_middleware(ErrorHandlingMiddleware)


configure_middleware()


@app.exception_handler(QuizExtractorException)
async def quiz_extractor_exception_handler(request: Request, exc: QuizExtractorException):
    """
    Handle custom exceptions with structured error responses
    """
    logger.warning(f"Quiz extractor exception in {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=get_status_code_for_error_code(exc.error_code),
        content=exc.to_dict()
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors with field-level details
    """
    logger.warning(f"Validation error in {request.method} {request.url}: {exc}")

    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Request validation failed",
                "details": {"field_errors": field_errors},
                "timestamp": _timestamp()
            }
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle HTTP exceptions with consistent formatting
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "timestamp": _timestamp()
            }
        }
    )


app.include_router(quiz_router)


@app.get("/health")
async def health_check():
    """
    Basic health check endpoint for load balancers and monitoring
    """
    return {
        "status": "healthy",
        "message": f"{settings.app_name} is running",
        "version": settings.app_version,
        "timestamp": _timestamp()
    }


@app.get("/health/ready")
async def readiness_check():
    """
    Readiness check: the preview endpoint needs a configured LLM
    """
    extraction_service = app_state.get("extraction_service") or get_extraction_service()

    if not extraction_service.is_available():
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "message": "LLM service not available",
                "timestamp": _timestamp()
            }
        )

    return {
        "status": "ready",
        "message": "Service is ready to accept requests",
        "timestamp": _timestamp()
    }


@app.get("/health/live")
async def liveness_check():
    """
    Liveness check endpoint for container orchestration
    """
    return {
        "status": "alive",
        "message": "Service is alive",
        "timestamp": _timestamp(),
        "uptime_seconds": int(time.time() - app_state.get("start_time", time.time()))
    }


@app.get("/")
async def root():
    """
    Root endpoint with API information
    """
    return {
        "message": f"Welcome to the {settings.app_name} API",
        "version": settings.app_version,
        "environment": settings.environment,
        "documentation": "/docs",
        "endpoints": {
            "preview_quiz": "POST /api/quizzes/preview",
            "health_check": "GET /health",
            "readiness": "GET /health/ready",
            "liveness": "GET /health/live"
        },
        "timestamp": _timestamp()
    }


@app.get("/info")
async def application_info():
    """
    Application information endpoint
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "debug": settings.debug,
        "configuration": {
            "max_file_size_mb": settings.max_file_size_mb,
            "chunk_size_pages": settings.chunk_size_pages,
            "chunk_overlap_pages": settings.chunk_overlap_pages,
            "split_threshold_bytes": settings.split_threshold_bytes,
            "llm_model": settings.llm_model,
            "log_level": settings.log_level
        },
        "timestamp": _timestamp()
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers if not settings.debug else 1,
        reload=settings.debug,
        access_log=True,
        server_header=False,
        date_header=False
    )
