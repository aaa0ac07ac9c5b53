#!/usr/bin/env python3
"""
Production application runner for the Quiz PDF Extractor
"""
import os
import sys
import json
import argparse
import logging
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from config import reload_settings, settings


def setup_production_logging():
    """Setup production-grade logging"""
    from utils.logging import setup_logging

    # Create logs directory if it doesn't exist
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    log_file = logs_dir / "app.log"
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(log_file)
    )


def run_server():
    """Run the application server"""
    import uvicorn
    from main import app

    setup_production_logging()

    logger = logging.getLogger(__name__)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Host: {settings.host}:{settings.port}")
    logger.info(f"Workers: {settings.workers}")

    uvicorn_config = {
        "app": app,
        "host": settings.host,
        "port": settings.port,
        "workers": settings.workers,
        "log_level": settings.log_level.lower(),
        "access_log": True,
        "server_header": False,
        "date_header": False,
        "proxy_headers": True,
        "forwarded_allow_ips": "*"
    }

    ssl_keyfile = os.getenv("SSL_KEYFILE")
    ssl_certfile = os.getenv("SSL_CERTFILE")

    if ssl_keyfile and ssl_certfile:
        uvicorn_config.update({
            "ssl_keyfile": ssl_keyfile,
            "ssl_certfile": ssl_certfile
        })
        logger.info("SSL/TLS enabled")

    uvicorn.run(**uvicorn_config)


def run_health_check():
    """Run a health check against the running service"""
    import requests

    base_url = f"http://{settings.host}:{settings.port}"

    try:
        response = requests.get(f"{base_url}/health", timeout=10)
        print(f"Health Check Status: {response.status_code}")
        print(json.dumps(response.json(), indent=2))

        response = requests.get(f"{base_url}/health/ready", timeout=10)
        print(f"\nReadiness Check Status: {response.status_code}")
        print(json.dumps(response.json(), indent=2))

        return response.status_code == 200

    except requests.exceptions.RequestException as e:
        print(f"Health check failed: {e}")
        return False


def log_progress(event):
    """Progress callback for the extract command"""
    logger = logging.getLogger("run.extract")
    level = logging.WARNING if event.status.value == "error" else logging.INFO
    logger.log(level, f"[{event.status.value}] {event.message}")


def run_extract(files, title, description="", output=None, service_url=None):
    """Extract questions from local PDFs through the extraction service"""
    from api.dependencies import get_large_file_extractor
    from models.extraction import SourceFile
    from services.chunk_uploader import ChunkUploader
    from services.large_file_extractor import LargeFileExtractor
    from services.pdf_splitter import PDFSplitter
    from utils.exceptions import FileExtractionError, DocumentParseError
    from utils.logging import setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)

    if service_url:
        extractor = LargeFileExtractor(
            uploader=ChunkUploader(service_url=service_url),
            splitter=PDFSplitter()
        )
    else:
        extractor = get_large_file_extractor()

    try:
        sources = [SourceFile.from_path(path) for path in files]
    except OSError as e:
        logger.error(f"Cannot read input file: {e}")
        return False

    try:
        result = extractor.extract(sources, title, description, on_progress=log_progress)
    except (FileExtractionError, DocumentParseError) as e:
        logger.error(f"Extraction failed: {e.message}")
        return False

    document = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(document, encoding="utf-8")
        logger.info(f"Wrote {len(result.questions)} questions to {output}")
    else:
        print(document)

    return True


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Quiz PDF Extractor Runner")
    parser.add_argument(
        "command",
        choices=["server", "health", "extract"],
        help="Command to run"
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="PDF files to extract questions from (extract only)"
    )
    parser.add_argument("--title", help="Quiz title (extract only)")
    parser.add_argument("--description", default="", help="Quiz description (extract only)")
    parser.add_argument("--output", help="Write the extraction result JSON to this path")
    parser.add_argument("--service-url", help="Extraction service URL (defaults to settings)")
    parser.add_argument(
        "--config",
        help="Path to an env file overriding .env"
    )

    args = parser.parse_args()

    if args.config:
        if not Path(args.config).is_file():
            parser.error(f"configuration file not found: {args.config}")
        os.environ["ENV_FILE"] = args.config
        reload_settings(args.config)

    if args.command == "server":
        run_server()
    elif args.command == "health":
        success = run_health_check()
        sys.exit(0 if success else 1)
    elif args.command == "extract":
        if not args.files or not args.title:
            parser.error("extract requires at least one PDF file and --title")
        success = run_extract(
            args.files,
            args.title,
            description=args.description,
            output=args.output,
            service_url=args.service_url
        )
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
