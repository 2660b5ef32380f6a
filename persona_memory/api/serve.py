"""
Server launcher for the persona memory API.

Bind address, worker count, database and log level default to the
PERSONA_MEMORY_* settings; command-line flags override them. Overrides that
the app itself reads at startup (database path, log level) are exported to
the environment so worker and reload processes see the same values.
"""

import argparse
import os
from typing import List, Optional

import uvicorn

from persona_memory.config.settings import Settings, load_settings
from persona_memory.telemetry import configure_logging, get_logger

APP_PATH = "persona_memory.api.main:app"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Argument parser whose defaults come from `settings`."""
    parser = argparse.ArgumentParser(description="Launch the Persona Memory API server")
    parser.add_argument("--host", default=settings.server.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.server.port, help="Port to bind to")
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.server.workers,
        help="Number of worker processes",
    )
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--db", default=settings.storage.db_path, help="Path to the memory database")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.logging.level.upper(),
        help="Log level for the app and uvicorn",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if args.reload and args.workers > 1:
        parser.error("--reload cannot be combined with --workers > 1")

    os.environ["PERSONA_MEMORY_DB_PATH"] = args.db
    os.environ["PERSONA_MEMORY_LOG_LEVEL"] = args.log_level
    settings.logging.level = args.log_level
    configure_logging(settings.logging)

    get_logger(__name__).info(
        "server_starting",
        host=args.host,
        port=args.port,
        workers=args.workers,
        db_path=args.db,
        docs_url=f"http://{args.host}:{args.port}/docs",
    )

    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers,
        log_level=args.log_level.lower(),
    )
    return 0
