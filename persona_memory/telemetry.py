"""
Structured logging for memory engine operations.

Every public engine call emits one `memory_operation` event with its
duration and scope; module loggers keep using the stdlib `logging` API and
share the same handlers.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog

from persona_memory.config.settings import LoggingSettings


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        settings: Log level and renderer (default: LoggingSettings())
    """
    settings = settings or LoggingSettings()
    level = getattr(logging, settings.level.upper(), logging.INFO)

    logging.basicConfig(level=level, format="%(message)s")

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "persona_memory") -> Any:
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)


def log_operation(
    operation: str,
    owner_id: str,
    persona_id: str,
    ms: float,
    **extra: Any,
) -> None:
    """
    Log one engine operation with timing.

    Args:
        operation: Engine method name (e.g., "search_memories")
        owner_id: Owner of the memory scope
        persona_id: Persona of the memory scope
        ms: Duration in milliseconds
        **extra: Operation-specific fields (counts, thresholds)
    """
    get_logger("persona_memory.telemetry").info(
        "memory_operation",
        operation=operation,
        owner_id=owner_id,
        persona_id=persona_id,
        duration_ms=round(ms, 3),
        **extra,
    )


@contextmanager
def timed_operation(
    operation: str,
    owner_id: str,
    persona_id: str,
) -> Iterator[Dict[str, Any]]:
    """
    Time a block and log it on success.

    The yielded dict collects extra fields for the log event.
    """
    extra: Dict[str, Any] = {}
    start = time.perf_counter()
    yield extra
    log_operation(operation, owner_id, persona_id, (time.perf_counter() - start) * 1000, **extra)
