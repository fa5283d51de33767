"""Structured logging setup using structlog.

One processor chain (context vars, level, ISO timestamp, stack info) feeds
either a coloured console renderer for local work or a JSON renderer when
``APP_ENV=production`` / ``json_output=True``.  The stdlib root logger is
routed through the same chain so uvicorn and httpx lines look like ours.
While a batch is advanced, ``dataset_log_context`` tags every event with
the dataset being analyzed.
"""

import logging
import os
import sys
from contextlib import AbstractContextManager

import structlog


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog for the process.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON lines regardless of ``APP_ENV``.

    Returns:
        The root structlog logger.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound with ``logger_name=name``.

    Configures logging with defaults on first use.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)


def dataset_log_context(dataset_id: str) -> AbstractContextManager[None]:
    """Bind ``dataset_id`` to every log line emitted inside the block.

    Uses structlog context vars, so provider and store events logged while
    a batch is analyzed carry the dataset they belong to; tasks spawned
    inside the block inherit the binding.
    """
    return structlog.contextvars.bound_contextvars(dataset_id=dataset_id)
