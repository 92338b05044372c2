"""
Logging setup for the API process and the CLI.

Modules log through ``logging.getLogger(__name__)``; this routes those records
through structlog so every line carries a timestamp, level and logger name.
JSON lines by default, a colored console at DEBUG.
"""

import logging
import sys
from typing import List, Optional

import structlog

from .config import settings

# Every RPC attempt and price call goes through httpx
NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _pre_chain(include_exc_info: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if include_exc_info:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(log_level: Optional[str] = None, *, stream=None) -> None:
    """Install the structlog formatter on the root logger.

    Args:
        log_level: Override for ``settings.log_level``
        stream: Output stream, stdout by default
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    console = level <= logging.DEBUG

    pre_chain = _pre_chain(include_exc_info=not console)
    renderer = structlog.dev.ConsoleRenderer() if console else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
