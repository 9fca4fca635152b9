"""
Structured logging for the swap backend.

Modules log through the standard library (``logging.getLogger(__name__)``);
structlog renders every record, JSON lines by default and a console view when
running at DEBUG. Values bound with ``settlement_context`` (wallet, pair) are
attached to every record emitted while a swap is being settled.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

import structlog

from .config import settings


_NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _pre_chain() -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def setup_logging(log_level: Optional[str] = None, *, json_logs: Optional[bool] = None) -> None:
    """Install the structlog formatter on the root logger.

    Args:
        log_level: Override log level (default: settings.log_level)
        json_logs: Force JSON (True) or console (False) output; default is JSON unless DEBUG
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    pre_chain = _pre_chain()
    if json_logs:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def settlement_context(**fields: object) -> Iterator[None]:
    """Attach ``fields`` to every log record emitted inside the block."""

    with structlog.contextvars.bound_contextvars(**fields):
        yield
