"""Structured logging for the companion pipeline.

All components log through structlog with dotted event names
(``text_monitor.caption_emitted``) and key-value fields. Records from
third-party libraries that use stdlib logging pass through the same
processor chain, so every line has the same shape.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import structlog
from structlog.typing import EventDict, Processor

# Libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName((level or "").strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _service_stamper(service_name: str | None) -> Processor:
    def stamp(_: Any, __: str, event_dict: EventDict) -> EventDict:
        if service_name:
            event_dict.setdefault("service", service_name)
        return event_dict

    return stamp


def _pre_chain(service_name: str | None) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        _service_stamper(service_name),
        structlog.processors.dict_tracebacks,
    ]


def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    level: str = "INFO",
    *,
    json_logs: bool = True,
    service_name: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Route structlog and stdlib logging to one handler.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            unknown names fall back to INFO
        json_logs: Render one JSON object per line instead of console output
        service_name: Added as ``service`` to records that do not carry one
        stream: Destination stream, ``sys.stdout`` by default. Tests pass a
            ``StringIO`` to capture output.
    """
    numeric_level = _resolve_level(level)
    pre_chain = _pre_chain(service_name)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_logs),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)
    logging.captureWarnings(True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str,
    *,
    correlation_id: str | None = None,
    service_name: str | None = None,
) -> structlog.stdlib.BoundLogger:
    """Return a logger for ``name`` with optional correlation and service fields."""
    bound: dict[str, str] = {}
    if correlation_id:
        bound["correlation_id"] = correlation_id
    if service_name:
        bound["service"] = service_name

    logger = structlog.stdlib.get_logger(name)
    return logger.bind(**bound) if bound else logger


@contextmanager
def correlation_context(
    correlation_id: str | None,
) -> Iterator[structlog.stdlib.BoundLogger]:
    """Tag every record logged inside the block with ``correlation_id``.

    The id lives in structlog's context variables, so it also reaches
    module-level loggers called from within the block. Any outer id is
    restored on exit.

    Example:
        with correlation_context("dispatch-1f2e3d") as logger:
            logger.info("dispatch.action_dispatched", action="say")
    """
    logger = structlog.stdlib.get_logger()
    if not correlation_id:
        yield logger
        return

    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
        yield logger


__all__ = [
    "configure_logging",
    "correlation_context",
    "get_logger",
]
