"""
Structured logging for the QSL tracker services.

structlog renders every record (ours and stdlib ones from uvicorn/httpx) to
stdout; when a ``LogConfigStore`` is supplied, the same records are also
written as JSON lines to the size-bounded log file the API serves.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from shared.config import Environment, Settings, get_settings
from shared.utils.log_sink import BoundedFileHandler, LogConfigStore

QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio")

PreChain = list[structlog.types.Processor]


def _pre_chain() -> PreChain:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _formatter(pre_chain: PreChain, *renderers: structlog.types.Processor) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
        foreign_pre_chain=pre_chain,
    )


def setup_logging(
    service_name: str,
    settings: Settings | None = None,
    log_config: LogConfigStore | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Configure structured logging for a service.

    Args:
        service_name: The service identifier (api, scheduler, export, poll-once).
        settings: Settings to read the level and environment from.
        log_config: When given, records are also appended to the bounded log file.
        extra_context: Additional static context fields bound to every log entry.
    """
    settings = settings or get_settings()
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if settings.environment == Environment.DEV:
        console = _formatter(pre_chain, structlog.dev.ConsoleRenderer(colors=True))
    else:
        console = _formatter(
            pre_chain, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()
        )
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(console)
    handlers: list[logging.Handler] = [stream]

    if log_config is not None:
        # operators read this file back through /api/logs, so it is JSON in every environment
        bounded = BoundedFileHandler(settings.log_path, log_config)
        bounded.setFormatter(
            _formatter(
                pre_chain,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(ensure_ascii=False),
            )
        )
        handlers.append(bounded)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Static context on every line
    structlog.contextvars.clear_contextvars()
    context: dict[str, Any] = {"service": service_name}
    if settings.instance_id:
        context["instance_id"] = settings.instance_id
    context.update(extra_context or {})
    structlog.contextvars.bind_contextvars(**context)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
