"""
Logging Configuration for the Marketplace Analytics Engine

structlog events and plain stdlib records (uvicorn, sqlalchemy) share one
processor chain and one stdout handler, rendered as JSON lines or as
coloured console output depending on ``LOG_FORMAT``.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.stdlib import ProcessorFormatter
from structlog.types import EventDict, Processor

from analytics_engine.config.settings import Settings, get_settings

# Libraries whose loggers are routed through our handler
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "gunicorn.error")


def _service_context(settings: Settings) -> Processor:
    """Processor stamping every event with the service name and environment."""

    def add_service(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("env", settings.app_env)
        return event_dict

    return add_service


def _pre_chain(settings: Settings) -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_context(settings),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structured logging for the application.

    Safe to call more than once; handlers are replaced, not stacked.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = get_settings()
    level = (log_level or settings.monitoring.log_level).upper()
    numeric_level = getattr(logging, level, logging.INFO)
    pre_chain = _pre_chain(settings)

    structlog.configure(
        processors=pre_chain + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[
                ProcessorFormatter.remove_processors_meta,
                _renderer(settings.monitoring.log_format),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = []
        routed.propagate = True

    # Request logging middleware already records every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # SQL echo is controlled by POSTGRES_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
    )
