from __future__ import annotations

import logging
import logging.config
import sys
from typing import Any

import structlog

from cehennemarr.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# httpx/httpcore log every request at INFO/DEBUG; the fetcher logs its own events.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "hpack")


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self._max_level


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """
    Build a dictConfig that renders every stdlib record through structlog.

    - DEBUG/INFO/WARNING -> stdout, ERROR/CRITICAL -> stderr
    - Foreign (non-structlog) records get the same timestamp/level/logger keys.
    """
    level = config.log_level

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "below_error": {
                "()": _MaxLevelFilter,
                "max_level": logging.WARNING,
            },
        },
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": [
                    structlog.contextvars.merge_contextvars,
                    structlog.processors.TimeStamper(fmt="iso", utc=True),
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.add_log_level,
                ],
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _renderer(config),
                ],
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "structlog",
                "filters": ["below_error"],
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "structlog",
                "level": "ERROR",
            },
        },
        "loggers": {
            name: {"level": "WARNING", "propagate": True} for name in _NOISY_LOGGERS
        },
        "root": {"handlers": ["stdout", "stderr"], "level": level},
    }


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """
    Configure structlog + stdlib logging.

    Returns the applied dictConfig (useful for debugging/inspection).
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)

    log.info(
        "logging_configured",
        log_format=config.log_format,
        log_level=config.log_level,
        python=sys.version.split()[0],
    )
    return cfg
