"""
structlog setup for BaseSplit.

Level and renderer come from Settings (LOG_LEVEL, LOG_FORMAT). Loggers are
lazy: get_logger() may be called at import time and still picks up the
configuration applied by setup_logging(). Address values (wallet, payer,
recipient) are lowercased before rendering, so log lines match the stored
addresses.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog

from basesplit.core.config import settings

ADDRESS_KEYS = ("wallet", "payer", "recipient")


def _lowercase_addresses(logger, method_name, event_dict):
    for key in ADDRESS_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = value.lower()
    return event_dict


def setup_logging(
    level: str = settings.LOG_LEVEL,
    log_format: str = settings.LOG_FORMAT,
    stream: Optional[TextIO] = None,
) -> None:
    if stream is None:
        stream = sys.stdout
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        level_value = logging.INFO

    if log_format.strip().lower() == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _lowercase_addresses,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    setup_logging()


def get_logger(name: str):
    """Lazy structured logger; call sites log an event name then keyword context."""
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(name: str, wallet_address: str):
    return structlog.get_logger(name).bind(logger=name, wallet=wallet_address.lower())
