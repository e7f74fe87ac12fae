"""
Structured logging setup.

Logs go to stdout as JSON lines so they can be grepped or shipped as-is.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", env: str = "dev"):
    """
    Configure stdlib logging + structlog JSON rendering.

    Returns a logger bound with service/env context, e.g.:
    {"event": "split.items.ok", "level": "info", "timestamp": "...",
     "service": "billsplit", "env": "dev", "parties": 3}
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("billsplit").bind(service="billsplit", env=env)
