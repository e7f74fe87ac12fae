from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import structlog

EventCallback = Callable[[str, Dict[str, Any]], None]

EVENT_NAMES = frozenset(
    {
        "split_items",
        "split_total",
        "fee_forward",
        "fee_reverse",
        "receipt_parse",
    }
)


def log_event(name: str, payload: Dict[str, Any]) -> None:
    """Default sink: usage events become debug log lines."""
    structlog.get_logger("billsplit.events").debug("event", name=name, **payload)


class EventEmitter:
    """
    Forwards usage events to an injected callback.

    Nothing here is process-wide: each Flask app owns its emitter.
    """

    def __init__(self, callback: Optional[EventCallback] = None):
        self._callback = callback or log_event

    def emit(self, name: str, payload: Optional[Dict[str, Any]] = None) -> None:
        if name not in EVENT_NAMES:
            raise ValueError(f"unknown event name: {name}")
        self._callback(name, dict(payload or {}))
