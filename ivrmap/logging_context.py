"""Correlation ID logging context for tracing a single provider call.

Provides a call_id-aware logger that attaches the provider call id to
every log record, so one discovery iteration (place, poll, transcript,
merge, persist) can be followed end to end in the logs.

Usage:
    from ivrmap.logging_context import get_call_logger, set_call_id

    set_call_id("c3f1a2b4")
    logger = get_call_logger(__name__)
    logger.info("Polling call")  # → ... [c3f1a2b4] INFO: Polling call
"""

import logging
from contextvars import ContextVar

NO_CALL_ID = "-"

_call_id: ContextVar[str] = ContextVar("call_id", default=NO_CALL_ID)


def set_call_id(call_id: str) -> None:
    """Set the correlation ID for the current context."""
    _call_id.set(call_id)


def get_call_id() -> str:
    """Retrieve the current correlation ID."""
    return _call_id.get()


def clear_call_id() -> None:
    """Reset the correlation ID once an iteration has finished."""
    _call_id.set(NO_CALL_ID)


class CallIdFilter(logging.Filter):
    """Injects call_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "call_id"):
            record.call_id = _call_id.get()  # type: ignore[attr-defined]
        return True


def get_call_logger(name: str) -> logging.Logger:
    """Return a logger with the CallIdFilter attached.

    The filter adds ``call_id`` to each record so formatters can
    include ``%(call_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CallIdFilter) for f in logger.filters):
        logger.addFilter(CallIdFilter())
    return logger
