"""
callbatch logging - structured, batch-aware logging.

This package provides:
- Structured logging with structlog
- Batch context propagation via contextvars
- Step timing with span ids

Usage:
    from callbatch.logging import configure_logging, get_logger, log_step, set_context

    configure_logging()
    log = get_logger(__name__)

    set_context(batch_id="a1b2c3", mode="deployless")
    with log_step("batch.dispatch", size=3):
        dispatch(request)
"""

from callbatch.logging.config import configure_logging, is_configured, is_debug_enabled
from callbatch.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)
from callbatch.logging.timing import TimingResult, log_step

__all__ = [
    "configure_logging",
    "is_configured",
    "is_debug_enabled",
    "LogContext",
    "get_logger",
    "set_context",
    "bind_context",
    "clear_context",
    "get_context",
    "push_context",
    "log_step",
    "TimingResult",
]
