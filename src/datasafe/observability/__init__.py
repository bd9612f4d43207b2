"""Observability - structured logging."""

from .logger import (
    LogContext,
    configure_logging,
    get_log_level,
    level_from_flags,
    tracing_enabled,
)

__all__ = [
    "configure_logging",
    "get_log_level",
    "level_from_flags",
    "tracing_enabled",
    "LogContext",
]
