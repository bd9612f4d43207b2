"""Structured logging setup for the Data Safe toolkit.

Levels follow the shell tooling this package replaces:
- TRACE (5): DEBUG plus the OCI SDK request log
- DEBUG (10): resolution tiers, cache hits and misses, OCI calls
- INFO (20): per-target progress and summaries (default)
- WARN/WARNING, ERROR, FATAL/CRITICAL
"""

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

TRACE = 5

logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
    "CRITICAL": logging.CRITICAL,
}


class LogContext:
    """
    Context manager that adds key/value pairs to every log line inside it.

    Usage:
        with LogContext(command="refresh"):
            logger.info("Refreshing target", target=name)
    """

    def __init__(self, **kwargs: Any) -> None:
        self.new_context = kwargs
        self.token = None

    def __enter__(self) -> "LogContext":
        current = _log_context.get().copy()
        current.update(self.new_context)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.token:
            _log_context.reset(self.token)


class _ComponentFilter(logging.Filter):
    """Pass WARNING and above from every logger, lower levels only from matching ones."""

    def __init__(self, components: list[str]) -> None:
        super().__init__()
        self.components = components

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True
        return any(comp in record.name for comp in self.components)


def _context_processor(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor that injects the current log context."""
    context = _log_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def tracing_enabled() -> bool:
    """Whether the root logger is at TRACE, the level that turns on SDK request logging."""
    return logging.getLogger().isEnabledFor(TRACE)


def get_log_level(level: str) -> int:
    """
    Get numeric log level from string.

    Unknown names fall back to INFO.
    """
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def level_from_flags(
    level: str = "INFO", verbose: bool = False, debug: bool = False, quiet: bool = False
) -> str:
    """
    Map the -v/-d/-q command-line switches onto a level name.

    The most specific switch wins: --debug, then --verbose, then --quiet.
    """
    if debug:
        return "TRACE"
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
    log_filter: str | None = None,
) -> None:
    """
    Configure structlog on top of stdlib logging.

    Log output always goes to stderr so command output on stdout stays
    machine-readable (JSON/CSV).

    Args:
        level: Logging level name (see LOG_LEVELS)
        json_logs: Whether to render log lines as JSON
        log_file: Optional path to also write logs to
        log_filter: Comma-separated logger name fragments to keep (e.g. "resolver,cache")
    """
    log_level = get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )
    logging.getLogger().setLevel(log_level)

    # The OCI SDK is chatty at DEBUG; only show it when tracing
    if log_level > TRACE:
        logging.getLogger("oci").setLevel(max(log_level, logging.INFO))

    if log_filter:
        components = [c.strip() for c in log_filter.split(",") if c.strip()]
        for handler in handlers:
            handler.addFilter(_ComponentFilter(components))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _context_processor,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
