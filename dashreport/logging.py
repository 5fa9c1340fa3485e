"""Logging helpers built on femtologging.

Modules obtain a logger with :func:`get_logger` and emit through the
``log_*`` helpers. femtologging accepts finished strings only, so the helpers
interpolate percent-style arguments first. Lifecycle events use
:func:`log_event`, which renders ``[event] key=value`` lines that stay easy to
grep across organisations and jobs:

>>> from dashreport.logging import get_logger, log_event, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Resolved %d dashboards for %s", 3, "Acme")
>>> log_event(logger, "INFO", "reporting.job.created", org_id=1, job_id=42)

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger

DEFAULT_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Log levels accepted by femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return the upper-cased level and whether ``level`` was unusable.

    Unusable input (missing, blank, or unknown) falls back to ``INFO``.
    """
    normalized = (level or "").strip().upper()
    if normalized in LogLevel.__members__:
        return (normalized, False)
    return (DEFAULT_LEVEL, True)


def configure_logging(
    level: str | None,
    *,
    verbose: bool = False,
    force: bool = False,
) -> tuple[str, bool]:
    """Configure femtologging and return the level that was applied.

    Parameters
    ----------
    level : str | None
        Level name from ``--log-level`` or settings.
    verbose : bool, optional
        Apply ``DEBUG`` regardless of ``level``.
    force : bool, optional
        Replace any existing handler configuration.

    Returns
    -------
    tuple[str, bool]
        The applied level and a flag indicating that ``level`` was unusable.

    """
    normalized, invalid = normalize_log_level(level)
    if verbose:
        normalized = LogLevel.DEBUG.value
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Format a log message using percent-style interpolation."""
    if not args:
        return template
    return template % args


def format_fields(**fields: object) -> str:
    """Render ``fields`` as space-separated ``key=value`` pairs, in order."""
    return " ".join(f"{key}={value}" for key, value in fields.items())


class _SupportsLog(typ.Protocol):
    """Protocol for femtologging-compatible loggers."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: str,
    message: str,
    exc_info: object | None = None,
) -> None:
    logger.log(level, message, exc_info=exc_info, stack_info=False)


def log_debug(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a DEBUG message with percent-style formatting."""
    _emit(logger, "DEBUG", format_log_message(template, *args), exc_info)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message with percent-style formatting."""
    _emit(logger, "INFO", format_log_message(template, *args), exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting."""
    _emit(logger, "WARNING", format_log_message(template, *args), exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an ERROR message with percent-style formatting."""
    _emit(logger, "ERROR", format_log_message(template, *args), exc_info)


def log_event(
    logger: _SupportsLog,
    level: str,
    event: str,
    **fields: object,
) -> None:
    """Log a lifecycle ``event`` with its fields as ``[event] key=value`` pairs.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the event.
    level : str
        femtologging level name.
    event : str
        Dotted event identifier such as ``reporting.job.created``.
    **fields : object
        Event attributes, rendered in the order given.

    """
    message = f"[{event}] {format_fields(**fields)}" if fields else f"[{event}]"
    _emit(logger, level, message)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached as exc_info."""
    _emit(logger, "ERROR", message, exc)


__all__ = [
    "DEFAULT_LEVEL",
    "LogLevel",
    "configure_logging",
    "format_fields",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_event",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
