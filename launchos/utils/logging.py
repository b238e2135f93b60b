"""Logging configuration using structlog, plus the in-memory diagnostic log."""

import json
import logging
import sys
import threading
from collections import deque
from functools import lru_cache
from typing import Any, Callable

import structlog
from pydantic_core import to_jsonable_python

from launchos.config import settings
from launchos.models.log import LogEntry, LogLevel
from launchos.utils.clock import Clock, utc_now

LogSink = Callable[[LogLevel, str, Any], None]

DEFAULT_MAX_LOGS = 1000


def configure_logging() -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level),
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Add renderer based on format
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def console_sink(level: LogLevel, line: str, data: Any) -> None:
    """Forward a formatted diagnostic line to the structlog console stream."""
    logger = get_logger("diagnostics")
    emit = {
        LogLevel.DEBUG: logger.debug,
        LogLevel.INFO: logger.info,
        LogLevel.WARN: logger.warning,
        LogLevel.ERROR: logger.error,
    }[level]
    if data is None:
        emit(line)
    else:
        emit(line, data=data)


class DiagnosticLog:
    """Bounded, FIFO-evicting buffer of diagnostic log entries.

    Entries are kept in insertion order; once ``max_logs`` entries are held,
    each append evicts the oldest one. Every entry is also written to a sink,
    except DEBUG entries when not running in development mode.

    All buffer operations take a lock so the log can be shared between the
    event loop and worker threads.
    """

    def __init__(
        self,
        max_logs: int = DEFAULT_MAX_LOGS,
        development: bool = True,
        clock: Clock | None = None,
        sink: LogSink | None = None,
    ):
        if max_logs < 1:
            raise ValueError("max_logs must be at least 1")
        self.max_logs = max_logs
        self.development = development
        self._clock = clock or utc_now
        self._sink = sink or console_sink
        self._entries: deque[LogEntry] = deque(maxlen=max_logs)
        self._lock = threading.Lock()

    def log(
        self,
        level: LogLevel,
        message: str,
        context: str | None = None,
        data: Any = None,
    ) -> LogEntry:
        """Append an entry and emit it to the sink. Never raises."""
        entry = LogEntry(
            level=level,
            timestamp=self._clock(),
            message=str(message),
            context=context,
            data=_jsonable(data),
        )
        with self._lock:
            self._entries.append(entry)
        self._output(entry)
        return entry.model_copy(deep=True)

    def debug(self, message: str, context: str | None = None, data: Any = None) -> LogEntry:
        return self.log(LogLevel.DEBUG, message, context, data)

    def info(self, message: str, context: str | None = None, data: Any = None) -> LogEntry:
        return self.log(LogLevel.INFO, message, context, data)

    def warn(self, message: str, context: str | None = None, data: Any = None) -> LogEntry:
        return self.log(LogLevel.WARN, message, context, data)

    def error(self, message: str, context: str | None = None, data: Any = None) -> LogEntry:
        return self.log(LogLevel.ERROR, message, context, data)

    def get_logs(self, level: LogLevel | None = None) -> list[LogEntry]:
        """Return copies of the buffered entries, oldest first.

        Entries are deep-copied so callers cannot reach into the buffer
        through a mutable ``data`` payload.
        """
        with self._lock:
            entries = list(self._entries)
        return [
            e.model_copy(deep=True)
            for e in entries
            if level is None or e.level == level
        ]

    def clear_logs(self) -> None:
        """Drop every buffered entry."""
        with self._lock:
            self._entries.clear()

    def export_logs(self) -> str:
        """Serialize the whole buffer as a JSON array."""
        entries = self.get_logs()
        return json.dumps(
            [entry.model_dump(mode="json") for entry in entries],
            indent=2,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @staticmethod
    def format_line(entry: LogEntry) -> str:
        """Render ``[timestamp] [LEVEL] [context] message``."""
        prefix = f"[{entry.timestamp.isoformat()}] [{entry.level.value}]"
        if entry.context:
            prefix += f" [{entry.context}]"
        return f"{prefix} {entry.message}"

    def _output(self, entry: LogEntry) -> None:
        if entry.level == LogLevel.DEBUG and not self.development:
            return
        try:
            self._sink(entry.level, self.format_line(entry), entry.data)
        except Exception:
            # A broken sink must not break the caller; the entry is buffered.
            get_logger(__name__).exception("diagnostics.sink_failed")


def _jsonable(data: Any) -> Any:
    if data is None:
        return None
    try:
        return to_jsonable_python(data, serialize_unknown=True)
    except Exception:
        return repr(data)


@lru_cache
def get_diagnostic_log() -> DiagnosticLog:
    """Get the process-wide diagnostic log."""
    return DiagnosticLog(
        max_logs=settings.log_buffer_size,
        development=settings.is_development,
    )
