"""
Structured Logging for dynconf

Provides structured JSON logging with refresh-cycle correlation, pluggable
formatters and handlers for different output destinations.
"""

import json
import sys
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

# Context variables for refresh correlation
refresh_id_var: ContextVar[Optional[str]] = ContextVar('refresh_id', default=None)
source_name_var: ContextVar[Optional[str]] = ContextVar('source_name', default=None)


class LogLevel(Enum):
    """Log levels for the structured logger"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
    LogLevel.CRITICAL: 4
}


class LogFormatter(ABC):
    """Abstract base class for log formatters"""

    @abstractmethod
    def format(self, record: Dict[str, Any]) -> str:
        """Format a log record into a string"""
        pass


class JSONLogFormatter(LogFormatter):
    """JSON formatter for structured logging"""

    def format(self, record: Dict[str, Any]) -> str:
        return json.dumps(record, default=str, ensure_ascii=False)


class HumanReadableFormatter(LogFormatter):
    """Human-readable formatter for development/debugging"""

    def format(self, record: Dict[str, Any]) -> str:
        base_msg = f"[{record.get('timestamp', '')}] {record.get('level', '')}: {record.get('message', '')}"

        refresh_id = record.get('refresh_id')
        if refresh_id:
            base_msg += f" [refresh_id={refresh_id}]"

        if record.get('extra'):
            extra_str = ', '.join(f"{k}={v}" for k, v in record['extra'].items())
            base_msg += f" [{extra_str}]"

        return base_msg


class LogHandler(ABC):
    """Abstract base class for log handlers"""

    def __init__(self, formatter: LogFormatter):
        self.formatter = formatter

    @abstractmethod
    def emit(self, record: Dict[str, Any]) -> None:
        """Emit a log record"""
        pass


class ConsoleLogHandler(LogHandler):
    """Console log handler that writes to a stream (stderr by default)"""

    def __init__(self, formatter: LogFormatter, stream: TextIO = sys.stderr):
        super().__init__(formatter)
        self.stream = stream
        self._lock = threading.Lock()

    def emit(self, record: Dict[str, Any]) -> None:
        formatted_message = self.formatter.format(record)
        with self._lock:
            self.stream.write(formatted_message + '\n')
            self.stream.flush()


class FileLogHandler(LogHandler):
    """File log handler that appends to a file"""

    def __init__(self, formatter: LogFormatter, file_path: Union[str, Path]):
        super().__init__(formatter)
        self.file_path = Path(file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def emit(self, record: Dict[str, Any]) -> None:
        formatted_message = self.formatter.format(record)
        with self._lock:
            with open(self.file_path, 'a', encoding='utf-8') as f:
                f.write(formatted_message + '\n')


class MemoryLogHandler(LogHandler):
    """Keeps records in memory; used by tests and diagnostics endpoints."""

    def __init__(self, formatter: Optional[LogFormatter] = None, capacity: int = 1000):
        super().__init__(formatter or JSONLogFormatter())
        self.capacity = capacity
        self.records: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def emit(self, record: Dict[str, Any]) -> None:
        with self._lock:
            self.records.append(dict(record))
            if len(self.records) > self.capacity:
                self.records.pop(0)

    def clear(self) -> None:
        with self._lock:
            self.records.clear()

    def get_records(self, level: Optional[LogLevel] = None) -> List[Dict[str, Any]]:
        with self._lock:
            records = list(self.records)
        if level is None:
            return records
        return [r for r in records if r.get('level') == level.value]

    def has_record_with_message(self, message: str) -> bool:
        return any(message in r.get('message', '') for r in self.get_records())


class DynconfLogger:
    """
    Structured logger with refresh-cycle correlation.

    Features:
    - Structured JSON records
    - Refresh ID and source name tracking through context variables
    - Multiple output handlers (console, file, memory)
    - Records propagate to the parent logger ("dynconf.refresh" -> "dynconf")
    - A logger without its own level uses the nearest ancestor's level
    """

    def __init__(self, name: str, level: Optional[LogLevel] = LogLevel.INFO, parent: Optional['DynconfLogger'] = None):
        self.name = name
        self.level = level
        self.parent = parent
        self.handlers: List[LogHandler] = []

    def add_handler(self, handler: LogHandler) -> None:
        self.handlers.append(handler)

    def remove_handler(self, handler: LogHandler) -> None:
        if handler in self.handlers:
            self.handlers.remove(handler)

    def set_level(self, level: Optional[LogLevel]) -> None:
        self.level = level

    def get_effective_level(self) -> LogLevel:
        logger: Optional[DynconfLogger] = self
        while logger is not None:
            if logger.level is not None:
                return logger.level
            logger = logger.parent
        return LogLevel.INFO

    def _should_log(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.get_effective_level()]

    def _create_log_record(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level.value,
            'logger': self.name,
            'message': message,
            'refresh_id': refresh_id_var.get(),
            'source_name': source_name_var.get(),
        }

        if extra:
            record['extra'] = extra

        # Drop unset context to keep records small
        return {k: v for k, v in record.items() if v is not None}

    def _emit(self, record: Dict[str, Any]) -> None:
        logger: Optional[DynconfLogger] = self
        while logger is not None:
            for handler in list(logger.handlers):
                try:
                    handler.emit(record)
                except Exception as e:
                    sys.stderr.write(f"Logging handler failed: {e}\n")
            logger = logger.parent

    def _log(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        if not self._should_log(level):
            return
        self._emit(self._create_log_record(level, message, extra))

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: Optional[BaseException] = None) -> None:
        """Log error message with optional exception info"""
        if exc_info:
            extra = dict(extra or {})
            extra['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info),
                'module': type(exc_info).__module__
            }
        self._log(LogLevel.ERROR, message, extra)

    @contextmanager
    def refresh_context(self, refresh_id: Optional[str] = None):
        """Context manager tagging every record with the current refresh cycle"""
        if refresh_id is None:
            refresh_id = str(uuid.uuid4())

        token = refresh_id_var.set(refresh_id)
        try:
            yield refresh_id
        finally:
            refresh_id_var.reset(token)

    @contextmanager
    def source_context(self, source_name: str):
        token = source_name_var.set(source_name)
        try:
            yield source_name
        finally:
            source_name_var.reset(token)


# Logger registry; children resolve their parent by dotted name
_loggers: Dict[str, DynconfLogger] = {}
_registry_lock = threading.Lock()

ROOT_LOGGER_NAME = "dynconf"


def get_logger(name: str = ROOT_LOGGER_NAME, level: Optional[LogLevel] = None) -> DynconfLogger:
    """
    Get or create a logger instance.

    Without an explicit level a new child logger follows its parent, so
    setting the level of "dynconf" applies to every "dynconf.*" logger.
    """
    with _registry_lock:
        return _get_or_create(name, level)


def _get_or_create(name: str, level: Optional[LogLevel]) -> DynconfLogger:
    if name in _loggers:
        return _loggers[name]
    parent = None
    if '.' in name:
        parent = _get_or_create(name.rsplit('.', 1)[0], None)
    if level is None and parent is None:
        level = LogLevel.INFO
    logger = DynconfLogger(name, level, parent)
    _loggers[name] = logger
    return logger


# Handlers installed by configure_default_logging, replaced on reconfiguration
_default_handlers: List[LogHandler] = []


def configure_default_logging(
    level: LogLevel = LogLevel.INFO,
    use_json: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True
) -> DynconfLogger:
    """Install console and/or file handlers on the root dynconf logger"""
    formatter = JSONLogFormatter() if use_json else HumanReadableFormatter()

    root_logger = get_logger(ROOT_LOGGER_NAME)
    root_logger.set_level(level)

    with _registry_lock:
        for handler in _default_handlers:
            root_logger.remove_handler(handler)
        _default_handlers.clear()

        if console:
            _default_handlers.append(ConsoleLogHandler(formatter))
        if log_file:
            _default_handlers.append(FileLogHandler(formatter, log_file))

        for handler in _default_handlers:
            root_logger.add_handler(handler)

    return root_logger


def get_refresh_id() -> Optional[str]:
    """Get the refresh cycle ID bound to the current context"""
    return refresh_id_var.get()
