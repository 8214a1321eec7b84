"""
Structured Logging - Monitoring Layer

Provides structured logging for the relay with:
- JSON formatting for log aggregation
- Connection context injection (connection id, session id, user name)
- Per-module log levels
- Environment presets

@.architecture
Incoming: app.py, ws/*.py, core/sessions/store.py, All modules via get_logger() --- {str log_level, str format_type, Dict[str, str] module_levels, connection context values}
Processing: configure_logging(), JSONFormatter.format(), set_connection_context(), StructuredLogger._log_with_context() --- {4 jobs: context_injection, formatting, log_configuration, structured_logging}
Outgoing: sys.stdout, Log files, All modules --- {StructuredLogger instances, JSON formatted logs, context variables}
"""

import logging
import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar
from pathlib import Path

# Context variables for connection tracking
connection_id_ctx: ContextVar[Optional[str]] = ContextVar('connection_id', default=None)
session_id_ctx: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
user_name_ctx: ContextVar[Optional[str]] = ContextVar('user_name', default=None)


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs one JSON object per record for log aggregation systems.
    """

    def __init__(
        self,
        include_traceback: bool = True,
        include_context: bool = True
    ):
        """
        Initialize JSON formatter.

        Args:
            include_traceback: Include exception traceback in output
            include_context: Include connection context variables
        """
        super().__init__()
        self.include_traceback = include_traceback
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if self.include_context:
            connection_id = connection_id_ctx.get()
            session_id = session_id_ctx.get()
            user_name = user_name_ctx.get()

            if connection_id:
                log_data['connection_id'] = connection_id
            if session_id:
                log_data['session_id'] = session_id
            if user_name:
                log_data['user_name'] = user_name

        if record.exc_info and self.include_traceback:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'extra_fields'):
            log_data['extra'] = record.extra_fields

        return json.dumps(log_data, default=str)


class ContextFilter(logging.Filter):
    """
    Logging filter that adds connection context to log records.

    Lets text formatters reference %(connection_id)s and %(session_id)s.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.connection_id = (connection_id_ctx.get() or '-')[:8]
        record.session_id = session_id_ctx.get() or '-'
        record.user_name = user_name_ctx.get() or '-'
        return True


class StructuredLogger:
    """
    Wrapper for Python logger with structured logging support.

    Keyword arguments become structured fields on the record.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log_with_context(
        self,
        level: int,
        message: str,
        exc_info: Any = None,
        **kwargs: Any
    ) -> None:
        extra = {'extra_fields': kwargs} if kwargs else {}
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: Any = None, **kwargs: Any) -> None:
        self._log_with_context(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._logger.exception(message, extra={'extra_fields': kwargs} if kwargs else {})


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[Path] = None,
    enable_console: bool = True,
    module_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ("json" or "text")
        log_file: Optional file path for log output
        enable_console: Enable console (stdout) logging
        module_levels: Per-module log levels (e.g. {"uvicorn.access": "WARNING"})
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-24s | [%(connection_id)s %(session_id)s] | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handlers = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(ContextFilter())
        handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(ContextFilter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    for handler in handlers:
        root_logger.addHandler(handler)

    if module_levels:
        for module_name, module_level in module_levels.items():
            module_log_level = getattr(logging, module_level.upper(), logging.INFO)
            logging.getLogger(module_name).setLevel(module_log_level)

    # Silence noisy libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('websockets').setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get structured logger for module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)


def set_connection_context(
    connection_id: Optional[str] = None,
    session_id: Optional[str] = None,
    user_name: Optional[str] = None
) -> None:
    """
    Set context variables for the frame being handled.

    Unset values are cleared so a previous binding never leaks into the record.
    """
    connection_id_ctx.set(connection_id)
    session_id_ctx.set(session_id)
    user_name_ctx.set(user_name)


def clear_connection_context() -> None:
    """Clear all context variables."""
    connection_id_ctx.set(None)
    session_id_ctx.set(None)
    user_name_ctx.set(None)


def get_connection_id() -> Optional[str]:
    return connection_id_ctx.get()


def get_session_id() -> Optional[str]:
    return session_id_ctx.get()


def get_user_name() -> Optional[str]:
    return user_name_ctx.get()


# Default configuration presets
LOGGING_PRESETS = {
    'development': {
        'level': 'INFO',
        'format_type': 'text',
        'enable_console': True,
        'module_levels': {
            'asyncio': 'WARNING',
            'websockets': 'WARNING',
        }
    },
    'production': {
        'level': 'INFO',
        'format_type': 'json',
        'enable_console': True,
        'module_levels': {
            'uvicorn.access': 'WARNING',
            'asyncio': 'WARNING',
            'websockets': 'WARNING',
        }
    },
    'testing': {
        'level': 'WARNING',
        'format_type': 'text',
        'enable_console': True,
        'module_levels': {}
    }
}


def configure_from_preset(preset: str = 'development', **overrides: Any) -> None:
    """
    Configure logging from preset.

    Args:
        preset: Preset name ('development', 'production', or 'testing')
        **overrides: Override preset values
    """
    if preset not in LOGGING_PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Available: {list(LOGGING_PRESETS.keys())}")

    config = LOGGING_PRESETS[preset].copy()
    config.update(overrides)

    configure_logging(**config)
