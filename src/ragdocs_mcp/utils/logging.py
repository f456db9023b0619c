"""
Structured logging for the RAG Docs MCP Server.

Server activity goes to a daily-rotated JSON log and errors are copied to a
separate, longer-lived error log. Console output is written to stderr
because stdout carries the MCP stdio transport.
"""

import inspect
import functools
import json
import logging
import os
import sys
import time
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "ragdocs_mcp"

# LogRecord attributes that are not user supplied extras
_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message',
})


class JsonFormatter(logging.Formatter):
    """Custom formatter that outputs JSON structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ServerLogger:
    """Owns the file handlers attached to the package logger."""

    def __init__(self, base_log_dir: Optional[Path] = None, level: str = "INFO"):
        if base_log_dir is None:
            base_log_dir = Path.home() / ".mcp-servers" / "ragdocs" / "logs"

        self.base_log_dir = Path(base_log_dir)
        self.server_log_dir = self.base_log_dir / "server"
        self.errors_log_dir = self.base_log_dir / "errors"

        for dir_path in (self.server_log_dir, self.errors_log_dir):
            dir_path.mkdir(parents=True, exist_ok=True)
            os.chmod(dir_path, 0o700)

        self._formatter = JsonFormatter()
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.addHandler(self._file_handler(self.server_log_dir, logging.DEBUG, backup_count=7))
        # Keep error logs longer
        self.logger.addHandler(self._file_handler(self.errors_log_dir, logging.ERROR, backup_count=30))

    def _file_handler(self, directory: Path, level: int, backup_count: int) -> logging.Handler:
        handler = TimedRotatingFileHandler(
            directory / "ragdocs.log",
            when='midnight',
            interval=1,
            backupCount=backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(self._formatter)
        return handler

    def close(self):
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()


_logger_instance: Optional[ServerLogger] = None


def configure_logging(log_dir: Optional[Path] = None, level: str = "INFO") -> logging.Logger:
    """Attach JSON file handlers to the package logger and a console handler on stderr."""
    global _logger_instance

    if _logger_instance is not None:
        _logger_instance.close()
    _logger_instance = ServerLogger(log_dir, level)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )
    return _logger_instance.logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the package namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_operation(operation_name: str):
    """Decorator to log an operation's start, completion and failure with timing.

    Works for both plain functions and coroutine functions.
    """
    def decorator(func):
        logger = get_logger(func.__module__)

        def _started():
            logger.info(f"Starting {operation_name}", extra={"operation": operation_name})
            return time.perf_counter()

        def _completed(start: float):
            logger.info(
                f"Completed {operation_name}",
                extra={
                    "operation": operation_name,
                    "duration_ms": (time.perf_counter() - start) * 1000,
                    "status": "success"
                }
            )

        def _failed(start: float, e: BaseException):
            logger.error(
                f"Failed {operation_name}: {e}",
                extra={
                    "operation": operation_name,
                    "duration_ms": (time.perf_counter() - start) * 1000,
                    "status": "error",
                    "error_type": type(e).__name__
                },
                exc_info=True
            )

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = _started()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failed(start, e)
                    raise
                _completed(start)
                return result
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = _started()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(start, e)
                raise
            _completed(start)
            return result
        return wrapper

    return decorator
