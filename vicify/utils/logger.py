#!/usr/bin/env python3
"""
🔍 Centralized Logging System for Vicify
Console logging for launcher commands, optional rotating file logs, and
structured JSON output for piping into other tools.
"""

import copy
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

IS_DEV_MODE = '--dev' in sys.argv or os.getenv('VICIFY_DEV') == '1'
ENABLE_JSON_LOGS = os.getenv('VICIFY_JSON_LOGS', '0') == '1'
ENABLE_FILE_LOGGING = os.getenv('VICIFY_FILE_LOGS', '0') == '1'

# Launcher commands are short lived; keep the console quiet unless asked
LOG_LEVEL = logging.DEBUG if IS_DEV_MODE else logging.WARNING
MAX_LOG_SIZE = 2 * 1024 * 1024
BACKUP_COUNT = 3


def _get_app_log_dir() -> Path:
    """Get application log directory path-agnostically"""
    env_log_dir = os.getenv('VICIFY_LOG_DIR')
    if env_log_dir:
        return Path(env_log_dir)
    app_name = os.getenv("VICIFY_APP_NAME", "vicify")
    return Path.home() / f".{app_name}" / "logs"


LOG_DIR = _get_app_log_dir()

_env_level = os.getenv('VICIFY_LOG_LEVEL')
if _env_level:
    try:
        LOG_LEVEL = getattr(logging, _env_level.upper())
    except AttributeError:
        pass  # Ignore invalid level

if ENABLE_FILE_LOGGING:
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
    except OSError:
        ENABLE_FILE_LOGGING = False

_RESERVED_RECORD_KEYS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'no_color',
))


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, 'no_color', False):
            return super().format(record)

        # Other handlers share the record, so colour a copy
        colored = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        colored.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """Structured JSON formatter.

    Example output:
        {"level": "WARNING", "logger": "vicify.executor",
         "message": "spotify.call.retry", "attempt": 1, "kind": "transient",
         "timestamp": "2026-10-19T10:30:00.123Z"}
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data: Dict[str, Any] = {
            'timestamp': created.isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            log_data['source'] = f"{record.filename}:{record.lineno}"
            log_data['function'] = record.funcName

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Fields passed via logger.info("msg", extra={...})
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS or key in log_data:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=True, sort_keys=True, default=str)


def _plain_formatter() -> logging.Formatter:
    return logging.Formatter(
        '%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s'
    )


def setup_logger(name: str) -> logging.Logger:
    """
    Sets up a logger with appropriate handlers based on environment

    Args:
        name: Logger name (usually module name)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers if logger already exists
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(LOG_LEVEL)
    if ENABLE_JSON_LOGS:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter('%(levelname)s | %(name)s | %(message)s'))
    logger.addHandler(console_handler)

    if ENABLE_FILE_LOGGING:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                LOG_DIR / "vicify.log",
                maxBytes=MAX_LOG_SIZE,
                backupCount=BACKUP_COUNT,
                encoding='utf-8'
            )
        except OSError as exc:
            logger.warning("File logging unavailable: %s", exc)
        else:
            file_handler.setLevel(LOG_LEVEL)
            file_handler.setFormatter(JSONFormatter() if ENABLE_JSON_LOGS else _plain_formatter())
            logger.addHandler(file_handler)

    return logger


def setup_logging() -> logging.Logger:
    """Initialize logging for the whole ``vicify`` package tree.

    Child loggers (``vicify.executor``, ``vicify.poller``...) propagate to it.
    """
    return setup_logger("vicify")
