#!/usr/bin/env python3
"""
🔍 Centralized Logging System for SleepWake
Logs scheduler, ramp and player activity to console and rotating files.
Adapts to headless player boxes (Raspberry Pi / Volumio) to protect the SD card
and supports structured JSON logging for journald/Loki style collection.
"""

import json
import logging
import logging.handlers
import os
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import psutil

# Environment detection
IS_RASPBERRY_PI = (
    (platform.machine().startswith('arm') and platform.system() == 'Linux') or
    'raspberrypi' in platform.node().lower() or
    'volumio' in platform.node().lower() or
    os.path.exists('/sys/firmware/devicetree/base/model') or
    os.getenv('SLEEPWAKE_RASPBERRY_PI') == '1'
)
IS_DEV_MODE = '--dev' in sys.argv or os.getenv('SLEEPWAKE_DEV') == '1'

ENABLE_JSON_LOGS = os.getenv('SLEEPWAKE_JSON_LOGS', '0') == '1'


def _get_app_log_dir() -> Path:
    """Get application log directory path-agnostically"""
    env_log_dir = os.getenv('SLEEPWAKE_LOG_DIR')
    if env_log_dir:
        return Path(env_log_dir)
    app_name = os.getenv("SLEEPWAKE_APP_NAME", "sleepwake")
    return Path.home() / f".{app_name}" / "logs"


if IS_RASPBERRY_PI and not IS_DEV_MODE:
    LOG_LEVEL = logging.WARNING
    ENABLE_FILE_LOGGING = False
    ENABLE_DAILY_LOGS = False
    ENABLE_ERROR_LOGS = True
    MAX_LOG_SIZE = 1 * 1024 * 1024
    BACKUP_COUNT = 1
    ENABLE_SYSTEM_INFO = False
    LOG_DIR = Path(os.getenv('SLEEPWAKE_LOG_DIR', '/tmp/sleepwake_logs'))
    if os.getenv('SLEEPWAKE_JSON_LOGS') is None:
        ENABLE_JSON_LOGS = True
else:
    LOG_LEVEL = logging.INFO
    ENABLE_FILE_LOGGING = True
    ENABLE_DAILY_LOGS = True
    ENABLE_ERROR_LOGS = True
    MAX_LOG_SIZE = 10 * 1024 * 1024
    BACKUP_COUNT = 5
    ENABLE_SYSTEM_INFO = True
    LOG_DIR = _get_app_log_dir()

# ---- Environment overrides (systemd friendly) ----
_env_level = os.getenv('SLEEPWAKE_LOG_LEVEL')
if _env_level:
    LOG_LEVEL = getattr(logging, _env_level.upper(), LOG_LEVEL)

if os.getenv('SLEEPWAKE_FORCE_FILE_LOG') == '1':
    ENABLE_FILE_LOGGING = True

if os.getenv('SLEEPWAKE_DISABLE_DAILY_LOGS') == '1':
    ENABLE_DAILY_LOGS = False

if os.getenv('SLEEPWAKE_SYSTEM_INFO') == '0':
    ENABLE_SYSTEM_INFO = False

try:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
except OSError:
    # Console-only logging if the directory is not writable
    ENABLE_FILE_LOGGING = False
    ENABLE_DAILY_LOGS = False
    ENABLE_ERROR_LOGS = False

FILE_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s'

# Attributes every LogRecord carries; anything else came in through ``extra``
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
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, 'no_color', False):
            return super().format(record)

        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        original = record.levelname
        record.levelname = f"{color}{original}{reset}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    """Structured JSON formatter for production observability.

    Example output:
        {"timestamp": "2025-11-04T22:00:00.123Z", "level": "INFO",
         "logger": "coordinator", "message": "Sleep fade-out started",
         "steps": 10, "interval_s": 120.0}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            log_data['source'] = f"{record.filename}:{record.lineno}"
            log_data['function'] = record.funcName

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        try:
            return json.dumps(log_data, ensure_ascii=True, sort_keys=True)
        except (TypeError, ValueError) as e:
            safe_data = {k: str(v) for k, v in log_data.items()}
            safe_data['_json_error'] = str(e)
            return json.dumps(safe_data, ensure_ascii=True, sort_keys=True)


def _file_formatter() -> logging.Formatter:
    return JSONFormatter() if ENABLE_JSON_LOGS else logging.Formatter(FILE_FORMAT)


def _console_formatter() -> logging.Formatter:
    if ENABLE_JSON_LOGS:
        return JSONFormatter()
    if IS_RASPBERRY_PI and not IS_DEV_MODE:
        return logging.Formatter('%(asctime)s | %(levelname)s | %(message)s')
    return ColoredFormatter('%(asctime)s | %(name)s | %(levelname)s | %(message)s')


def _add_file_handler(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_file_formatter())
    logger.addHandler(handler)


def setup_logging() -> logging.Logger:
    """Initialize logging system for the application."""
    return setup_logger("sleepwake")


def setup_logger(name: str) -> logging.Logger:
    """
    Sets up a logger with appropriate handlers based on environment

    Args:
        name: Logger name (usually component name)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers if logger already exists
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(_console_formatter())
    logger.addHandler(console_handler)

    if ENABLE_FILE_LOGGING:
        try:
            _add_file_handler(
                logger,
                logging.handlers.RotatingFileHandler(
                    LOG_DIR / "sleepwake.log",
                    maxBytes=MAX_LOG_SIZE,
                    backupCount=BACKUP_COUNT,
                    encoding='utf-8'
                ),
                LOG_LEVEL,
            )
        except OSError:
            pass

    if ENABLE_ERROR_LOGS:
        try:
            _add_file_handler(
                logger,
                logging.handlers.RotatingFileHandler(
                    LOG_DIR / "sleepwake_errors.log",
                    maxBytes=MAX_LOG_SIZE,
                    backupCount=BACKUP_COUNT,
                    encoding='utf-8'
                ),
                logging.ERROR,
            )
        except OSError:
            pass

    if ENABLE_DAILY_LOGS:
        try:
            _add_file_handler(
                logger,
                logging.handlers.TimedRotatingFileHandler(
                    LOG_DIR / "sleepwake_daily.log",
                    when='midnight',
                    interval=1,
                    backupCount=7,
                    encoding='utf-8'
                ),
                LOG_LEVEL,
            )
        except OSError:
            pass

    return logger


def log_startup(module_name: str) -> None:
    """Log startup information for a module.

    Only shows detailed system info in development mode.
    """
    logger = logging.getLogger(module_name)
    logger.info(f"🎵 Starting {module_name}")

    if not ENABLE_SYSTEM_INFO:
        logger.info(f"🚀 Running on {'player device' if IS_RASPBERRY_PI else 'development system'}")
        logger.info(f"📂 Logs: {LOG_DIR}")
        return

    try:
        logger.info("=" * 50)
        logger.info("🚀 SleepWake System Information")
        logger.info("=" * 50)
        logger.info(f"🖥️  Platform: {platform.platform()}")
        logger.info(f"🐍 Python: {platform.python_version()}")
        logger.info(f"💾 Memory: {psutil.virtual_memory().available / (1024**3):.1f}GB available")
        logger.info(f"💽 Disk: {psutil.disk_usage('/').free / (1024**3):.1f}GB free")
        logger.info(f"📂 Log Directory: {LOG_DIR}")
        logger.info("=" * 50)
    except Exception as e:
        logger.warning(f"Could not gather system info: {e}")


def log_shutdown(logger: logging.Logger, component_name: str) -> None:
    """Log component shutdown and flush handlers."""
    logger.info(f"🛑 Shutting down {component_name}")
    for handler in logger.handlers:
        handler.flush()


def log_structured(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Log a message with structured context fields.

    In JSON mode, context fields appear as separate JSON keys. In traditional
    mode, they're appended to the message as key=value pairs.

    Example:
        >>> log_structured(logger, logging.INFO, "Timer armed",
        ...                event="sleep", delay_s=59.8)
    """
    if ENABLE_JSON_LOGS:
        logger.log(level, message, extra=context)
    elif context:
        context_str = " ".join(f"{k}={v}" for k, v in context.items())
        logger.log(level, f"{message} | {context_str}")
    else:
        logger.log(level, message)
