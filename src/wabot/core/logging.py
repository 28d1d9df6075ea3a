"""Logging configuration."""
import logging
import os
import sys
from pathlib import Path


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Singleton logger instance
_logger = None
_initialized = False


def _get_log_path() -> Path:
    """Get the log file path from environment or default."""
    # Read the environment directly, config imports would be circular
    root = os.getenv("WABOT_ROOT", os.getcwd())
    logs_path = os.getenv("WABOT_LOGS_PATH", f"{root}/logs")
    return Path(logs_path) / "wabot.log"


def _get_log_format() -> str:
    return os.getenv("WABOT_LOG_FORMAT", DEFAULT_FORMAT)


def _get_log_level() -> int:
    """Get log level from environment or default."""
    level_str = os.getenv("WABOT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_logger() -> logging.Logger:
    """Get or create the singleton logger instance."""
    global _logger, _initialized

    if _logger is None:
        _logger = logging.getLogger("wabot")
        _logger.setLevel(_get_log_level())
        _logger.propagate = False

    # Only initialize handlers once, even if get_logger is called multiple times
    if not _initialized:
        _logger.handlers.clear()

        formatter = logging.Formatter(_get_log_format())

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

        log_path = _get_log_path()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            _logger.addHandler(file_handler)
        except OSError as e:
            _logger.warning(f"File logging disabled, cannot write {log_path}: {e}")

        _initialized = True

    return _logger


# Export the singleton logger
logger = get_logger()
