"""Logging configuration for pg-selective-backup.

Everything logs under the ``pg_selective_backup`` namespace. Output goes to
stdout and, optionally, to a rotating file whose name carries the start time
of the run, so that each cron invocation leaves its own log.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "pg_selective_backup"
STANDARD_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FORMATS = ("standard", "json")


class JsonFormatter(logging.Formatter):
    """Formats each record as one JSON object per line.

    Database names and paths end up in messages verbatim, so the message is
    serialized rather than interpolated into a template.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def build_formatter(format_type: str = "standard") -> logging.Formatter:
    """Formatter for a ``format_type`` of "standard" or "json"."""
    if format_type == "json":
        return JsonFormatter()
    return logging.Formatter(STANDARD_FORMAT)


def _generate_timestamped_filename(log_file: str) -> str:
    """Generate a timestamped log filename.

    Args:
        log_file: Original log file path

    Returns:
        Timestamped log file path with format: {name}_{YYYYMMDD_HHMMSS}.{ext}
    """
    log_path = Path(log_file)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(log_path.parent / f"{log_path.stem}_{timestamp}{log_path.suffix}")


def _add_file_handler(root_logger: logging.Logger, formatter: logging.Formatter, level: int,
                      log_file: str, max_file_size_mb: int, backup_count: int) -> None:
    setup_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.logging")
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        timestamped_log_file = _generate_timestamped_filename(log_file)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=timestamped_log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
    except OSError as e:
        # Console logging keeps working without the file handler
        setup_logger.warning(f"Failed to setup file logging to {log_file}: {e}")
        return

    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)
    setup_logger.info(
        f"File logging enabled: {timestamped_log_file} "
        f"(max: {max_file_size_mb}MB, backups: {backup_count})"
    )


def setup_logging(level: str = "INFO", format_type: str = "standard",
                  log_file: Optional[str] = None, max_file_size_mb: int = 100,
                  backup_count: int = 10) -> logging.Logger:
    """Set up logging for a backup run.

    Calling this again replaces the handlers installed by the previous call;
    the entry point configures logging from the command line first and the
    application reconfigures it once the full configuration is loaded.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Format type ("standard" or "json")
        log_file: Optional path to log file. If provided, enables file logging with rotation
        max_file_size_mb: Maximum size of each log file in MB before rotation (default: 100)
        backup_count: Number of backup log files to keep (default: 10)

    Returns:
        Configured application logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = build_formatter(format_type)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        _add_file_handler(root_logger, formatter, numeric_level, log_file,
                          max_file_size_mb, backup_count)

    return logging.getLogger(ROOT_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger in the application namespace.

    Module ``__name__`` values already start with ``pg_selective_backup`` and
    are used as they are; any other name is nested under it.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
