"""
Centralized logging configuration for PrintQ.

Requests are served by a threaded server, so every log line carries the
name of the thread that produced it. Webhook deliveries for the same job
can arrive on different threads; the thread tag plus the per-job logger
name makes it possible to follow one job through interleaved output.

Features:
    - Automatic thread name in all log messages
    - Console output (always enabled)
    - Size-rotated file log (production, or LOG_TO_FILE=1)
    - Per-job loggers named after the print id

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] printq.app - Starting application
    2026-10-19 10:15:31 [INFO    ] [Thread-4 (process_request_thread)] printq.job.Print-4821 - Job created
    2026-10-19 10:15:32 [WARNING ] [Thread-7 (process_request_thread)] printq.services.reconciler - Webhook ignored

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True, log_dir=Path("logs"))

    # In modules
    logger = get_logger(__name__)

    # For a specific print job
    job_logger = get_job_logger("Print-4821")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "printq"


class ThreadContextFilter(logging.Filter):
    """
    Logging filter that adds thread context to all log records.

    Adds ``thread_name`` and ``thread_id`` to each record so the format
    string can show which request thread emitted the message.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()

        # Context only, never drops a record
        return True


LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _add_handler(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(ThreadContextFilter())
    logger.addHandler(handler)


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the ``printq`` logger tree.

    Console output always goes to stdout. With ``enable_file_logging`` a
    size-rotated ``{app_name}.log`` is written to ``log_dir`` as well.
    Calling this again replaces the handlers, so every app instance
    created in tests starts from a clean logger.

    Args:
        app_name: Name of the application root logger (default: "printq")
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write the rotating log file
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files kept

    Returns:
        Configured application root logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _add_handler(logger, logging.StreamHandler(sys.stdout), log_level)

    if enable_file_logging:
        log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"{app_name}.log"
        _add_handler(
            logger,
            RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            ),
            log_level,
        )
        logger.info(f"File logging enabled: {log_file}")

    logger.debug(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger named ``printq.<name>``

    Example:
        # In services/reconciler.py
        logger = get_logger(__name__)
        # Logger name: "printq.services.reconciler"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def get_job_logger(job_id: str) -> logging.Logger:
    """
    Get a logger for one print job.

    Print ids are short (``Print-NNNN``) so the full id is used, which
    makes ``grep Print-4821`` return the whole history of a job.

    Args:
        job_id: Print id of the job

    Returns:
        Logger named ``printq.job.<job_id>``
    """
    return logging.getLogger(f"{APP_LOGGER_NAME}.job.{job_id or 'unknown'}")
