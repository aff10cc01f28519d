"""
Loguru setup for the RFD record store.

Console output plus rotating files under ``settings.LOGS_DIR``:
- app.log: everything from DEBUG up
- errors.log: ERROR and above
- requests.log: one line per HTTP request (``REQUEST`` messages)
- performance.log: store write timings (``PERFORMANCE`` messages)
"""

import sys
from pathlib import Path
from typing import Optional

from fastapi import Request
from loguru import logger

from rfd_store.config.settings import settings

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
TAGGED_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

# (file name, level, rotation, retention, message tag or None)
FILE_SINKS = [
    ("app.log", "DEBUG", "10 MB", "7 days", None),
    ("errors.log", "ERROR", "5 MB", "30 days", None),
    ("requests.log", "INFO", "20 MB", "14 days", "REQUEST"),
    ("performance.log", "INFO", "10 MB", "7 days", "PERFORMANCE"),
]


def _tag_filter(tag: str):
    return lambda record: record["message"].startswith(tag)


def setup_logger(logs_dir: str = "logs", log_level: str = "INFO") -> None:
    """Replace Loguru's default handler with console and file sinks."""
    directory = Path(logs_dir)
    directory.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=log_level,
        colorize=True,
        backtrace=True,
        diagnose=True
    )

    for file_name, level, rotation, retention, tag in FILE_SINKS:
        logger.add(
            directory / file_name,
            format=TAGGED_FORMAT if tag else FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            filter=_tag_filter(tag) if tag else None,
            backtrace=tag is None,
        )


def log_request(
    request: Request,
    status_code: Optional[int],
    process_time: float,
    error: Optional[Exception] = None,
) -> None:
    """Log a finished request, or the exception that aborted it."""
    if error is None:
        logger.info(
            "REQUEST {method} {path} - {status_code} ({process_time:.4f}s)",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            process_time=process_time,
        )
    else:
        logger.error(
            "REQUEST ERROR {method} {path} - {error_type}: {error} ({process_time:.4f}s)",
            method=request.method,
            path=request.url.path,
            error_type=type(error).__name__,
            error=str(error),
            process_time=process_time,
        )


def log_performance(operation: str, duration: float, **kwargs) -> None:
    """Log how long a store operation took."""
    logger.info(
        "PERFORMANCE: {operation} completed in {duration:.4f}s",
        operation=operation,
        duration=duration,
        **kwargs
    )


setup_logger(settings.LOGS_DIR, settings.LOG_LEVEL)

# Export logger for use in other modules
app_logger = logger
