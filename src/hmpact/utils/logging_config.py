"""Logging configuration for the hmpact store.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing helpers for store operations

Environment Variables:
    HMPACT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    HMPACT_LOG_FILE: Path to log file (default: ~/.hmpact/hmpact.log)
    HMPACT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    HMPACT_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from hmpact.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("manifest_load")
    def load(self):
        ...

    # Or use context manager for sections:
    with timed_section("registry_import", target=url, entries=3):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

from ..settings import home_dir

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("hmpact.perf")
main_logger = logging.getLogger("hmpact")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("HMPACT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = home_dir() / "hmpact.log"
    path_str = os.environ.get("HMPACT_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects HMPACT_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)

    Calling it again is a no-op once handlers are installed.
    """
    if main_logger.handlers:
        return

    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("HMPACT_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("HMPACT_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    # The perf logger is a child of "hmpact" and propagates to these handlers
    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")


def _format_perf(operation: str, target: Optional[str], elapsed: float, outcome: str, extra: str = "") -> str:
    msg = f"{operation:20s} | {target or 'N/A':30s} | {elapsed:8.2f}ms | {outcome}"
    if extra:
        msg += f" | {extra}"
    return msg


def timed(operation: str) -> Callable:
    """Decorator to log execution time of a function.

    Args:
        operation: Name of the operation (e.g., "cache_put", "manifest_load")

    The target column is taken from the first positional argument after
    ``self`` when it is a string (a cache key or a URL).
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            target = args[1] if len(args) > 1 and isinstance(args[1], str) else None

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.debug(_format_perf(operation, target, elapsed, "OK"))
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_format_perf(operation, target, elapsed, f"FAIL: {e}"))
                raise

        return wrapper

    return decorator


@contextmanager
def timed_section(operation: str, target: Optional[str] = None, **extra):
    """Context manager for timing code sections.

    Args:
        operation: Name of the operation
        target: File path, URL or cache key the section works on
        **extra: Additional context to log
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.info(_format_perf(operation, target, elapsed, "OK", extra_str))
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_format_perf(operation, target, elapsed, f"FAIL: {e}", extra_str))
        raise
