"""Utility modules for logging and network fetches."""
from .fetcher import fetch_bytes, fetch_json, with_retry
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
)

__all__ = [
    "fetch_bytes",
    "fetch_json",
    "with_retry",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
]
