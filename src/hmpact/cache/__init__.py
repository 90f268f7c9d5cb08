"""Content-addressed cache package.

This package provides:
- CacheStore: put/get/has/list/clear over a per-OS cache directory
- CacheEntry: index record (key, integrity, size)
- CacheResult: tagged result returned by every operation

Directory structure managed:
    <cache root>/
    ├── content-v2/sha256/   # blobs addressed by digest
    ├── index-v5/            # key -> digest entries
    └── tmp/                 # in-flight writes
"""

from .store import (
    CacheStore,
    CacheEntry,
    CacheResult,
    compute_integrity,
)

__all__ = [
    "CacheStore",
    "CacheEntry",
    "CacheResult",
    "compute_integrity",
]
