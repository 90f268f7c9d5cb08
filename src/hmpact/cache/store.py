"""Content-addressed cache store.

Handles:
- Writing blobs by digest (write to tmp, then atomic rename)
- Key index entries pointing at content digests
- Integrity verification on every read
- Listing and clearing the store

Every public method returns a ``CacheResult``; I/O problems are reported as
``status="error"`` rather than raised.
"""
import base64
import hashlib
import json
import logging
import os
import shutil
import tempfile
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from ..codec import parse, serialize
from ..codec.validators import ValidatorLike
from ..errors import NotFoundError, StorageError, ValidationError
from ..settings import cache_dir
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)

CONTENT_DIR = "content-v2"
INDEX_DIR = "index-v5"
TMP_DIR = "tmp"

HASH_ALGORITHM = "sha256"


def compute_integrity(data: bytes) -> str:
    """Subresource-Integrity style token, e.g. ``sha256-<base64>``."""
    digest = hashlib.sha256(data).digest()
    return f"{HASH_ALGORITHM}-{base64.b64encode(digest).decode('ascii')}"


def _integrity_hex(integrity: str) -> str:
    algorithm, _, b64 = integrity.partition("-")
    if algorithm != HASH_ALGORITHM or not b64:
        raise ValueError(f"Unsupported integrity token: {integrity}")
    return base64.b64decode(b64).hex()


@dataclass
class CacheEntry:
    """Index record for one key."""
    key: str
    integrity: str
    size: int
    time: int = 0  # ms since epoch

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(
            key=data["key"],
            integrity=data["integrity"],
            size=int(data["size"]),
            time=int(data.get("time", 0)),
        )


@dataclass
class CacheResult:
    """Tagged result of a cache operation.

    ``status`` is one of ``success``, ``not_found``, ``error`` and, for
    ``get_json`` only, ``validation_failed``.
    """
    status: str
    data: Any = None
    entry: Optional[CacheEntry] = None
    entries: list[CacheEntry] = field(default_factory=list)
    integrity: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def unwrap(self) -> Any:
        """Return ``data`` or raise the matching error.

        Raises:
            NotFoundError: status ``not_found``
            ValidationError: status ``validation_failed``
            StorageError: status ``error``
        """
        if self.status == "success":
            return self.data
        if self.status == "not_found":
            raise NotFoundError("Cache entry not found")
        if self.status == "validation_failed":
            raise ValidationError(self.error or "Cached data failed validation")
        raise StorageError(self.error or "Cache operation failed")


class CacheStore:
    """
    Content-addressed blob storage on local disk.

    Directory structure:
        <root>/
        ├── content-v2/sha256/ab/cd/<rest of hex>   # immutable blobs
        ├── index-v5/ab/cd/<rest of key hash>.json  # key -> integrity
        └── tmp/                                    # in-flight writes

    Content files are never modified after the rename that publishes them,
    so a reader always sees a complete old or new value. Index entries are
    replaced atomically, giving last-writer-wins for concurrent puts.
    """

    def __init__(self, root: Optional[Path] = None):
        """
        Initialize the cache store.

        Args:
            root: Store root directory (default: per-OS cache directory)
        """
        self.root = Path(root) if root else cache_dir()

    @property
    def content_dir(self) -> Path:
        return self.root / CONTENT_DIR / HASH_ALGORITHM

    @property
    def index_dir(self) -> Path:
        return self.root / INDEX_DIR

    @property
    def tmp_dir(self) -> Path:
        return self.root / TMP_DIR

    def _content_path(self, hex_digest: str) -> Path:
        return self.content_dir / hex_digest[:2] / hex_digest[2:4] / hex_digest[4:]

    def _index_path(self, key: str) -> Path:
        hashed = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.index_dir / hashed[:2] / hashed[2:4] / f"{hashed[4:]}.json"

    def _atomic_write(self, path: Path, data: bytes) -> None:
        """Write ``data`` to a temp file and rename it over ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self.tmp_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def _content_intact(self, path: Path, integrity: str, size: int) -> bool:
        """True when ``path`` exists and hashes to ``integrity``."""
        try:
            if path.stat().st_size != size:
                return False
            return compute_integrity(path.read_bytes()) == integrity
        except FileNotFoundError:
            return False

    def _read_entry(self, key: str) -> Optional[CacheEntry]:
        """Load the index entry for ``key``; None when absent."""
        index_path = self._index_path(key)
        try:
            raw = index_path.read_bytes()
        except FileNotFoundError:
            return None

        entry = CacheEntry.from_dict(json.loads(raw.decode("utf-8")))
        if entry.key != key:
            # Two keys hashing to the same index file; treat as absent
            logger.warning(f"Cache index collision for key {key!r} (found {entry.key!r})")
            return None
        return entry

    # === Base operations ===

    @timed("cache_put")
    def put(self, key: str, data: Union[bytes, str]) -> CacheResult:
        """
        Store ``data`` under ``key``.

        Returns:
            CacheResult with the integrity token on success
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        try:
            integrity = compute_integrity(data)
            content_path = self._content_path(_integrity_hex(integrity))

            # Identical intact content is already published; a damaged blob is replaced
            if not self._content_intact(content_path, integrity, len(data)):
                self._atomic_write(content_path, data)

            entry = CacheEntry(
                key=key,
                integrity=integrity,
                size=len(data),
                time=int(time.time() * 1000),
            )
            self._atomic_write(
                self._index_path(key),
                json.dumps(asdict(entry)).encode("utf-8"),
            )
        except (OSError, ValueError) as e:
            logger.error(f"Error writing cache entry {key!r}: {e}")
            return CacheResult(status="error", error=str(e))

        logger.debug(f"Cached {key!r} ({entry.size} bytes, {integrity})")
        return CacheResult(status="success", entry=entry, integrity=integrity)

    @timed("cache_has")
    def has(self, key: str) -> CacheResult:
        """Check whether ``key`` has complete content, without reading it."""
        try:
            entry = self._read_entry(key)
            if entry is None:
                return CacheResult(status="not_found")
            if not self._content_path(_integrity_hex(entry.integrity)).exists():
                return CacheResult(status="not_found")
        except (OSError, ValueError, KeyError, TypeError) as e:
            return CacheResult(status="error", error=str(e))

        return CacheResult(status="success", entry=entry, integrity=entry.integrity)

    @timed("cache_get")
    def get(self, key: str) -> CacheResult:
        """
        Read the blob stored under ``key``.

        The content digest is recomputed; a mismatch is reported as an error
        and the corrupt bytes are never returned.
        """
        try:
            entry = self._read_entry(key)
            if entry is None:
                return CacheResult(status="not_found")

            expected_hex = _integrity_hex(entry.integrity)
            try:
                data = self._content_path(expected_hex).read_bytes()
            except FileNotFoundError:
                return CacheResult(status="not_found")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error reading cache entry {key!r}: {e}")
            return CacheResult(status="error", error=str(e))

        if compute_integrity(data) != entry.integrity:
            logger.error(f"Integrity check failed for cache key {key!r}")
            return CacheResult(
                status="error",
                entry=entry,
                error=f"Integrity check failed for cache key: {key} (expected {entry.integrity})",
            )

        return CacheResult(status="success", data=data, entry=entry, integrity=entry.integrity)

    def list(self) -> CacheResult:
        """Enumerate all entries. Order is unspecified."""
        entries: list[CacheEntry] = []
        if not self.index_dir.exists():
            return CacheResult(status="success", entries=entries)

        try:
            for path in self.index_dir.rglob("*.json"):
                try:
                    entries.append(CacheEntry.from_dict(json.loads(path.read_text(encoding="utf-8"))))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f"Skipping unreadable cache index entry {path}: {e}")
        except OSError as e:
            logger.error(f"Error listing cache: {e}")
            return CacheResult(status="error", error=str(e))

        return CacheResult(status="success", entries=entries)

    def clear(self) -> CacheResult:
        """Remove the whole store root. Irreversible."""
        try:
            if self.root.exists():
                shutil.rmtree(self.root)
        except OSError as e:
            logger.error(f"Error clearing cache: {e}")
            return CacheResult(status="error", error=str(e))

        logger.info(f"Cleared cache at {self.root}")
        return CacheResult(status="success")

    # === JSON helpers ===

    def put_json(self, key: str, value: Any) -> CacheResult:
        """Serialize ``value`` with the codec and store it."""
        try:
            payload = serialize(value)
        except (TypeError, ValueError) as e:
            return CacheResult(status="error", error=f"Cannot serialize value for {key!r}: {e}")
        return self.put(key, payload)

    def get_json(self, key: str, validator: Optional[ValidatorLike] = None) -> CacheResult:
        """
        Read a JSON blob and optionally validate it.

        Args:
            key: Cache key
            validator: pydantic model, predicate or Validator

        Returns:
            CacheResult with ``data`` set to the decoded (and validated) value
        """
        result = self.get(key)
        if not result.ok:
            return result

        decoded = parse(result.data, validator, source=f"cache key {key}")
        if decoded.status == "validation_failed":
            return CacheResult(status="validation_failed", entry=result.entry, error=decoded.message)
        if not decoded.ok:
            return CacheResult(status="error", entry=result.entry, error=decoded.message)

        return CacheResult(status="success", data=decoded.data, entry=result.entry, integrity=result.integrity)
