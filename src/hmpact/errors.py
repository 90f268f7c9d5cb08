"""Exception types shared by the hmpact store components.

The codec and the cache store report failures through tagged results and
never raise these past their boundary. The manifest store and the registry
import job raise them for conditions that make continuing meaningless.
"""
from typing import Any, Optional


class HmpactError(Exception):
    """Base class for all hmpact store errors."""
    pass


class NotFoundError(HmpactError):
    """A manifest or cache entry does not exist."""
    pass


class ParseError(HmpactError):
    """Malformed JSON-with-comments input.

    Carries every diagnostic collected during the parse, not just the first.
    """

    def __init__(self, message: str, diagnostics: Optional[list] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []


class ValidationError(HmpactError):
    """Well-formed data that does not conform to its schema."""
    pass


class StorageError(HmpactError):
    """Disk or network I/O failure."""
    pass


class ManifestError(HmpactError):
    """The manifest cannot be located, loaded, edited or saved."""

    def __init__(self, message: str, diagnostics: Optional[list] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []


class RegistryImportError(HmpactError):
    """A registry import job aborted.

    ``reason`` is one of ``fetch``, ``schema``, ``conflict`` or
    ``all_failed``.
    """

    def __init__(self, reason: str, message: str):
        super().__init__(f"Failed to import registries ({reason}): {message}")
        self.reason = reason


class ConflictError(RegistryImportError):
    """The import batch contains the same registry id more than once."""

    def __init__(self, duplicate_ids: list[str]):
        super().__init__(
            "conflict",
            f"Duplicate registry IDs found in import data: {', '.join(duplicate_ids)}",
        )
        self.duplicate_ids = duplicate_ids


class PartialImportError(RegistryImportError):
    """Some entries of an import batch failed; the rest were saved."""

    def __init__(self, summary: Any):
        failed_ids = ", ".join(f.registry_id for f in summary.failures)
        super().__init__(
            "partial",
            f"{summary.failed} of {summary.total} registries failed: {failed_ids}",
        )
        self.summary = summary
