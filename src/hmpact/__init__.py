"""hmpact - local manifest and content-addressed cache store.

Usage:
    from hmpact import CacheStore, ManifestStore, RegistryImporter

    store = ManifestStore(root=project_dir)
    draft = store.open_draft()
    draft = draft.edit(["registries", "npm"], {"rule": {"format": "//registry.npmjs.org/{pkg}"}})
    draft.save()
"""
from .cache import CacheStore, CacheEntry, CacheResult
from .codec import CodecResult, parse, serialize
from .errors import (
    HmpactError,
    NotFoundError,
    ParseError,
    ValidationError,
    StorageError,
    ManifestError,
    RegistryImportError,
    ConflictError,
    PartialImportError,
)
from .manifest import (
    ManifestStore,
    Draft,
    RegistryImporter,
    ImportSummary,
    add_registry,
    remove_registry,
)

__version__ = "0.1.0"

__all__ = [
    "CacheStore",
    "CacheEntry",
    "CacheResult",
    "CodecResult",
    "parse",
    "serialize",
    "HmpactError",
    "NotFoundError",
    "ParseError",
    "ValidationError",
    "StorageError",
    "ManifestError",
    "RegistryImportError",
    "ConflictError",
    "PartialImportError",
    "ManifestStore",
    "Draft",
    "RegistryImporter",
    "ImportSummary",
    "add_registry",
    "remove_registry",
]
