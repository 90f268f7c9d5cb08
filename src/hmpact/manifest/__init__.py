"""Manifest Store package.

This package provides:
- ManifestStore: locate/load/edit the hmpact manifest in a root directory
- Draft: validated in-memory edits saved in one write
- Registry helpers: add_registry, remove_registry, RegistryImporter
- Schema models: ManifestDocument, RegistryRule, RegistryList
"""

from .schema import (
    ManifestDocument,
    RegistryDefinition,
    RegistryRule,
    RegistryList,
    RegistryListEntry,
)
from .store import (
    ManifestStore,
    ManifestLocation,
    ManifestLoadResult,
    Draft,
    MISSING,
    apply_edit,
)
from .registry import (
    RegistryImporter,
    ImportSummary,
    ImportOutcome,
    add_registry,
    remove_registry,
    apply_entries,
)

__all__ = [
    "ManifestDocument",
    "RegistryDefinition",
    "RegistryRule",
    "RegistryList",
    "RegistryListEntry",
    "ManifestStore",
    "ManifestLocation",
    "ManifestLoadResult",
    "Draft",
    "MISSING",
    "apply_edit",
    "RegistryImporter",
    "ImportSummary",
    "ImportOutcome",
    "add_registry",
    "remove_registry",
    "apply_entries",
]
