"""Schema definitions for the manifest and registry import payloads."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegistryRule(BaseModel):
    """How to build a package URL for one registry."""
    format: str = Field(min_length=1)  # URL template using {pkg}, {ver}, {:env.KEY}
    header: Optional[dict[str, str]] = None


class RegistryDefinition(BaseModel):
    """A named registry entry in the manifest."""
    rule: RegistryRule


class ManifestDocument(BaseModel):
    """The hmpact manifest.

    Unknown top-level keys are kept so editing never drops user data.
    """
    model_config = ConfigDict(extra="allow")

    registries: Optional[dict[str, RegistryDefinition]] = None
    # dependency group -> package name -> version spec
    dependencies: Optional[dict[str, dict[str, str]]] = None


# --- Registry import payload ---

class RegistryListEntry(BaseModel):
    """One entry of a remote registry list.

    ``rule`` is checked per entry when it is applied to the manifest, so a
    single bad rule fails only its own entry.
    """
    id: str = Field(min_length=1)
    rule: Any = None


class RegistryList(BaseModel):
    """Remote registry list: ``{"registries": [{"id": ..., "rule": {...}}]}``."""
    registries: list[RegistryListEntry]
