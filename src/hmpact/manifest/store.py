"""Manifest Store for the hmpact manifest document.

Handles:
- Locating the manifest among a fixed list of candidate filenames
- Loading and schema-validating it through the codec
- Single-field edits written straight back to disk
- Drafts: several validated in-memory edits, then one atomic save

Every mutation re-validates the whole document, so the last Draft a caller
holds is always schema-valid and can serve as a rollback point.

No file locking is done: two processes editing the same manifest race and
the last writer wins.
"""
import copy
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from ..codec import SchemaValidator, Validator, read_file, serialize
from ..errors import ManifestError, StorageError
from ..settings import MANIFEST_FILENAMES, SUPPORTED_MANIFEST_EXTENSIONS
from ..utils.logging_config import timed
from .schema import ManifestDocument

logger = logging.getLogger(__name__)


class _Missing:
    """Sentinel type: an omitted edit value means delete."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

EditPath = Sequence[Union[str, int]]


@dataclass
class ManifestLocation:
    """Where the manifest was found (or that it was not)."""
    found: bool
    path: Optional[Path] = None
    file_name: str = ""    # hmpact.jsonc
    base_name: str = ""    # hmpact
    extension: str = ""    # .jsonc, lower-cased


@dataclass
class ManifestLoadResult:
    """Result of ``ManifestStore.load``."""
    found: bool
    content: Optional[dict[str, Any]] = None
    location: Optional[ManifestLocation] = None


def apply_edit(document: dict[str, Any], path: EditPath, value: Any = MISSING) -> dict[str, Any]:
    """
    Return a copy of ``document`` with one field set or deleted.

    Args:
        document: The manifest document (left untouched)
        path: Keys (and list indices) leading to the field
        value: New value; omit to delete the field

    Intermediate objects are created when setting. Deleting a field that
    does not exist is a no-op.

    Raises:
        ManifestError: If the path is empty or runs through a scalar
    """
    if not path:
        raise ManifestError("Edit path must not be empty")

    updated = copy.deepcopy(document)
    deleting = value is MISSING
    node: Any = updated

    for depth, key in enumerate(path[:-1]):
        if isinstance(node, dict):
            child = node.get(key)
            if child is None:
                if deleting:
                    return updated
                child = node[key] = {}
        elif isinstance(node, list) and isinstance(key, int):
            if not -len(node) <= key < len(node):
                if deleting:
                    return updated
                raise ManifestError(f"List index {key} out of range at {_format_path(path[:depth + 1])}")
            child = node[key]
        else:
            raise ManifestError(f"Cannot descend into {_format_path(path[:depth + 1])}: not an object")

        if not isinstance(child, (dict, list)):
            raise ManifestError(f"Cannot descend into {_format_path(path[:depth + 1])}: not an object")
        node = child

    last = path[-1]
    if isinstance(node, dict):
        if deleting:
            node.pop(last, None)
        else:
            node[last] = copy.deepcopy(value)
    elif isinstance(node, list) and isinstance(last, int):
        if deleting:
            if -len(node) <= last < len(node):
                del node[last]
        elif last == len(node):
            node.append(copy.deepcopy(value))
        elif -len(node) <= last < len(node):
            node[last] = copy.deepcopy(value)
        else:
            raise ManifestError(f"List index {last} out of range at {_format_path(path)}")
    else:
        raise ManifestError(f"Cannot edit {_format_path(path)}: parent is not an object")

    return updated


def _format_path(path: EditPath) -> str:
    return ".".join(str(p) for p in path) or "<root>"


def _check_document(document: dict[str, Any], validator: Validator) -> Optional[str]:
    """Return why ``document`` cannot be saved, or None when it can."""
    outcome = validator.validate(document)
    if not outcome.ok:
        return outcome.message
    try:
        serialize(document)
    except (TypeError, ValueError) as e:
        return f"not representable as JSON: {e}"
    return None


def write_document(path: Path, document: dict[str, Any]) -> None:
    """Serialize ``document`` and replace ``path`` in a single rename.

    Raises:
        ManifestError: If the document holds values JSON cannot represent
        StorageError: If the file cannot be written
    """
    try:
        content = serialize(document)
    except (TypeError, ValueError) as e:
        raise ManifestError(f"Cannot serialize manifest for {path}: {e}") from e

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise StorageError(f"Error saving manifest content to {path}: {e}") from e


class Draft:
    """
    An uncommitted, repeatedly editable copy of the manifest.

    Drafts are immutable: ``edit`` returns a new Draft and leaves this one
    as it was. Nothing touches disk until ``save``.
    """

    def __init__(self, document: dict[str, Any], location: ManifestLocation, validator: Validator):
        self._document = document
        self.location = location
        self._validator = validator

    @property
    def document(self) -> dict[str, Any]:
        """A copy of the current document."""
        return copy.deepcopy(self._document)

    @property
    def registries(self) -> dict[str, Any]:
        return copy.deepcopy(self._document.get("registries") or {})

    def edit(self, path: EditPath, value: Any = MISSING) -> "Draft":
        """
        Apply one edit and re-validate.

        Raises:
            ManifestError: If the edit produces an invalid document; this
                Draft is unaffected and can still be saved
        """
        updated = apply_edit(self._document, path, value)
        problem = _check_document(updated, self._validator)
        if problem:
            raise ManifestError(f"Draft validation failed: {problem}")
        return Draft(updated, self.location, self._validator)

    def save(self) -> None:
        """Write the draft over its backing file.

        Raises:
            StorageError: If the file cannot be written
        """
        write_document(self.location.path, self._document)
        logger.info(f"Saved manifest {self.location.path}")


class ManifestStore:
    """
    Locates, loads and edits the manifest in one root directory.

    The root is explicit; it is only defaulted to the current working
    directory at construction time.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        filenames: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the manifest store.

        Args:
            root: Directory to search for the manifest (default: cwd)
            filenames: Candidate filenames in priority order
        """
        self.root = Path(root) if root else Path.cwd()
        self.filenames = tuple(filenames or MANIFEST_FILENAMES)
        self.validator = SchemaValidator(ManifestDocument, preserve_input=True)

    def locate(self) -> ManifestLocation:
        """Find the first existing candidate file directly under the root."""
        for file_name in self.filenames:
            candidate = self.root / file_name
            if candidate.is_file():
                return ManifestLocation(
                    found=True,
                    path=candidate,
                    file_name=file_name,
                    base_name=candidate.stem,
                    extension=candidate.suffix.lower(),
                )
        return ManifestLocation(found=False)

    @timed("manifest_load")
    def load(self) -> ManifestLoadResult:
        """
        Load and validate the manifest.

        Returns:
            ManifestLoadResult with ``found=False`` when no manifest exists

        Raises:
            ManifestError: If the manifest is in an unsupported format,
                cannot be read, is malformed or fails validation
        """
        location = self.locate()
        if not location.found:
            return ManifestLoadResult(found=False)

        if location.extension not in SUPPORTED_MANIFEST_EXTENSIONS:
            raise ManifestError(f"{location.file_name} format not supported yet.")

        result = read_file(location.path, self.validator)
        if not result.ok:
            raise ManifestError(
                f"Error loading config file: {result.message}",
                diagnostics=result.diagnostics,
            )

        logger.debug(f"Loaded manifest {location.path}")
        return ManifestLoadResult(found=True, content=result.data, location=location)

    def edit_in_place(self, path: EditPath, value: Any = MISSING) -> dict[str, Any]:
        """
        Set (or delete, when ``value`` is omitted) one field on disk.

        Loads, patches, re-validates and rewrites the whole file. Not safe
        for concurrent use against the same file.

        Returns:
            The updated document

        Raises:
            ManifestError: If no manifest exists or the result is invalid
            StorageError: If the file cannot be written
        """
        loaded = self.load()
        if not loaded.found:
            raise ManifestError("No manifest file to edit.")

        updated = apply_edit(loaded.content, path, value)
        problem = _check_document(updated, self.validator)
        if problem:
            raise ManifestError(f"Error modifying manifest content: {problem}")

        write_document(loaded.location.path, updated)
        action = "Deleted" if value is MISSING else "Updated"
        logger.info(f"{action} {_format_path(path)} in {loaded.location.path}")
        return updated

    def open_draft(self) -> Draft:
        """
        Start a Draft from the current manifest.

        Raises:
            ManifestError: If no manifest exists or it cannot be loaded
        """
        loaded = self.load()
        if not loaded.found:
            raise ManifestError("No manifest file to edit.")
        return Draft(loaded.content, loaded.location, self.validator)
