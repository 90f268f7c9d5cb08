"""Registry management on top of the Manifest Store.

Provides single-entry ``add_registry`` / ``remove_registry`` edits and the
batch ``RegistryImporter``:

    Fetching -> Validating -> ConflictCheck -> Applying -> Summarizing
             -> Committed | Aborted

Entries are applied one at a time, in the order received, to a Draft. A
failing entry is recorded and skipped; whatever succeeded is saved.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from functools import partial, reduce
from typing import Any, Callable, Optional

from .. import codec
from ..errors import ConflictError, ManifestError, PartialImportError, RegistryImportError
from ..utils.fetcher import fetch_bytes
from ..utils.logging_config import timed_section
from .schema import RegistryList, RegistryListEntry
from .store import Draft, ManifestStore

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "//{domain}/@{{org}}/{{pkg}}/-/{{pkg}}-{{ver}}.tgz"

Fetcher = Callable[[str], Any]


def add_registry(
    store: ManifestStore,
    domain: str,
    registry_id: Optional[str] = None,
    url_format: Optional[str] = None,
    header: Optional[dict[str, str]] = None,
) -> str:
    """
    Add a registry to the manifest, or update its URL format.

    Only ``rule.format`` (and ``rule.header`` when given) is written, so an
    existing registry keeps its other settings.

    Args:
        store: Manifest store to edit
        domain: Registry domain, also the default id
        registry_id: Registry id (default: the domain)
        url_format: URL template (default: npm-style tarball path on the domain)
        header: Optional HTTP headers for requests to this registry

    Returns:
        The registry id written

    Raises:
        ManifestError: If there is no manifest or the rule is invalid
    """
    registry_id = registry_id or domain
    rule_path = ["registries", registry_id, "rule"]

    try:
        draft = store.open_draft()
        draft = draft.edit(rule_path + ["format"], url_format or DEFAULT_FORMAT.format(domain=domain))
        if header:
            draft = draft.edit(rule_path + ["header"], dict(header))
        draft.save()
        logger.info(f"Registry {registry_id} saved")
    except ManifestError as e:
        raise ManifestError(f"Failed to add registry: {e}", diagnostics=e.diagnostics) from e
    return registry_id


def remove_registry(store: ManifestStore, registry_id: str) -> bool:
    """
    Remove a registry from the manifest.

    Returns:
        True if the registry existed

    Raises:
        ManifestError: If there is no manifest
    """
    loaded = store.load()
    if not loaded.found:
        raise ManifestError("Failed to remove registry: No manifest file to edit.")

    if registry_id not in (loaded.content.get("registries") or {}):
        logger.info(f"Registry {registry_id} not present, nothing to remove")
        return False

    store.edit_in_place(["registries", registry_id])
    return True


@dataclass
class ImportOutcome:
    """Result of applying one entry."""
    registry_id: str
    succeeded: bool
    error: str = ""


@dataclass
class ImportSummary:
    """Structured report of one import run."""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[ImportOutcome] = field(default_factory=list)
    overwritten: list[str] = field(default_factory=list)
    committed: bool = False

    @property
    def partial_error(self) -> Optional[PartialImportError]:
        """A PartialImportError describing failed entries, if any."""
        if self.failed == 0:
            return None
        return PartialImportError(self)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "=== Import Summary ===",
            f"Total: {self.total}",
            f"Success: {self.succeeded}",
            f"Failed: {self.failed}",
        ]
        if self.failures:
            lines.append("Failed registries:")
            for failure in self.failures:
                lines.append(f"  - {failure.registry_id}: {failure.error}")
        return "\n".join(lines)


def _apply_entry(
    total: int,
    state: tuple[Draft, list[ImportOutcome]],
    indexed: tuple[int, RegistryListEntry],
) -> tuple[Draft, list[ImportOutcome]]:
    """Fold step: apply one entry to the draft produced by earlier steps."""
    draft, outcomes = state
    position, entry = indexed

    logger.info(f"[{position}/{total}] Importing registry: {entry.id}...")
    try:
        draft = draft.edit(["registries", entry.id], {"rule": entry.rule})
    except ManifestError as e:
        logger.error(f"[{position}/{total}] ✗ Failed to import {entry.id}: {e}")
        return draft, outcomes + [ImportOutcome(entry.id, succeeded=False, error=str(e))]

    logger.info(f"[{position}/{total}] ✓ {entry.id} imported successfully")
    return draft, outcomes + [ImportOutcome(entry.id, succeeded=True)]


def apply_entries(draft: Draft, entries: list[RegistryListEntry]) -> tuple[Draft, list[ImportOutcome]]:
    """Apply ``entries`` in order, returning the final draft and per-entry outcomes."""
    step = partial(_apply_entry, len(entries))
    return reduce(step, enumerate(entries, start=1), (draft, []))


class RegistryImporter:
    """
    Import registry definitions from a URL into the manifest.

    Args:
        store: Manifest store to import into
        fetcher: Callable taking a URL and returning raw bytes/text or
            decoded JSON. Timeouts and retries are its concern.
    """

    def __init__(self, store: ManifestStore, fetcher: Optional[Fetcher] = None):
        self.store = store
        self.fetcher = fetcher or fetch_bytes

    def _fetch(self, url: str) -> list[RegistryListEntry]:
        logger.info(f"Fetching registries from: {url}")
        try:
            payload = self.fetcher(url)
        except Exception as e:
            raise RegistryImportError("fetch", f"{type(e).__name__}: {e}") from e

        if isinstance(payload, (bytes, str)):
            result = codec.parse(payload, RegistryList, source=url)
        else:
            result = codec.validate(payload, RegistryList, source=url)

        if not result.ok:
            raise RegistryImportError("schema", result.message)
        return result.data.registries

    def _check_conflicts(self, entries: list[RegistryListEntry], draft: Draft) -> list[str]:
        """Fail on ids repeated within the batch; return ids that will be overwritten."""
        counts = Counter(entry.id for entry in entries)
        duplicates = [registry_id for registry_id, count in counts.items() if count > 1]
        if duplicates:
            raise ConflictError(duplicates)

        existing = draft.registries
        overwritten = [entry.id for entry in entries if entry.id in existing]
        if overwritten:
            logger.warning(
                f"Warning: The following registries will be overwritten: {', '.join(overwritten)}"
            )
        return overwritten

    def run(self, url: str) -> ImportSummary:
        """
        Run one import.

        Returns:
            ImportSummary; ``committed`` is True when the manifest was saved

        Raises:
            RegistryImportError: reason ``fetch`` or ``schema``, or
                ``all_failed`` when no entry could be applied
            ConflictError: If the batch repeats an id
            ManifestError: If there is no manifest to import into
            StorageError: If saving the manifest fails
        """
        with timed_section("registry_import", target=url):
            entries = self._fetch(url)
            total = len(entries)

            if total == 0:
                logger.info("No registries found to import.")
                return ImportSummary()

            logger.info(f"Found {total} registries to import.")

            draft = self.store.open_draft()
            overwritten = self._check_conflicts(entries, draft)

            final_draft, outcomes = apply_entries(draft, entries)

            failures = [o for o in outcomes if not o.succeeded]
            summary = ImportSummary(
                total=total,
                succeeded=total - len(failures),
                failed=len(failures),
                failures=failures,
                overwritten=overwritten,
            )
            logger.info(summary.summary())

            if summary.succeeded == 0:
                raise RegistryImportError("all_failed", "All registry imports failed.")

            final_draft.save()
            summary.committed = True

            if summary.failed:
                logger.info("Partial import completed.")
            else:
                logger.info("✓ All registries imported successfully!")
            return summary
