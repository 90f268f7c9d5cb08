"""Tests for registry operations and the registry import job."""
import json
import logging

import httpx
import pytest

from hmpact.errors import ConflictError, ManifestError, PartialImportError, RegistryImportError
from hmpact.manifest import ManifestStore, RegistryImporter, add_registry, remove_registry


MANIFEST = """{
  "registries": {
    "npm": {"rule": {"format": "//registry.npmjs.org/{pkg}/-/{pkg}-{ver}.tgz"}}
  }
}
"""

URL = "https://example.com/registries.json"


@pytest.fixture
def project(tmp_path):
    (tmp_path / "hmpact.jsonc").write_text(MANIFEST, encoding="utf-8")
    return tmp_path


@pytest.fixture
def store(project):
    return ManifestStore(root=project)


def manifest_bytes(project):
    return (project / "hmpact.jsonc").read_bytes()


def payload(*entries):
    return {"registries": list(entries)}


def entry(registry_id, fmt="//{pkg}"):
    return {"id": registry_id, "rule": {"format": fmt}}


def static_fetcher(data):
    calls = []

    def fetch(url):
        calls.append(url)
        return data

    fetch.calls = calls
    return fetch


class TestAddRemove:
    """Tests for add_registry/remove_registry."""

    def test_add_with_defaults(self, store):
        registry_id = add_registry(store, "npm.pkg.github.com")

        assert registry_id == "npm.pkg.github.com"
        rule = store.load().content["registries"]["npm.pkg.github.com"]["rule"]
        assert rule == {"format": "//npm.pkg.github.com/@{org}/{pkg}/-/{pkg}-{ver}.tgz"}

    def test_add_with_options(self, store):
        add_registry(
            store,
            "registry.example.com",
            registry_id="example",
            url_format="//registry.example.com/{pkg}/{ver}",
            header={"Authorization": "Bearer {:env.TOKEN}"},
        )

        rule = store.load().content["registries"]["example"]["rule"]
        assert rule["format"] == "//registry.example.com/{pkg}/{ver}"
        assert rule["header"] == {"Authorization": "Bearer {:env.TOKEN}"}

    def test_add_without_manifest(self, tmp_path):
        with pytest.raises(ManifestError, match="Failed to add registry"):
            add_registry(ManifestStore(root=tmp_path), "example.com")

    def test_remove(self, store):
        assert remove_registry(store, "npm") is True
        assert store.load().content["registries"] == {}

    def test_remove_absent(self, store, project):
        before = manifest_bytes(project)
        assert remove_registry(store, "nope") is False
        assert manifest_bytes(project) == before

    def test_remove_without_manifest(self, tmp_path):
        with pytest.raises(ManifestError):
            remove_registry(ManifestStore(root=tmp_path), "npm")


class TestImport:
    """Tests for RegistryImporter.run."""

    def test_import_then_load(self, store):
        """Loaded registries are exactly the existing plus imported ids."""
        fetcher = static_fetcher(payload(entry("a"), entry("b")))
        summary = RegistryImporter(store, fetcher=fetcher).run(URL)

        assert fetcher.calls == [URL]
        assert summary.total == 2
        assert summary.succeeded == 2
        assert summary.failed == 0
        assert summary.committed
        assert summary.partial_error is None
        assert set(store.load().content["registries"]) == {"npm", "a", "b"}

    def test_import_from_jsonc_bytes(self, store):
        body = b'{"registries": [{"id": "a", "rule": {"format": "//a/{pkg}"}},], // mirror list\n}'
        RegistryImporter(store, fetcher=static_fetcher(body)).run(URL)
        assert "a" in store.load().content["registries"]

    def test_duplicate_ids_abort(self, store, project):
        """A batch repeating an id leaves the manifest byte-identical."""
        before = manifest_bytes(project)
        fetcher = static_fetcher(payload(entry("a"), entry("b"), entry("a")))

        with pytest.raises(ConflictError) as exc_info:
            RegistryImporter(store, fetcher=fetcher).run(URL)

        assert exc_info.value.reason == "conflict"
        assert exc_info.value.duplicate_ids == ["a"]
        assert manifest_bytes(project) == before

    def test_partial_success(self, store):
        """Entry 2 of 3 invalid: two saved, one reported."""
        fetcher = static_fetcher(payload(entry("a"), {"id": "b", "rule": {"format": ""}}, entry("c")))
        summary = RegistryImporter(store, fetcher=fetcher).run(URL)

        assert summary.total == 3
        assert summary.succeeded == 2
        assert summary.failed == 1
        assert [f.registry_id for f in summary.failures] == ["b"]
        assert summary.committed

        registries = store.load().content["registries"]
        assert "a" in registries and "c" in registries
        assert "b" not in registries

        error = summary.partial_error
        assert isinstance(error, PartialImportError)
        assert error.reason == "partial"
        assert "b" in str(error)

    def test_all_failed_leaves_file(self, store, project):
        before = manifest_bytes(project)
        fetcher = static_fetcher(payload({"id": "x", "rule": None}, {"id": "y", "rule": {"format": ""}}))

        with pytest.raises(RegistryImportError) as exc_info:
            RegistryImporter(store, fetcher=fetcher).run(URL)

        assert exc_info.value.reason == "all_failed"
        assert manifest_bytes(project) == before

    def test_empty_batch_is_noop(self, store, project):
        before = manifest_bytes(project)
        summary = RegistryImporter(store, fetcher=static_fetcher(payload())).run(URL)

        assert summary.total == 0
        assert not summary.committed
        assert manifest_bytes(project) == before

    def test_overwrite_existing_warns(self, store, caplog):
        """Ids already in the manifest are overwritten with a warning."""
        fetcher = static_fetcher(payload(entry("npm", "//mirror/{pkg}")))

        with caplog.at_level(logging.WARNING, logger="hmpact"):
            summary = RegistryImporter(store, fetcher=fetcher).run(URL)

        assert summary.overwritten == ["npm"]
        assert "will be overwritten: npm" in caplog.text
        assert store.load().content["registries"]["npm"]["rule"]["format"] == "//mirror/{pkg}"

    def test_fetch_failure(self, store, project):
        before = manifest_bytes(project)

        def failing(url):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(RegistryImportError) as exc_info:
            RegistryImporter(store, fetcher=failing).run(URL)

        assert exc_info.value.reason == "fetch"
        assert "ConnectError" in str(exc_info.value)
        assert manifest_bytes(project) == before

    def test_schema_failure(self, store):
        fetcher = static_fetcher({"registries": [{"rule": {"format": "//x"}}]})
        with pytest.raises(RegistryImportError) as exc_info:
            RegistryImporter(store, fetcher=fetcher).run(URL)
        assert exc_info.value.reason == "schema"

    def test_malformed_payload(self, store):
        with pytest.raises(RegistryImportError) as exc_info:
            RegistryImporter(store, fetcher=static_fetcher(b"{not json")).run(URL)
        assert exc_info.value.reason == "schema"

    def test_no_manifest(self, tmp_path):
        with pytest.raises(ManifestError):
            RegistryImporter(ManifestStore(root=tmp_path), fetcher=static_fetcher(payload(entry("a")))).run(URL)

    def test_summary_text(self, store):
        fetcher = static_fetcher(payload(entry("a"), {"id": "b", "rule": {}}))
        summary = RegistryImporter(store, fetcher=fetcher).run(URL)

        text = summary.summary()
        assert "Total: 2" in text
        assert "Success: 1" in text
        assert "Failed: 1" in text
        assert "  - b:" in text

    def test_default_fetcher_over_http(self, store, monkeypatch):
        """Without a fetcher the importer downloads the list with httpx."""
        body = json.dumps(payload(entry("remote"))).encode()

        def handler(request):
            assert str(request.url) == URL
            return httpx.Response(200, content=body)

        real_client = httpx.Client

        def mock_client(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr(httpx, "Client", mock_client)

        RegistryImporter(store).run(URL)
        assert "remote" in store.load().content["registries"]


class TestHeaderPreservation:
    """Tests for add_registry on an existing registry."""

    def test_update_format_keeps_header(self, store):
        add_registry(store, "example.com", registry_id="ex", header={"X-Token": "t"})
        add_registry(store, "example.com", registry_id="ex", url_format="//example.com/v2/{pkg}")

        rule = store.load().content["registries"]["ex"]["rule"]
        assert rule == {"format": "//example.com/v2/{pkg}", "header": {"X-Token": "t"}}

    def test_new_header_replaces_old(self, store):
        add_registry(store, "example.com", registry_id="ex", header={"X-Token": "old"})
        add_registry(store, "example.com", registry_id="ex", header={"X-Token": "new"})

        assert store.load().content["registries"]["ex"]["rule"]["header"] == {"X-Token": "new"}

    def test_single_write(self, store, project):
        add_registry(store, "example.com", header={"X-Token": "t"})
        assert sorted(p.name for p in project.iterdir()) == ["hmpact.jsonc"]


class TestImportPayloadLimits:
    """Tests for hostile import payloads."""

    def test_deeply_nested_payload(self, store, project):
        before = manifest_bytes(project)
        body = b'{"registries": ' + b"[" * 3000 + b"]" * 3000 + b"}"

        with pytest.raises(RegistryImportError) as exc_info:
            RegistryImporter(store, fetcher=static_fetcher(body)).run(URL)

        assert exc_info.value.reason == "schema"
        assert "NestingTooDeep" in str(exc_info.value)
        assert manifest_bytes(project) == before

    def test_default_fetcher_accepts_jsonc(self, store, monkeypatch):
        body = b'// mirror list\n{"registries": [{"id": "remote", "rule": {"format": "//r/{pkg}"}},]}'
        real_client = httpx.Client

        def mock_client(**kwargs):
            transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))
            return real_client(transport=transport, **kwargs)

        monkeypatch.setattr(httpx, "Client", mock_client)

        RegistryImporter(store).run(URL)
        assert "remote" in store.load().content["registries"]
