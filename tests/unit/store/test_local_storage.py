"""Unit tests for filesystem-backed versioned storage."""

from __future__ import annotations

import json

import pytest

from core.errors import VbCatalogError, VbStorageError, WriteFailureError
from store import local_storage
from store.local_storage import LocalVersionedStorage


def _write_version(
    storage: LocalVersionedStorage,
    version: int,
    pairs: list[tuple[object, object]],
    retention_count: int = 5,
) -> None:
    with storage.open_for_write("events/last", version, retention_count, 0) as sink:
        for pair in pairs:
            sink.write(pair)


def test_committed_version_is_listed(tmp_path) -> None:
    """A cleanly closed sink should publish its version."""
    storage = LocalVersionedStorage(tmp_path)

    _write_version(storage, 1000, [("a", 1)])

    assert storage.list_versions("events/last") == {1000}


def test_open_for_read_returns_written_pairs(tmp_path) -> None:
    """Reading a version should stream the pairs it was written with."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("a", [1, 2]), ("b", {"n": 3})])

    pairs = list(storage.open_for_read("events/last", 1000))

    assert pairs == [("a", [1, 2]), ("b", {"n": 3})]


def test_unknown_path_lists_no_versions(tmp_path) -> None:
    """Paths never written should have an empty listing."""
    storage = LocalVersionedStorage(tmp_path)

    assert storage.list_versions("never/written") == set()


def test_failed_write_publishes_nothing(tmp_path) -> None:
    """An exception inside the sink should leave no visible version."""
    storage = LocalVersionedStorage(tmp_path)

    with pytest.raises(RuntimeError):
        with storage.open_for_write("events/last", 1000, 3, 0) as sink:
            sink.write(("a", 1))
            raise RuntimeError("upstream failure")

    assert storage.list_versions("events/last") == set()


def test_encoding_failure_fails_write_without_tolerance(tmp_path) -> None:
    """With zero tolerated failures one bad record fails the version."""
    storage = LocalVersionedStorage(tmp_path)

    with pytest.raises(WriteFailureError):
        _write_version(storage, 1000, [("a", 1), ("b", object())])

    assert storage.list_versions("events/last") == set()


def test_encoding_failures_within_tolerance_skip_records(tmp_path) -> None:
    """Failures up to the tolerance should skip only the bad records."""
    storage = LocalVersionedStorage(tmp_path)
    with storage.open_for_write("events/last", 1000, 3, max_failures=1) as sink:
        sink.write(("a", 1))
        sink.write(("b", object()))

    pairs = list(storage.open_for_read("events/last", 1000))

    assert pairs == [("a", 1)]


def test_existing_version_cannot_be_rewritten(tmp_path) -> None:
    """Committed versions should be immutable."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("a", 1)])

    with pytest.raises(WriteFailureError):
        storage.open_for_write("events/last", 1000, 3, 0)

    assert list(storage.open_for_read("events/last", 1000)) == [("a", 1)]


def test_retention_evicts_oldest_versions(tmp_path) -> None:
    """Only the newest retention_count versions should stay listed."""
    storage = LocalVersionedStorage(tmp_path)
    for version in (1000, 2000, 3000, 4000):
        _write_version(storage, version, [("k", version)], retention_count=2)

    assert storage.list_versions("events/last") == {3000, 4000}


def test_evicted_version_cannot_be_opened(tmp_path) -> None:
    """Opening a version evicted after listing should fail descriptively."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)], retention_count=1)
    listed = storage.list_versions("events/last")
    _write_version(storage, 2000, [("k", 2)], retention_count=1)

    with pytest.raises(VbStorageError, match="evicted"):
        storage.open_for_read("events/last", min(listed))


def test_tags_are_stored_per_version(tmp_path) -> None:
    """Tags should be readable after put_tag and absent otherwise."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)])
    _write_version(storage, 2000, [("k", 2)])
    storage.put_tag("events/last", 2000, "BatchID.2")

    tags = (storage.get_tag("events/last", 1000), storage.get_tag("events/last", 2000))

    assert tags == (None, "BatchID.2")


def test_non_string_tag_sidecar_is_returned_raw(tmp_path) -> None:
    """Sidecars that are not JSON strings should surface as raw text."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)])
    (tmp_path / "events" / "last" / "versions" / "1000" / "_tag.json").write_text(
        "{not json", encoding="utf-8"
    )

    assert storage.get_tag("events/last", 1000) == "{not json"


def test_undecodable_tag_sidecar_is_returned_as_text(tmp_path) -> None:
    """Sidecars with invalid UTF-8 should surface as text, not raise."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)])
    (tmp_path / "events" / "last" / "versions" / "1000" / "_tag.json").write_bytes(b"\xff\xfe")

    assert storage.get_tag("events/last", 1000) == "\ufffd\ufffd"


def test_put_tag_requires_committed_version(tmp_path) -> None:
    """Tagging an unknown version should fail."""
    storage = LocalVersionedStorage(tmp_path)

    with pytest.raises(VbCatalogError):
        storage.put_tag("events/last", 1000, "BatchID.1")


@pytest.mark.parametrize("bad_path", ["", "/abs/path", "../escape", "a/../../b"])
def test_paths_must_stay_under_data_root(tmp_path, bad_path: str) -> None:
    """Absolute or escaping store paths should be rejected."""
    storage = LocalVersionedStorage(tmp_path)

    with pytest.raises(VbCatalogError):
        storage.list_versions(bad_path)


def test_corrupt_catalog_raises_catalog_error(tmp_path) -> None:
    """A damaged catalog should not be silently treated as empty."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)])
    (tmp_path / "events" / "last" / "catalog.json").write_text("[", encoding="utf-8")

    with pytest.raises(VbCatalogError):
        storage.list_versions("events/last")


def test_undecodable_catalog_raises_catalog_error(tmp_path) -> None:
    """Catalog bytes that are not UTF-8 should raise VbCatalogError."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)])
    (tmp_path / "events" / "last" / "catalog.json").write_bytes(b"\xff\xfe")

    with pytest.raises(VbCatalogError):
        storage.list_versions("events/last")


@pytest.mark.parametrize(
    "entry",
    [
        {"version": 5000},
        {
            "version": "five",
            "created_at": "2026-01-01T00:00:00+00:00",
            "record_count": 1,
            "payload_format": "jsonl",
        },
        {"version": 5000, "created_at": None, "record_count": 1, "payload_format": "jsonl"},
        "5000",
    ],
)
def test_malformed_catalog_entry_raises_catalog_error(tmp_path, entry: object) -> None:
    """Catalog entries missing fields or holding bad values should raise VbCatalogError."""
    storage = LocalVersionedStorage(tmp_path)
    catalog_path = tmp_path / "events" / "last" / "catalog.json"
    catalog_path.parent.mkdir(parents=True)
    catalog_path.write_text(json.dumps({"versions": [entry]}), encoding="utf-8")

    with pytest.raises(VbCatalogError):
        storage.list_versions("events/last")


def test_eviction_failure_keeps_committed_version(tmp_path, monkeypatch) -> None:
    """A failed eviction after commit should not fail the write."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)], retention_count=1)
    real_write_catalog_file = local_storage.write_catalog_file
    calls: list[object] = []

    def _fail_on_eviction(catalog_path, catalog) -> None:
        calls.append(catalog_path)
        if len(calls) > 1:
            raise OSError("disk full")
        real_write_catalog_file(catalog_path, catalog)

    monkeypatch.setattr(local_storage, "write_catalog_file", _fail_on_eviction)

    _write_version(storage, 2000, [("k", 2)], retention_count=1)

    assert storage.list_versions("events/last") == {1000, 2000}


def test_next_write_retries_failed_eviction(tmp_path, monkeypatch) -> None:
    """Versions left by a failed eviction should go on the next write."""
    storage = LocalVersionedStorage(tmp_path)
    _write_version(storage, 1000, [("k", 1)], retention_count=1)
    real_write_catalog_file = local_storage.write_catalog_file
    calls: list[object] = []

    def _fail_on_first_eviction(catalog_path, catalog) -> None:
        calls.append(catalog_path)
        if len(calls) == 2:
            raise OSError("disk full")
        real_write_catalog_file(catalog_path, catalog)

    monkeypatch.setattr(local_storage, "write_catalog_file", _fail_on_first_eviction)
    _write_version(storage, 2000, [("k", 2)], retention_count=1)

    _write_version(storage, 3000, [("k", 3)], retention_count=1)

    assert storage.list_versions("events/last") == {3000}


def test_pending_writes_are_not_listed(tmp_path) -> None:
    """Versions still being written should stay invisible."""
    storage = LocalVersionedStorage(tmp_path)
    sink = storage.open_for_write("events/last", 1000, 3, 0)
    sink.write(("k", 1))

    assert storage.list_versions("events/last") == set()


def test_unknown_payload_format_is_rejected(tmp_path) -> None:
    """Storage should refuse payload formats it cannot read back."""
    with pytest.raises(VbStorageError):
        LocalVersionedStorage(tmp_path, payload_format="parquet")


def test_lance_payload_roundtrips(tmp_path) -> None:
    """Lance-format versions should read back the written pairs."""
    pytest.importorskip("lance")
    storage = LocalVersionedStorage(tmp_path, payload_format="lance")
    _write_version(storage, 1000, [("a", 1), ("b", 2)])

    pairs = list(storage.open_for_read("events/last", 1000))

    assert pairs == [("a", 1), ("b", 2)]
