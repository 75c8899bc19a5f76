"""Filesystem-backed versioned storage.

Each logical path owns a directory holding committed versions, a catalog,
and a pending area. A version is written into the pending area, renamed
into ``versions/<number>`` and then recorded in the catalog; only catalog
entries are listed. Retention evicts the oldest committed versions.

Listing versions and opening one are separate calls. A version can be
evicted between them, in which case the read fails with VbStorageError.
"""

from __future__ import annotations

from datetime import datetime, timezone
import os
from pathlib import Path, PurePosixPath
import shutil
from types import TracebackType
from typing import Iterator
from uuid import uuid4

from core.constants import (
    CATALOG_FILE_NAME,
    PAYLOAD_FORMAT_JSONL,
    PAYLOAD_FORMAT_LANCE,
    PENDING_DIR_NAME,
    RECORDS_FILE_NAME,
    SUPPORTED_PAYLOAD_FORMATS,
    VERSIONS_DIR_NAME,
)
from core.errors import VbCatalogError, VbStorageError, VbStoreError, WriteFailureError
from core.logging_config import get_logger
from core.types import BytesPair, RecordPair, VersionManifest
from store.catalog_io import (
    append_manifest,
    catalog_manifests,
    manifests_to_catalog,
    read_catalog_file,
    read_manifest_file,
    read_tag_file,
    write_catalog_file,
    write_manifest_file,
    write_tag_file,
)
from store.codecs import JsonPairInjection, PairInjection
from store.lance_dataset import iter_lance_pairs, write_lance_pairs
from store.record_payload import iter_bytes_pairs_jsonl, write_bytes_pairs_jsonl

_LOGGER = get_logger(__name__)


class LocalVersionedStorage:
    """Versioned storage rooted in a local directory.

    Serves as metadata catalog, version reader, and version writer.
    """

    def __init__(
        self,
        data_root: Path,
        injection: PairInjection | None = None,
        payload_format: str = PAYLOAD_FORMAT_JSONL,
    ) -> None:
        """Initialize storage under a data root.

        Args:
            data_root: Directory holding every logical path.
            injection: Physical pair to bytes codec; JSON when omitted.
            payload_format: Payload format for new versions.

        Raises:
            VbStorageError: If the payload format is unknown.
        """
        if payload_format not in SUPPORTED_PAYLOAD_FORMATS:
            raise VbStorageError(
                f"Unsupported payload format '{payload_format}'. "
                f"Supported formats: {', '.join(SUPPORTED_PAYLOAD_FORMATS)}."
            )
        self._data_root = data_root
        self._injection = injection or JsonPairInjection()
        self._payload_format = payload_format

    @property
    def data_root(self) -> Path:
        return self._data_root

    def list_versions(self, path: str) -> set[int]:
        """Return committed version numbers for a logical path.

        Args:
            path: Logical store path.

        Returns:
            Committed versions; empty when the path was never written.

        Raises:
            VbCatalogError: If the catalog is unreadable.
        """
        return {manifest.version for manifest in self.manifests(path)}

    def manifests(self, path: str) -> list[VersionManifest]:
        """Return committed version manifests sorted by version."""
        catalog = read_catalog_file(self._path_root(path) / CATALOG_FILE_NAME)
        return catalog_manifests(catalog)

    def get_tag(self, path: str, version: int) -> str | None:
        """Return the legacy tag stored next to a version, if any."""
        return read_tag_file(self._version_dir(path, version))

    def put_tag(self, path: str, version: int, tag: str) -> None:
        """Attach a legacy tag to a committed version.

        Args:
            path: Logical store path.
            version: Committed version number.
            tag: Tag string, normally ``str(upper_bound_batch_id)``.

        Raises:
            VbCatalogError: If the version is not committed.
        """
        if version not in self.list_versions(path):
            raise VbCatalogError(
                f"Cannot tag version {version} of '{path}': version is not committed."
            )
        write_tag_file(self._version_dir(path, version), tag)
        _LOGGER.info("version_tagged", path=path, version=version, tag=tag)

    def open_for_read(self, path: str, version: int) -> Iterator[RecordPair]:
        """Open a committed version and stream its physical pairs.

        Args:
            path: Logical store path.
            version: Committed version number.

        Returns:
            Iterator over decoded physical pairs.

        Raises:
            VbStorageError: If the version is not available.
        """
        version_dir = self._version_dir(path, version)
        if version not in self.list_versions(path) or not version_dir.exists():
            raise VbStorageError(
                f"Version {version} of '{path}' is not available at {version_dir}. "
                "It may have been evicted after listing; resolve the last batch again."
            )
        manifest = read_manifest_file(version_dir)
        return self._iter_pairs(version_dir, manifest.payload_format)

    def open_for_write(
        self,
        path: str,
        version: int,
        retention_count: int,
        max_failures: int,
    ) -> "LocalVersionSink":
        """Open a pending version for writing.

        Args:
            path: Logical store path.
            version: New version number.
            retention_count: Committed versions kept after this one lands.
            max_failures: Tolerated per-record encoding failures.

        Returns:
            Sink that publishes the version on clean exit.

        Raises:
            WriteFailureError: If the version already exists or arguments are invalid.
        """
        if retention_count < 1:
            raise WriteFailureError(
                f"Invalid retention count {retention_count} for '{path}': keep at least 1."
            )
        if version in self.list_versions(path):
            raise WriteFailureError(
                f"Version {version} of '{path}' already exists. "
                "Versions are immutable; write the next batch instead."
            )
        pending_dir = self._path_root(path) / PENDING_DIR_NAME / f"{version}-{uuid4().hex}"
        try:
            pending_dir.mkdir(parents=True, exist_ok=False)
        except OSError as error:
            raise WriteFailureError(
                f"Failed to create pending directory {pending_dir}: {error}. "
                "Check write permissions and available disk space."
            ) from error
        return LocalVersionSink(
            storage=self,
            path=path,
            version=version,
            pending_dir=pending_dir,
            retention_count=retention_count,
            max_failures=max_failures,
        )

    def encode(self, pair: RecordPair) -> BytesPair:
        return self._injection.encode(pair)

    def publish(
        self,
        path: str,
        version: int,
        pending_dir: Path,
        encoded_pairs: list[BytesPair],
        retention_count: int,
    ) -> VersionManifest:
        """Persist a pending payload and commit it as a version.

        Args:
            path: Logical store path.
            version: New version number.
            pending_dir: Pending directory holding nothing but this write.
            encoded_pairs: Encoded physical pairs.
            retention_count: Committed versions kept afterwards.

        Returns:
            Committed version manifest.

        Raises:
            WriteFailureError: If any persistence step fails.
        """
        path_root = self._path_root(path)
        try:
            record_count = self._write_payload(pending_dir, encoded_pairs)
            manifest = VersionManifest(
                version=version,
                created_at=datetime.now(timezone.utc),
                record_count=record_count,
                payload_format=self._payload_format,
            )
            write_manifest_file(pending_dir, manifest)
            self._move_into_place(path, version, pending_dir)
            catalog_path = path_root / CATALOG_FILE_NAME
            catalog = read_catalog_file(catalog_path)
            write_catalog_file(catalog_path, append_manifest(catalog, manifest))
        except (OSError, VbStoreError) as error:
            raise WriteFailureError(
                f"Failed to commit version {version} of '{path}': {error}. "
                "No partial version was published; retry the write."
            ) from error
        _LOGGER.info(
            "version_committed",
            path=path,
            version=version,
            record_count=record_count,
            payload_format=self._payload_format,
        )
        self._evict(path, retention_count)
        return manifest

    def _move_into_place(self, path: str, version: int, pending_dir: Path) -> None:
        """Rename a pending directory to its committed location."""
        version_dir = self._version_dir(path, version)
        if version in self.list_versions(path):
            raise VbStorageError(f"version {version} was committed by another writer")
        if version_dir.exists():
            _LOGGER.warning("orphan_version_removed", path=path, version=version)
            shutil.rmtree(version_dir)
        version_dir.parent.mkdir(parents=True, exist_ok=True)
        os.replace(pending_dir, version_dir)

    def _evict(self, path: str, retention_count: int) -> None:
        """Drop the oldest committed versions beyond the retention count.

        Runs after the commit point, so failures are logged and the next
        write retries the eviction.
        """
        try:
            manifests = self.manifests(path)
            if len(manifests) <= retention_count:
                return
            evicted = manifests[:-retention_count]
            catalog_path = self._path_root(path) / CATALOG_FILE_NAME
            write_catalog_file(catalog_path, manifests_to_catalog(manifests[-retention_count:]))
        except (OSError, VbStoreError) as error:
            _LOGGER.warning(
                "versions_evict_failed",
                path=path,
                retention_count=retention_count,
                error=str(error),
            )
            return
        for manifest in evicted:
            shutil.rmtree(self._version_dir(path, manifest.version), ignore_errors=True)
        _LOGGER.info(
            "versions_evicted",
            path=path,
            versions=[manifest.version for manifest in evicted],
            retention_count=retention_count,
        )

    def _write_payload(self, pending_dir: Path, encoded_pairs: list[BytesPair]) -> int:
        if self._payload_format == PAYLOAD_FORMAT_LANCE:
            return write_lance_pairs(pending_dir, encoded_pairs)
        return write_bytes_pairs_jsonl(pending_dir / RECORDS_FILE_NAME, encoded_pairs)

    def _iter_pairs(self, version_dir: Path, payload_format: str) -> Iterator[RecordPair]:
        """Stream decoded pairs from a committed version directory."""
        try:
            if payload_format == PAYLOAD_FORMAT_LANCE:
                raw_pairs = iter_lance_pairs(version_dir)
            else:
                raw_pairs = iter_bytes_pairs_jsonl(version_dir / RECORDS_FILE_NAME)
            for raw_pair in raw_pairs:
                yield self._injection.decode(raw_pair)
        except (OSError, ValueError) as error:
            raise VbStorageError(
                f"Failed to read version payload at {version_dir}: {error}. "
                "The version may have been evicted or corrupted; resolve the last batch again."
            ) from error

    def _version_dir(self, path: str, version: int) -> Path:
        return self._path_root(path) / VERSIONS_DIR_NAME / str(version)

    def _path_root(self, path: str) -> Path:
        """Return the directory for a logical path.

        Raises:
            VbCatalogError: If the path escapes the data root.
        """
        logical_path = PurePosixPath(path)
        if not logical_path.parts or logical_path.is_absolute() or ".." in logical_path.parts:
            raise VbCatalogError(
                f"Invalid store path '{path}': expected a relative path without '..'."
            )
        return self._data_root.joinpath(*logical_path.parts)


class LocalVersionSink:
    """Buffered write handle for one pending local version."""

    def __init__(
        self,
        storage: LocalVersionedStorage,
        path: str,
        version: int,
        pending_dir: Path,
        retention_count: int,
        max_failures: int,
    ) -> None:
        self._storage = storage
        self._path = path
        self._version = version
        self._pending_dir = pending_dir
        self._retention_count = retention_count
        self._max_failures = max_failures
        self._encoded: list[BytesPair] = []
        self._failures = 0
        self._closed = False

    def write(self, pair: RecordPair) -> None:
        """Encode and buffer one physical pair.

        Args:
            pair: Physical key and value.

        Raises:
            WriteFailureError: If encoding failures exceed the tolerance.
        """
        if self._closed:
            raise WriteFailureError(
                f"Sink for version {self._version} of '{self._path}' is already closed."
            )
        try:
            encoded = self._storage.encode(pair)
        except (TypeError, ValueError) as error:
            self._failures += 1
            if self._failures > self._max_failures:
                raise WriteFailureError(
                    f"Failed to encode record for version {self._version} of '{self._path}': "
                    f"{error}. {self._failures} failure(s) exceed the tolerance of "
                    f"{self._max_failures}."
                ) from error
            _LOGGER.warning(
                "record_encode_skipped",
                path=self._path,
                version=self._version,
                failures=self._failures,
                error=str(error),
            )
            return
        self._encoded.append(encoded)

    def __enter__(self) -> "LocalVersionSink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self._closed = True
        if exc_type is not None:
            self._abort(str(exc_value))
            return
        try:
            self._storage.publish(
                self._path,
                self._version,
                self._pending_dir,
                self._encoded,
                self._retention_count,
            )
        except WriteFailureError as error:
            self._abort(str(error))
            raise

    def _abort(self, reason: str) -> None:
        shutil.rmtree(self._pending_dir, ignore_errors=True)
        _LOGGER.error(
            "version_write_failed",
            path=self._path,
            version=self._version,
            reason=reason,
        )
