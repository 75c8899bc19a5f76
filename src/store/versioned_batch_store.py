"""Versioned batch store: last-batch reads and writes.

The store keeps one "last" snapshot per batch (the newest value for each
key) in versioned storage. Reading finds the newest version strictly
before a batch; writing publishes the snapshot that completes a batch.

Listing versions and opening the chosen one do not happen atomically.
Retention may evict the chosen version before its producer runs; the
producer then fails with VbStorageError and the caller resolves again.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator

from batch.batch_id import BatchID
from batch.batcher import Batcher
from core.constants import DEFAULT_MAX_FAILURES
from core.errors import (
    NoPriorVersionError,
    UnsupportedModeError,
    VbStoreError,
    WriteFailureError,
)
from core.logging_config import get_logger
from core.types import (
    CandidateVersion,
    CurrentEncoding,
    LastBatch,
    LegacyEncoding,
    ReadLastResult,
    RecordPair,
    VersionListing,
)
from store.codecs import RecordCodec
from store.execution import (
    ExecutionContext,
    ExecutionMode,
    LazyRecordProducer,
    VersionedStorageMode,
)
from store.interfaces import MetadataCatalog
from store.version_resolver import VersionResolver, encoding_for, parse_tag

_LOGGER = get_logger(__name__)

KeyOrder = Callable[[Any], Any]


class VersionedBatchStore:
    """Batch store persisting one version per completed batch."""

    def __init__(
        self,
        root_path: str,
        versions_to_keep: int,
        batcher: Batcher,
        codec: RecordCodec,
        key_order: KeyOrder | None = None,
    ) -> None:
        """Create a store bound to one logical path.

        Args:
            root_path: Logical storage path of the store.
            versions_to_keep: Committed versions retained after each write.
            batcher: Timestamp to batch mapping used for version numbers.
            codec: Packs logical records for storage and unpacks them on read.
            key_order: Sort key over logical keys; writes keep input order when omitted.

        Raises:
            ValueError: If ``versions_to_keep`` is below one.
        """
        if versions_to_keep < 1:
            raise ValueError(
                f"versions_to_keep must be at least 1 for VersionedBatchStore({root_path})."
            )
        self._root_path = root_path
        self._versions_to_keep = versions_to_keep
        self._resolver = VersionResolver(batcher)
        self._codec = codec
        self._key_order = key_order

    @property
    def root_path(self) -> str:
        return self._root_path

    @property
    def versions_to_keep(self) -> int:
        return self._versions_to_keep

    @property
    def batcher(self) -> Batcher:
        return self._resolver.batcher

    @property
    def key_order(self) -> KeyOrder | None:
        return self._key_order

    def batch_id_to_version(self, batch_id: BatchID) -> int:
        return self._resolver.batch_id_to_version(batch_id)

    def version_to_batch_id(self, version: int) -> BatchID:
        return self._resolver.version_to_batch_id(version)

    def read_last(self, exclusive_upper_bound: BatchID, mode: ExecutionMode) -> ReadLastResult:
        """Find the newest stored batch strictly before a bound.

        Combining the returned last snapshot with the deltas of the batches
        after it yields the state at ``exclusive_upper_bound``.

        Args:
            exclusive_upper_bound: Batch the caller is about to compute.
            mode: Execution mode; only versioned storage is supported.

        Returns:
            Result holding the selected LastBatch, or descriptive errors
            when the mode is unsupported or no earlier version exists.
        """
        if not isinstance(mode, VersionedStorageMode):
            _LOGGER.error("read_mode_unsupported", path=self._root_path, mode=mode.name)
            return ReadLastResult.failure(UnsupportedModeError(mode.name, self._root_path))
        try:
            selected = self._last_candidate(exclusive_upper_bound, mode.catalog)
        except VbStoreError as error:
            return ReadLastResult.failure(error)
        if selected is None:
            _LOGGER.warning(
                "last_batch_missing",
                path=self._root_path,
                exclusive_upper_bound=str(exclusive_upper_bound),
            )
            return ReadLastResult.failure(
                NoPriorVersionError(str(exclusive_upper_bound), self._root_path)
            )
        _LOGGER.info(
            "last_batch_resolved",
            path=self._root_path,
            exclusive_upper_bound=str(exclusive_upper_bound),
            batch_id=str(selected.batch_id),
            version=selected.version,
            legacy=isinstance(selected.encoding, LegacyEncoding),
        )
        return ReadLastResult.success(
            LastBatch(
                batch_id=selected.batch_id,
                version=selected.version,
                producer=self._read_version(selected.version),
            )
        )

    def write_last(
        self,
        batch_id: BatchID,
        records: Iterable[RecordPair],
        context: ExecutionContext,
    ) -> None:
        """Publish the last snapshot that completes ``batch_id``.

        Args:
            batch_id: Batch whose events are all included in ``records``.
            records: Logical ``(key, value)`` records, newest value per key.
            context: Execution context providing the storage writer.

        Raises:
            UnsupportedModeError: If the context is not backed by versioned storage.
            WriteFailureError: If any record or the commit fails.
        """
        mode = context.mode
        if not isinstance(mode, VersionedStorageMode):
            raise UnsupportedModeError(mode.name, self._root_path)
        version = self.batch_id_to_version(batch_id)
        try:
            ordered = self._ordered(records)
            with mode.writer.open_for_write(
                self._root_path,
                version,
                retention_count=self._versions_to_keep,
                max_failures=DEFAULT_MAX_FAILURES,
            ) as sink:
                for pair in ordered:
                    sink.write(self._codec.pack(batch_id, pair))
        except WriteFailureError:
            raise
        except Exception as error:
            raise WriteFailureError(
                f"Failed to write last batch {batch_id} to VersionedBatchStore"
                f"({self._root_path}) as version {version}: {error}."
            ) from error
        _LOGGER.info(
            "last_batch_written",
            path=self._root_path,
            batch_id=str(batch_id),
            version=version,
            job_name=context.job_name,
        )

    def describe_versions(self, catalog: MetadataCatalog) -> list[VersionListing]:
        """Return every listed version with its resolved batch, oldest first."""
        listings = []
        for version in sorted(catalog.list_versions(self._root_path)):
            tag = catalog.get_tag(self._root_path, version)
            candidate = self._resolve_candidate(version, tag)
            listings.append(
                VersionListing(
                    version=version,
                    tag=tag,
                    batch_id=candidate.batch_id,
                    encoding=candidate.encoding,
                )
            )
        return listings

    def _last_candidate(
        self,
        exclusive_upper_bound: BatchID,
        catalog: MetadataCatalog,
    ) -> CandidateVersion | None:
        """Select the greatest candidate below the bound.

        Ties on batch go to the greater version number.
        """
        candidates = (
            self._resolve_candidate(version, catalog.get_tag(self._root_path, version))
            for version in catalog.list_versions(self._root_path)
        )
        eligible = [item for item in candidates if item.batch_id < exclusive_upper_bound]
        if not eligible:
            return None
        return max(eligible, key=lambda item: (item.batch_id, item.version))

    def _resolve_candidate(self, version: int, tag: str | None) -> CandidateVersion:
        """Resolve one listed version.

        Unparsable tags resolve under the current convention and are
        recorded with CurrentEncoding.
        """
        encoding = encoding_for(tag)
        if isinstance(encoding, LegacyEncoding) and parse_tag(encoding.raw_tag) is None:
            _LOGGER.warning(
                "version_tag_unparsable",
                path=self._root_path,
                version=version,
                tag=encoding.raw_tag,
            )
            encoding = CurrentEncoding()
        return CandidateVersion(
            batch_id=self._resolver.resolve(version, encoding),
            version=version,
            encoding=encoding,
        )

    def _read_version(self, version: int) -> LazyRecordProducer:
        """Bind a deferred reader to one version of this store."""
        root_path = self._root_path
        codec = self._codec

        def _open(context: ExecutionContext) -> Iterator[RecordPair]:
            mode = context.mode
            if not isinstance(mode, VersionedStorageMode):
                raise UnsupportedModeError(mode.name, root_path)
            return (codec.unpack(pair) for pair in mode.reader.open_for_read(root_path, version))

        return LazyRecordProducer(_open, f"{root_path}@{version}")

    def _ordered(self, records: Iterable[RecordPair]) -> Iterable[RecordPair]:
        if self._key_order is None:
            return records
        key_order = self._key_order
        return sorted(records, key=lambda pair: key_order(pair[0]))
