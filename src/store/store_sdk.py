"""Python SDK for versioned batch stores.

This module wires configuration, local versioned storage, and stores
together so callers and the CLI share one construction path.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Iterable

from batch.batch_id import BatchID
from batch.batcher import MillisecondBatcher
from core.config import VbStoreConfig
from core.types import ReadLastResult, RecordPair, VersionListing
from store.codecs import BatchTaggedCodec, PairInjection, RecordCodec
from store.execution import ExecutionContext, VersionedStorageMode, versioned_mode
from store.local_storage import LocalVersionedStorage
from store.versioned_batch_store import KeyOrder, VersionedBatchStore


class VbStoreClient:
    """Primary SDK entry point for local versioned batch stores."""

    def __init__(
        self,
        config: VbStoreConfig | None = None,
        injection: PairInjection | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            injection: Optional physical pair to bytes codec.
        """
        self._config = config or VbStoreConfig.from_env()
        self._injection = injection
        self._storage = LocalVersionedStorage(
            self._config.data_root,
            injection=injection,
            payload_format=self._config.payload_format,
        )
        self._batcher = MillisecondBatcher(self._config.batch_duration_ms)

    @property
    def config(self) -> VbStoreConfig:
        return self._config

    @property
    def storage(self) -> LocalVersionedStorage:
        return self._storage

    @property
    def mode(self) -> VersionedStorageMode:
        return versioned_mode(self._storage)

    def context(self, job_name: str = "vbstore") -> ExecutionContext:
        """Return an execution context bound to local storage."""
        return ExecutionContext(mode=self.mode, job_name=job_name)

    def store(
        self,
        root_path: str,
        codec: RecordCodec | None = None,
        key_order: KeyOrder | None = None,
    ) -> VersionedBatchStore:
        """Build a store for one logical path.

        Args:
            root_path: Logical storage path.
            codec: Record codec; batch-tagged values when omitted.
            key_order: Optional sort key over logical keys.

        Returns:
            Configured store.
        """
        return VersionedBatchStore(
            root_path,
            versions_to_keep=self._config.versions_to_keep,
            batcher=self._batcher,
            codec=codec or BatchTaggedCodec(),
            key_order=key_order,
        )

    def read_last(self, root_path: str, exclusive_upper_bound: BatchID) -> ReadLastResult:
        return self.store(root_path).read_last(exclusive_upper_bound, self.mode)

    def write_last(
        self,
        root_path: str,
        batch_id: BatchID,
        records: Iterable[RecordPair],
    ) -> int:
        """Write the last snapshot for a batch and return its version number."""
        store = self.store(root_path)
        store.write_last(batch_id, records, self.context())
        return store.batch_id_to_version(batch_id)

    def describe_versions(self, root_path: str) -> list[VersionListing]:
        return self.store(root_path).describe_versions(self._storage)

    def with_data_root(self, data_root: str) -> "VbStoreClient":
        """Clone the client with a different local data root.

        The clone keeps this client's configuration and pair injection.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        return VbStoreClient(replace(self._config, data_root=resolved_root), self._injection)
