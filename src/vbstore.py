"""Public SDK surface for vbstore.

This module provides a stable import path for library users.
It re-exports the client, store, time model, and execution types.
"""

from __future__ import annotations

from batch.batch_id import BatchID
from batch.batcher import MillisecondBatcher, of_days, of_hours, of_minutes
from core.config import VbStoreConfig
from core.errors import (
    NoPriorVersionError,
    UnsupportedModeError,
    VbStoreError,
    WriteFailureError,
)
from core.types import LastBatch, ReadLastResult
from store.codecs import BatchTaggedCodec, FunctionCodec, JsonPairInjection
from store.execution import (
    ExecutionContext,
    LazyRecordProducer,
    LocalMode,
    MemoryMode,
    VersionedStorageMode,
    versioned_mode,
)
from store.local_storage import LocalVersionedStorage
from store.store_sdk import VbStoreClient
from store.version_resolver import VersionResolver
from store.versioned_batch_store import VersionedBatchStore

__all__ = [
    "BatchID",
    "BatchTaggedCodec",
    "ExecutionContext",
    "FunctionCodec",
    "JsonPairInjection",
    "LastBatch",
    "LazyRecordProducer",
    "LocalMode",
    "LocalVersionedStorage",
    "MemoryMode",
    "MillisecondBatcher",
    "NoPriorVersionError",
    "ReadLastResult",
    "UnsupportedModeError",
    "VbStoreClient",
    "VbStoreConfig",
    "VbStoreError",
    "VersionResolver",
    "VersionedBatchStore",
    "VersionedStorageMode",
    "WriteFailureError",
    "of_days",
    "of_hours",
    "of_minutes",
    "versioned_mode",
]
