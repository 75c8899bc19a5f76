"""Record codecs injected into versioned stores.

``RecordCodec`` converts logical ``(key, value)`` records to the physical
pairs stored in a version and back. ``PairInjection`` converts physical
pairs to the key/value bytes a storage backend persists.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Protocol

from batch.batch_id import BatchID
from core.types import BytesPair, RecordPair

PackFn = Callable[[BatchID, RecordPair], RecordPair]
UnpackFn = Callable[[RecordPair], RecordPair]


class RecordCodec(Protocol):
    """Bidirectional mapping between logical records and physical pairs."""

    def pack(self, batch_id: BatchID, pair: RecordPair) -> RecordPair:
        ...

    def unpack(self, pair: RecordPair) -> RecordPair:
        ...


class PairInjection(Protocol):
    """Bidirectional mapping between physical pairs and byte pairs."""

    def encode(self, pair: RecordPair) -> BytesPair:
        ...

    def decode(self, payload: BytesPair) -> RecordPair:
        ...


class BatchTaggedCodec:
    """Stores each value next to the batch it was written for.

    ``(key, value)`` packs to ``(key, [batch_number, value])``.
    """

    def pack(self, batch_id: BatchID, pair: RecordPair) -> RecordPair:
        key, value = pair
        return key, [batch_id.id, value]

    def unpack(self, pair: RecordPair) -> RecordPair:
        key, packed_value = pair
        _, value = packed_value
        return key, value


class FunctionCodec:
    """Record codec assembled from plain pack and unpack functions."""

    def __init__(self, pack: PackFn, unpack: UnpackFn) -> None:
        self._pack = pack
        self._unpack = unpack

    def pack(self, batch_id: BatchID, pair: RecordPair) -> RecordPair:
        return self._pack(batch_id, pair)

    def unpack(self, pair: RecordPair) -> RecordPair:
        return self._unpack(pair)


class JsonPairInjection:
    """Encodes each side of a pair as compact, key-sorted UTF-8 JSON."""

    def encode(self, pair: RecordPair) -> BytesPair:
        """Encode a physical pair.

        Args:
            pair: JSON-serializable key and value.

        Returns:
            Key bytes and value bytes.

        Raises:
            TypeError: If either side is not JSON serializable.
        """
        key, value = pair
        return _dump_json(key), _dump_json(value)

    def decode(self, payload: BytesPair) -> RecordPair:
        key_bytes, value_bytes = payload
        return _load_json(key_bytes), _load_json(value_bytes)


def _dump_json(value: Any) -> bytes:
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _load_json(payload: bytes) -> Any:
    return json.loads(payload.decode("utf-8"))
