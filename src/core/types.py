"""Shared typed models.

This module defines immutable data models used by the resolver, store,
SDK, and CLI layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Union

from batch.batch_id import BatchID
from core.errors import VbStoreError

if TYPE_CHECKING:
    from store.execution import LazyRecordProducer

RecordPair = tuple[Any, Any]
BytesPair = tuple[bytes, bytes]


@dataclass(frozen=True)
class CurrentEncoding:
    """Version number is the first millisecond of the batch after the data."""


@dataclass(frozen=True)
class LegacyEncoding:
    """Version carries a sidecar tag naming its exclusive upper-bound batch.

    Attributes:
        raw_tag: Tag string exactly as stored next to the version.
    """

    raw_tag: str


VersionEncoding = Union[CurrentEncoding, LegacyEncoding]


@dataclass(frozen=True)
class CandidateVersion:
    """One listed version resolved onto the batch time line.

    Attributes:
        batch_id: Last batch fully contained in the version.
        version: Storage-assigned version number.
        encoding: Numbering convention the version was read under.
    """

    batch_id: BatchID
    version: int
    encoding: VersionEncoding


@dataclass(frozen=True)
class LastBatch:
    """Selected prior state for a read.

    Attributes:
        batch_id: Last batch contained in the selected version.
        version: Selected version number.
        producer: Deferred reader for the version's logical records.
    """

    batch_id: BatchID
    version: int
    producer: "LazyRecordProducer"


@dataclass(frozen=True)
class ReadLastResult:
    """Outcome of a last-batch read: either a LastBatch or errors.

    Attributes:
        last: Selected state when the read succeeded.
        errors: Descriptive errors when it did not.
    """

    last: LastBatch | None
    errors: tuple[VbStoreError, ...] = ()

    @classmethod
    def success(cls, last: LastBatch) -> "ReadLastResult":
        return cls(last=last)

    @classmethod
    def failure(cls, *errors: VbStoreError) -> "ReadLastResult":
        return cls(last=None, errors=tuple(errors))

    @property
    def is_ok(self) -> bool:
        return self.last is not None

    @property
    def messages(self) -> tuple[str, ...]:
        """Return error messages in reporting order."""
        return tuple(str(error) for error in self.errors)

    def unwrap(self) -> LastBatch:
        """Return the selected state or raise the first error.

        Raises:
            VbStoreError: The first recorded error when the read failed.
        """
        if self.last is None:
            raise self.errors[0]
        return self.last


@dataclass(frozen=True)
class VersionManifest:
    """Persisted metadata for one committed version.

    Attributes:
        version: Storage-assigned version number.
        created_at: UTC commit timestamp.
        record_count: Number of physical pairs written.
        payload_format: Physical payload format identifier.
    """

    version: int
    created_at: datetime
    record_count: int
    payload_format: str


@dataclass(frozen=True)
class VersionListing:
    """Inspection row describing how a stored version resolves."""

    version: int
    tag: str | None
    batch_id: BatchID
    encoding: VersionEncoding
