"""Mapping between batch identifiers and stored version numbers.

A version number is the first millisecond of the batch *after* the data
it holds, so version ``v`` means "every event before ``v`` is included".
Versions written under the legacy convention carry a sidecar tag naming
that exclusive upper-bound batch instead; the resolver reads both.
"""

from __future__ import annotations

from batch.batch_id import BatchID
from batch.batcher import Batcher
from core.types import CurrentEncoding, LegacyEncoding, VersionEncoding


class VersionResolver:
    """Pure conversions between batches and versions for one batcher."""

    def __init__(self, batcher: Batcher) -> None:
        self._batcher = batcher

    @property
    def batcher(self) -> Batcher:
        return self._batcher

    def batch_id_to_version(self, batch_id: BatchID) -> int:
        """Return the version number that publishes ``batch_id``.

        Args:
            batch_id: Last batch contained in the version.

        Returns:
            First millisecond of the following batch.
        """
        return self._batcher.earliest_time_of(batch_id.next)

    def version_to_batch_id(self, version: int) -> BatchID:
        """Return the last batch contained in a current-convention version."""
        return self._batcher.batch_of(version).prev

    def version_to_batch_id_compat(self, version: int, tag: str | None) -> BatchID:
        """Resolve a version that may carry a legacy tag.

        Args:
            version: Stored version number.
            tag: Optional sidecar tag stored with the version.

        Returns:
            Last batch contained in the version. Never raises for bad tags.
        """
        return self.resolve(version, encoding_for(tag))

    def resolve(self, version: int, encoding: VersionEncoding) -> BatchID:
        """Resolve a version under an explicit encoding.

        Legacy tags hold the upper-bound batch, so every contained event is
        in a batch strictly less than the tag. Unparsable tags fall back to
        the current convention.
        """
        if isinstance(encoding, LegacyEncoding):
            upper_bound = parse_tag(encoding.raw_tag)
            if upper_bound is not None:
                return upper_bound.prev
        return self.version_to_batch_id(version)


def encoding_for(tag: str | None) -> VersionEncoding:
    """Choose the numbering convention implied by a stored tag."""
    if tag is None:
        return CurrentEncoding()
    return LegacyEncoding(raw_tag=tag)


def parse_tag(raw_tag: str) -> BatchID | None:
    """Parse a legacy tag, returning ``None`` when it is not a BatchID."""
    try:
        return BatchID.parse(raw_tag)
    except ValueError:
        return None
