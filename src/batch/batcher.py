"""Batchers mapping physical timestamps onto batch identifiers.

Timestamps are integer epoch milliseconds. Timezone-aware datetimes are
accepted wherever a timestamp is read and converted on the way in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterator, Protocol, Union

from batch.batch_id import BatchID
from core.constants import MILLIS_PER_DAY, MILLIS_PER_HOUR, MILLIS_PER_MINUTE

Timestamp = Union[int, datetime]
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Batcher(Protocol):
    """Mapping between physical timestamps and logical batches."""

    def batch_of(self, timestamp: Timestamp) -> BatchID: ...

    def earliest_time_of(self, batch_id: BatchID) -> int: ...


@dataclass(frozen=True)
class MillisecondBatcher:
    """Fixed-width batcher over epoch milliseconds.

    Batch ``n`` covers ``[n * duration_ms, (n + 1) * duration_ms)``. Negative
    timestamps floor toward the earlier batch.

    Attributes:
        duration_ms: Width of each batch in milliseconds.
    """

    duration_ms: int

    def __post_init__(self) -> None:
        if self.duration_ms <= 0:
            raise ValueError(
                f"Batch duration must be positive, got {self.duration_ms}ms."
            )

    def batch_of(self, timestamp: Timestamp) -> BatchID:
        """Return the batch containing a timestamp.

        Args:
            timestamp: Epoch milliseconds or timezone-aware datetime.

        Returns:
            Containing batch identifier.
        """
        return BatchID(to_epoch_millis(timestamp) // self.duration_ms)

    def earliest_time_of(self, batch_id: BatchID) -> int:
        """Return the first epoch millisecond covered by a batch."""
        return batch_id.id * self.duration_ms

    def latest_time_of(self, batch_id: BatchID) -> int:
        """Return the last epoch millisecond covered by a batch."""
        return self.earliest_time_of(batch_id.next) - 1

    def batch_ids_covering(self, start_ms: Timestamp, end_ms: Timestamp) -> Iterator[BatchID]:
        """Yield every batch overlapping the inclusive interval ``[start, end]``.

        Args:
            start_ms: Interval start.
            end_ms: Interval end, inclusive.

        Returns:
            Iterator over overlapping batches in ascending order.
        """
        return BatchID.range(self.batch_of(start_ms), self.batch_of(end_ms))


def of_minutes(minutes: int) -> MillisecondBatcher:
    """Build a batcher with batches ``minutes`` wide."""
    return MillisecondBatcher(minutes * MILLIS_PER_MINUTE)


def of_hours(hours: int) -> MillisecondBatcher:
    """Build a batcher with batches ``hours`` wide."""
    return MillisecondBatcher(hours * MILLIS_PER_HOUR)


def of_days(days: int) -> MillisecondBatcher:
    """Build a batcher with batches ``days`` wide."""
    return MillisecondBatcher(days * MILLIS_PER_DAY)


def to_epoch_millis(timestamp: Timestamp) -> int:
    """Normalize a timestamp to integer epoch milliseconds.

    Args:
        timestamp: Epoch milliseconds or timezone-aware datetime.

    Returns:
        Epoch milliseconds.

    Raises:
        ValueError: If a naive datetime is supplied.
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            raise ValueError(
                f"Naive datetime {timestamp.isoformat()} is ambiguous. "
                "Attach a timezone before batching."
            )
        return (timestamp - _EPOCH) // timedelta(milliseconds=1)
    return int(timestamp)
