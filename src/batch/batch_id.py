"""Batch identifier model.

A BatchID names one discrete unit of logical time. As an exclusive upper
bound it stands for "all events in batches strictly before this one".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from core.constants import BATCH_ID_PREFIX


@dataclass(frozen=True, order=True)
class BatchID:
    """Totally ordered logical batch identifier.

    Attributes:
        id: Integer position of the batch on the logical time line.
    """

    id: int

    @property
    def next(self) -> "BatchID":
        """Return the successor batch."""
        return BatchID(self.id + 1)

    @property
    def prev(self) -> "BatchID":
        """Return the predecessor batch."""
        return BatchID(self.id - 1)

    def __add__(self, count: int) -> "BatchID":
        return BatchID(self.id + count)

    def __sub__(self, count: int) -> "BatchID":
        return BatchID(self.id - count)

    def __str__(self) -> str:
        return f"{BATCH_ID_PREFIX}{self.id}"

    @classmethod
    def parse(cls, raw_value: str) -> "BatchID":
        """Parse the ``BatchID.<n>`` string form.

        Args:
            raw_value: String produced by ``str(batch_id)``.

        Returns:
            Parsed batch identifier.

        Raises:
            ValueError: If the value is not a BatchID string.
        """
        stripped = raw_value.strip()
        if not stripped.startswith(BATCH_ID_PREFIX):
            raise ValueError(
                f"Invalid BatchID string '{raw_value}': expected '{BATCH_ID_PREFIX}<integer>'."
            )
        try:
            return cls(int(stripped[len(BATCH_ID_PREFIX):]))
        except ValueError as error:
            raise ValueError(
                f"Invalid BatchID string '{raw_value}': expected '{BATCH_ID_PREFIX}<integer>'."
            ) from error

    @staticmethod
    def range(start: "BatchID", end: "BatchID") -> Iterator["BatchID"]:
        """Yield batches from ``start`` through ``end`` inclusive."""
        for batch_number in range(start.id, end.id + 1):
            yield BatchID(batch_number)
