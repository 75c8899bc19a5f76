"""Collaborator interfaces consumed by the versioned batch store.

The store only lists versions, reads their optional tags, opens one
version for reading, and opens a new version for writing. Durability,
atomic publication and retention belong to the implementations.
"""

from __future__ import annotations

from types import TracebackType
from typing import Iterator, Protocol

from core.types import RecordPair


class MetadataCatalog(Protocol):
    """Lists committed versions and their legacy tags."""

    def list_versions(self, path: str) -> set[int]:
        """Return every committed version number for a logical path."""
        ...

    def get_tag(self, path: str, version: int) -> str | None:
        """Return the legacy compatibility tag stored with a version."""
        ...


class VersionReader(Protocol):
    """Opens one committed version for reading."""

    def open_for_read(self, path: str, version: int) -> Iterator[RecordPair]:
        """Return the physical pairs stored under a version."""
        ...


class RecordSink(Protocol):
    """Write handle for one pending version; commits on clean exit."""

    def write(self, pair: RecordPair) -> None:
        ...

    def __enter__(self) -> "RecordSink":
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        ...


class VersionWriter(Protocol):
    """Opens a new version for writing."""

    def open_for_write(
        self,
        path: str,
        version: int,
        retention_count: int,
        max_failures: int,
    ) -> RecordSink:
        """Return a sink publishing ``version`` once it exits cleanly."""
        ...
