"""Execution modes, contexts, and deferred record producers.

A read resolves *which* version to use without touching its payload. The
payload is only opened when the caller runs the returned producer inside
an execution context it owns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Union

from core.types import RecordPair
from store.interfaces import MetadataCatalog, VersionReader, VersionWriter


@dataclass(frozen=True)
class VersionedStorageMode:
    """Mode backed by versioned storage; the only mode stores can read under.

    Attributes:
        catalog: Version listing and tag lookup.
        reader: Payload reader for committed versions.
        writer: Payload writer for new versions.
    """

    catalog: MetadataCatalog
    reader: VersionReader
    writer: VersionWriter

    @property
    def name(self) -> str:
        return "versioned-storage"


@dataclass(frozen=True)
class LocalMode:
    """In-process mode without versioned storage; unsupported by stores."""

    @property
    def name(self) -> str:
        return "local"


@dataclass(frozen=True)
class MemoryMode:
    """In-memory mode; stores report it as unsupported."""

    @property
    def name(self) -> str:
        return "memory"


ExecutionMode = Union[VersionedStorageMode, LocalMode, MemoryMode]


def versioned_mode(storage: Any) -> VersionedStorageMode:
    """Build a versioned mode from one object serving all three roles."""
    return VersionedStorageMode(catalog=storage, reader=storage, writer=storage)


@dataclass(frozen=True)
class ExecutionContext:
    """Caller-owned environment in which producers run and writes happen.

    Attributes:
        mode: Execution mode providing storage access.
        job_name: Label attached to log events.
    """

    mode: ExecutionMode
    job_name: str = "vbstore"


ProducerFn = Callable[[ExecutionContext], Iterator[RecordPair]]


class LazyRecordProducer:
    """Deferred record stream bound to a version but not yet opened."""

    def __init__(self, build: ProducerFn, description: str) -> None:
        self._build = build
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    def run(self, context: ExecutionContext) -> Iterator[RecordPair]:
        """Open the underlying payload and stream its records.

        Args:
            context: Execution context supplying storage access.

        Returns:
            Iterator over logical records.
        """
        return self._build(context)

    def map(self, transform: Callable[[RecordPair], RecordPair]) -> "LazyRecordProducer":
        """Return a producer applying ``transform`` to each record when run."""
        build = self._build

        def _mapped(context: ExecutionContext) -> Iterator[RecordPair]:
            return (transform(pair) for pair in build(context))

        return LazyRecordProducer(_mapped, self._description)

    def __repr__(self) -> str:
        return f"LazyRecordProducer({self._description})"
