"""Lance dataset persistence for version payloads.

Versions written in the ``lance`` payload format hold one Apache Lance
dataset with binary ``key`` and ``value`` columns.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from core.constants import LANCE_DIR_NAME
from core.errors import VbDependencyError, VbStorageError
from core.types import BytesPair


def write_lance_pairs(version_dir: Path, pairs: list[BytesPair]) -> int:
    """Persist byte pairs as a Lance dataset.

    Args:
        version_dir: Pending version directory.
        pairs: Encoded pairs to persist.

    Returns:
        Number of rows written.

    Raises:
        VbDependencyError: If lance or pyarrow is missing.
        VbStorageError: If the dataset write fails.
    """
    lance, pa = _import_lance()
    table = pa.table(
        {
            "key": pa.array([key for key, _ in pairs], type=pa.binary()),
            "value": pa.array([value for _, value in pairs], type=pa.binary()),
        }
    )
    lance_uri = str(version_dir / LANCE_DIR_NAME)
    try:
        lance.write_dataset(table, lance_uri, mode="overwrite")
    except Exception as error:
        raise VbStorageError(
            f"Failed to write Lance dataset at {lance_uri}: {error}. "
            "Validate lance/pyarrow compatibility and retry the write."
        ) from error
    return len(pairs)


def iter_lance_pairs(version_dir: Path) -> Iterator[BytesPair]:
    """Stream byte pairs from a version's Lance dataset.

    Args:
        version_dir: Committed version directory.

    Returns:
        Iterator over pairs in persisted order.

    Raises:
        VbDependencyError: If lance or pyarrow is missing.
        VbStorageError: If the dataset cannot be opened.
    """
    lance, _ = _import_lance()
    lance_uri = str(version_dir / LANCE_DIR_NAME)
    try:
        dataset = lance.dataset(lance_uri)
    except Exception as error:
        raise VbStorageError(
            f"Failed to open Lance dataset at {lance_uri}: {error}. "
            "The version may have been evicted; resolve the last batch again."
        ) from error
    for batch in dataset.to_batches(columns=["key", "value"]):
        keys = batch.column("key").to_pylist()
        values = batch.column("value").to_pylist()
        yield from zip(keys, values)


def _import_lance() -> tuple[Any, Any]:
    """Import lance and pyarrow lazily.

    Raises:
        VbDependencyError: If either library is missing.
    """
    try:
        import lance
        import pyarrow as pa
    except ImportError as error:
        raise VbDependencyError(
            "The lance payload format requires pylance and pyarrow. "
            "Install both or set VBSTORE_PAYLOAD_FORMAT=jsonl."
        ) from error
    return lance, pa
