"""JSONL serialization for physical key/value byte pairs.

Each row holds base64 ``key`` and ``value`` fields. Rows are written in
order and streamed back lazily so large versions are never fully loaded.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Iterable, Iterator

from core.types import BytesPair


def bytes_pair_to_payload(pair: BytesPair) -> dict[str, str]:
    """Serialize a byte pair into a JSON-safe payload.

    Args:
        pair: Encoded key and value.

    Returns:
        Dictionary payload for JSON encoding.
    """
    key_bytes, value_bytes = pair
    return {
        "key": base64.b64encode(key_bytes).decode("ascii"),
        "value": base64.b64encode(value_bytes).decode("ascii"),
    }


def bytes_pair_from_payload(payload: dict[str, Any]) -> BytesPair:
    """Deserialize a JSON payload into a byte pair.

    Args:
        payload: Serialized row payload.

    Returns:
        Encoded key and value.

    Raises:
        ValueError: If fields are missing or not valid base64.
    """
    key_text = payload.get("key")
    value_text = payload.get("value")
    if not isinstance(key_text, str) or not isinstance(value_text, str):
        raise ValueError("expected string 'key' and 'value' fields")
    try:
        return (
            base64.b64decode(key_text, validate=True),
            base64.b64decode(value_text, validate=True),
        )
    except binascii.Error as error:
        raise ValueError(f"invalid base64 payload: {error}") from error


def write_bytes_pairs_jsonl(records_path: Path, pairs: Iterable[BytesPair]) -> int:
    """Write byte pairs to a JSONL file.

    Args:
        records_path: Output JSONL file path.
        pairs: Pairs to serialize.

    Returns:
        Number of rows written.
    """
    row_count = 0
    with records_path.open("w", encoding="utf-8") as handle:
        for pair in pairs:
            handle.write(json.dumps(bytes_pair_to_payload(pair), sort_keys=True) + "\n")
            row_count += 1
    return row_count


def iter_bytes_pairs_jsonl(records_path: Path) -> Iterator[BytesPair]:
    """Stream byte pairs from a JSONL file.

    Args:
        records_path: Input JSONL file path.

    Returns:
        Iterator over parsed pairs in persisted order.

    Raises:
        ValueError: If a JSONL row is invalid.
    """
    with records_path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, 1):
            if not line.strip():
                continue
            payload = _parse_payload_line(line, line_number)
            try:
                yield bytes_pair_from_payload(payload)
            except ValueError as error:
                raise ValueError(f"Invalid payload at line {line_number}: {error}") from error


def _parse_payload_line(line: str, line_number: int) -> dict[str, Any]:
    """Parse and validate one JSONL payload row.

    Args:
        line: Raw JSONL line.
        line_number: One-based line number.

    Returns:
        Parsed payload dictionary.

    Raises:
        ValueError: If JSON row is invalid.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ValueError(
            f"Invalid JSON at line {line_number}: {error.msg}"
        ) from error
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid payload at line {line_number}: expected JSON object")
    return payload
