"""Runtime configuration model for vbstore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_BATCH_DURATION_MS,
    DEFAULT_DATA_ROOT,
    DEFAULT_VERSIONS_TO_KEEP,
    PAYLOAD_FORMAT_JSONL,
    SUPPORTED_PAYLOAD_FORMATS,
)
from core.errors import VbConfigError


@dataclass(frozen=True)
class VbStoreConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory holding versioned stores.
        versions_to_keep: Number of newest committed versions retained per path.
        batch_duration_ms: Width of one batch in epoch milliseconds.
        payload_format: Physical payload format for new versions.
    """

    data_root: Path
    versions_to_keep: int
    batch_duration_ms: int
    payload_format: str

    @classmethod
    def from_env(cls) -> "VbStoreConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            VbConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("VBSTORE_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        versions_to_keep = _parse_positive_int(
            "VBSTORE_VERSIONS_TO_KEEP",
            os.getenv("VBSTORE_VERSIONS_TO_KEEP", str(DEFAULT_VERSIONS_TO_KEEP)),
        )
        batch_duration_ms = _parse_positive_int(
            "VBSTORE_BATCH_DURATION_MS",
            os.getenv("VBSTORE_BATCH_DURATION_MS", str(DEFAULT_BATCH_DURATION_MS)),
        )
        payload_format = _parse_payload_format(
            os.getenv("VBSTORE_PAYLOAD_FORMAT", PAYLOAD_FORMAT_JSONL)
        )
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            versions_to_keep=versions_to_keep,
            batch_duration_ms=batch_duration_ms,
            payload_format=payload_format,
        )


def _parse_positive_int(env_name: str, raw_value: str) -> int:
    """Parse a strictly positive integer environment value.

    Args:
        env_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        VbConfigError: If value is not an integer above zero.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise VbConfigError(
            f"Invalid {env_name} value: expected integer, got '{raw_value}'. "
            f"Set {env_name} to a numeric value."
        ) from error
    if value < 1:
        raise VbConfigError(
            f"Invalid {env_name} value: expected a value of at least 1, got {value}."
        )
    return value


def _parse_payload_format(raw_value: str) -> str:
    """Validate the payload format environment value."""
    normalized = raw_value.strip().lower()
    if normalized not in SUPPORTED_PAYLOAD_FORMATS:
        raise VbConfigError(
            f"Invalid VBSTORE_PAYLOAD_FORMAT value '{raw_value}'. "
            f"Supported formats: {', '.join(SUPPORTED_PAYLOAD_FORMATS)}."
        )
    return normalized
