"""Core constants used across vbstore modules.

This module centralizes storage layout names and runtime defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".vbstore")
VERSIONS_DIR_NAME = "versions"
PENDING_DIR_NAME = "_pending"
CATALOG_FILE_NAME = "catalog.json"
MANIFEST_FILE_NAME = "manifest.json"
RECORDS_FILE_NAME = "records.jsonl"
LANCE_DIR_NAME = "data.lance"
VERSION_TAG_FILE_NAME = "_tag.json"
BATCH_ID_PREFIX = "BatchID."
MILLIS_PER_MINUTE = 60 * 1000
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR
DEFAULT_BATCH_DURATION_MS = MILLIS_PER_HOUR
DEFAULT_VERSIONS_TO_KEEP = 3
DEFAULT_MAX_FAILURES = 0
PAYLOAD_FORMAT_JSONL = "jsonl"
PAYLOAD_FORMAT_LANCE = "lance"
SUPPORTED_PAYLOAD_FORMATS = (PAYLOAD_FORMAT_JSONL, PAYLOAD_FORMAT_LANCE)
