"""Catalog and manifest persistence helpers.

This module isolates JSON catalog IO for versioned paths. The catalog is
the commit point: a version is visible once its entry is written here.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
import json
import os
from pathlib import Path
from typing import Any, cast

from core.constants import MANIFEST_FILE_NAME, VERSION_TAG_FILE_NAME
from core.errors import VbCatalogError
from core.types import VersionManifest


def read_catalog_file(catalog_path: Path) -> dict[str, Any]:
    """Read and validate a path catalog payload.

    Args:
        catalog_path: Catalog JSON path.

    Returns:
        Parsed catalog object; an empty catalog when the file is absent.

    Raises:
        VbCatalogError: If catalog is invalid.
    """
    if not catalog_path.exists():
        return {"versions": []}
    try:
        payload = json.loads(catalog_path.read_bytes().decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise VbCatalogError(
            f"Failed to parse version catalog at {catalog_path}: {error}. "
            "Restore the catalog from the committed version manifests."
        ) from error
    if not isinstance(payload, dict) or not isinstance(payload.get("versions"), list):
        raise VbCatalogError(
            f"Failed to parse version catalog at {catalog_path}: "
            "expected a JSON object with a 'versions' list. Recreate the catalog."
        )
    return payload


def write_catalog_file(catalog_path: Path, catalog: dict[str, Any]) -> None:
    """Replace a catalog file atomically.

    Args:
        catalog_path: Catalog JSON path.
        catalog: Catalog payload to persist.
    """
    staging_path = catalog_path.with_name(catalog_path.name + ".tmp")
    staging_path.write_text(json.dumps(catalog, indent=2) + "\n", encoding="utf-8")
    os.replace(staging_path, catalog_path)


def catalog_manifests(catalog: dict[str, Any]) -> list[VersionManifest]:
    """Return catalog entries sorted by version number.

    Raises:
        VbCatalogError: If an entry is missing fields or holds invalid values.
    """
    entries = cast(list[dict[str, Any]], catalog["versions"])
    try:
        manifests = [manifest_from_dict(item) for item in entries]
    except (KeyError, TypeError, ValueError) as error:
        raise VbCatalogError(
            f"Invalid version catalog entry: {error!r}. "
            "Restore the catalog from the committed version manifests."
        ) from error
    return sorted(manifests, key=lambda item: item.version)


def append_manifest(catalog: dict[str, Any], manifest: VersionManifest) -> dict[str, Any]:
    """Return a catalog with ``manifest`` added or replacing its version."""
    retained = [item for item in catalog_manifests(catalog) if item.version != manifest.version]
    return manifests_to_catalog(retained + [manifest])


def manifests_to_catalog(manifests: list[VersionManifest]) -> dict[str, Any]:
    """Build a catalog payload from manifests."""
    ordered = sorted(manifests, key=lambda item: item.version)
    return {
        "latest_version": ordered[-1].version if ordered else None,
        "versions": [manifest_to_dict(item) for item in ordered],
    }


def write_manifest_file(version_dir: Path, manifest: VersionManifest) -> None:
    """Write per-version manifest file.

    Args:
        version_dir: Version directory.
        manifest: Manifest payload.
    """
    manifest_path = version_dir / MANIFEST_FILE_NAME
    manifest_path.write_text(
        json.dumps(manifest_to_dict(manifest), indent=2) + "\n", encoding="utf-8"
    )


def read_manifest_file(version_dir: Path) -> VersionManifest:
    """Read per-version manifest file.

    Args:
        version_dir: Version directory.

    Returns:
        Parsed manifest.

    Raises:
        VbCatalogError: If the manifest is missing or invalid.
    """
    manifest_path = version_dir / MANIFEST_FILE_NAME
    try:
        payload = json.loads(manifest_path.read_text(encoding="utf-8"))
        return manifest_from_dict(payload)
    except FileNotFoundError as error:
        raise VbCatalogError(
            f"Missing version manifest at {manifest_path}. "
            "The version may have been evicted; resolve the last batch again."
        ) from error
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as error:
        raise VbCatalogError(
            f"Failed to parse version manifest at {manifest_path}: {error}. "
            "Rewrite the version from its source batch."
        ) from error


def manifest_to_dict(manifest: VersionManifest) -> dict[str, Any]:
    manifest_dict = asdict(manifest)
    manifest_dict["created_at"] = manifest.created_at.isoformat()
    return manifest_dict


def manifest_from_dict(payload: dict[str, Any]) -> VersionManifest:
    """Deserialize manifest payload from dictionary.

    Args:
        payload: Manifest dictionary.

    Returns:
        Typed version manifest.
    """
    return VersionManifest(
        version=int(payload["version"]),
        created_at=datetime.fromisoformat(str(payload["created_at"])),
        record_count=int(payload["record_count"]),
        payload_format=str(payload["payload_format"]),
    )


def read_tag_file(version_dir: Path) -> str | None:
    """Read a version's legacy tag sidecar.

    Sidecars hold a JSON string. Any other content is returned as raw text
    so the resolver can treat it as an unparsable tag.

    Args:
        version_dir: Version directory.

    Returns:
        Stored tag, or ``None`` when absent.
    """
    tag_path = version_dir / VERSION_TAG_FILE_NAME
    if not tag_path.exists():
        return None
    raw_text = tag_path.read_bytes().decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError:
        return raw_text
    return payload if isinstance(payload, str) else raw_text


def write_tag_file(version_dir: Path, tag: str) -> None:
    """Write a version's legacy tag sidecar as a JSON string."""
    tag_path = version_dir / VERSION_TAG_FILE_NAME
    tag_path.write_text(json.dumps(tag) + "\n", encoding="utf-8")
