"""vbstore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class VbStoreError(Exception):
    """Base exception for all vbstore failures."""


class VbConfigError(VbStoreError):
    """Raised for invalid runtime configuration."""


class VbDependencyError(VbStoreError):
    """Raised when an optional runtime dependency is missing."""


class VbCatalogError(VbStoreError):
    """Raised for unreadable or inconsistent version catalogs."""


class VbStorageError(VbStoreError):
    """Raised for version payload read and write failures."""


class UnsupportedModeError(VbStoreError):
    """Raised when a store is read under an execution mode it cannot serve."""

    def __init__(self, mode_name: str, root_path: str) -> None:
        self.mode_name = mode_name
        self.root_path = root_path
        super().__init__(
            f"Mode: {mode_name} not supported for VersionedBatchStore({root_path}). "
            "Read last batches under a versioned storage mode."
        )


class NoPriorVersionError(VbStoreError):
    """Raised when no committed version precedes the requested batch."""

    def __init__(self, exclusive_upper_bound: str, root_path: str) -> None:
        self.exclusive_upper_bound = exclusive_upper_bound
        self.root_path = root_path
        super().__init__(
            f"No last batch available < {exclusive_upper_bound} "
            f"for VersionedBatchStore({root_path})"
        )


class WriteFailureError(VbStorageError):
    """Raised when a new version cannot be committed in full."""
