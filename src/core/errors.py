"""Strata exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Store errors carry the bundle id and, where relevant, the offending
path and file count so a human can inspect the directory directly.
"""

from __future__ import annotations

from pathlib import Path


class StrataError(Exception):
    """Base exception for all Strata failures."""


class ConfigurationError(StrataError):
    """Raised when the storage root or runtime settings cannot be resolved."""


class StoreError(StrataError):
    """Raised for bundle store and versioning failures."""

    def __init__(self, message: str, bundle_id: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.bundle_id = bundle_id
        self.path = path


class InvalidBundleIdError(StoreError):
    """Raised when a bundle id is not a usable directory name."""


class BundleNotFoundError(StoreError):
    """Raised when a bundle directory does not exist."""


class AmbiguousBundleError(StoreError):
    """Raised when a bundle does not hold exactly one current version."""

    def __init__(self, message: str, bundle_id: str, path: Path, count: int) -> None:
        super().__init__(message, bundle_id, path)
        self.count = count


class VersionNotFoundError(StoreError):
    """Raised when a requested version id is not present in a bundle."""


class VersionCollisionError(StoreError):
    """Raised when a new version would reuse an existing version filename."""


class SerializationError(StoreError):
    """Raised when a table cannot be written to a version artifact."""


class DeserializationError(StoreError):
    """Raised when a version artifact cannot be read back into a table."""


class UnsupportedColumnTypeError(StoreError):
    """Raised when a column type cannot be represented by the codec."""

    def __init__(self, message: str, bundle_id: str, column: str, column_type: str) -> None:
        super().__init__(message, bundle_id)
        self.column = column
        self.column_type = column_type


class RemovalNoOpWarning(UserWarning):
    """Issued when a removal targets a bundle or archive that does not exist."""
