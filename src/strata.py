"""Public SDK surface for Strata.

This module provides a stable import path for pipeline code.
It re-exports the bundle store, its config, and its error types.
"""

from __future__ import annotations

from core.config import StrataConfig
from core.errors import (
    AmbiguousBundleError,
    BundleNotFoundError,
    ConfigurationError,
    DeserializationError,
    InvalidBundleIdError,
    RemovalNoOpWarning,
    SerializationError,
    StoreError,
    StrataError,
    UnsupportedColumnTypeError,
    VersionCollisionError,
    VersionNotFoundError,
)
from core.identity import IdentityGenerator, generate_id
from core.paths import resolve_root
from core.types import BundleInfo, BundleMetadata, FormatTag
from store.bundle_locks import BundleLockRegistry
from store.bundle_store import BundleStore
from store.parquet_codec import ParquetCodec

__all__ = [
    "AmbiguousBundleError",
    "BundleInfo",
    "BundleLockRegistry",
    "BundleMetadata",
    "BundleNotFoundError",
    "BundleStore",
    "ConfigurationError",
    "DeserializationError",
    "FormatTag",
    "IdentityGenerator",
    "InvalidBundleIdError",
    "ParquetCodec",
    "RemovalNoOpWarning",
    "SerializationError",
    "StoreError",
    "StrataConfig",
    "StrataError",
    "UnsupportedColumnTypeError",
    "VersionCollisionError",
    "VersionNotFoundError",
    "generate_id",
    "resolve_root",
]
