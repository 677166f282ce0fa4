"""Shared typed models.

This module defines immutable models passed between the bundle store,
the codec, and SDK callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True)
class FormatTag:
    """Codec and compression pair encoded in artifact filenames.

    Attributes:
        codec: Serialization format identifier, e.g. ``parq``.
        compression: Compression algorithm identifier, e.g. ``snappy``.
    """

    codec: str
    compression: str

    def __str__(self) -> str:
        return f"{self.codec}.{self.compression}"

    def artifact_name(self, version_id: str) -> str:
        """Return the artifact filename for a version id."""
        return f"{version_id}.{self}"


@dataclass(frozen=True)
class BundleMetadata:
    """Key/value annotations persisted inside a version artifact.

    Attributes:
        metadata: Bundle-level annotations.
        column_metadata: Per-column annotations keyed by column name.
    """

    metadata: Mapping[str, str] = field(default_factory=dict)
    column_metadata: Mapping[str, Mapping[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class BundleInfo:
    """Summary of one bundle directory.

    Attributes:
        bundle_id: Bundle identifier and directory name.
        path: Bundle directory path.
        current_version: Version id of the current artifact, if any.
        format_tag: Format tag of the current artifact, if any.
        archived_versions: Archived version ids in chronological order.
    """

    bundle_id: str
    path: Path
    current_version: str | None
    format_tag: FormatTag | None
    archived_versions: tuple[str, ...]
