"""Bundle store over a local directory hierarchy.

Each bundle is a directory under the storage root holding exactly one
current version artifact plus an ``archive`` subdirectory of superseded
versions. New versions are serialized into a staging directory first
and promoted with a same-directory rename, so a failed write leaves the
bundle unchanged.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import tempfile
from typing import Mapping
import warnings

import pyarrow as pa

from core.config import StrataConfig
from core.constants import ARCHIVE_DIR_NAME, STAGING_DIR_PREFIX
from core.errors import (
    AmbiguousBundleError,
    BundleNotFoundError,
    DeserializationError,
    InvalidBundleIdError,
    RemovalNoOpWarning,
    StoreError,
    VersionCollisionError,
    VersionNotFoundError,
)
from core.identity import IdentityGenerator, default_generator
from core.logging_config import get_logger
from core.types import BundleInfo, BundleMetadata, FormatTag
from store.bundle_locks import BundleLockRegistry
from store.parquet_codec import ParquetCodec, parse_format_tag, version_id_from_name

_LOGGER = get_logger(__name__)
_DEFAULT_LOCKS = BundleLockRegistry()


class BundleStore:
    """Versioned bundle store implementation.

    This class owns bundle directories, enforces the single-current-file
    rule, and rotates superseded versions into each bundle's archive.
    Writers to one bundle are serialized within the process only.
    """

    def __init__(
        self,
        config: StrataConfig | None = None,
        codec: ParquetCodec | None = None,
        identity: IdentityGenerator | None = None,
        locks: BundleLockRegistry | None = None,
    ) -> None:
        """Initialize bundle store.

        Args:
            config: Runtime configuration. When omitted it is read from the
                environment at the start of every operation.
            codec: Artifact codec, Parquet with the configured compression by default.
            identity: Identifier source for bundle and version ids.
            locks: Per-bundle lock registry shared by writers.
        """
        self._config = config
        self._codec = codec
        self._identity = identity or default_generator()
        self._locks = locks or _DEFAULT_LOCKS

    @property
    def root(self) -> Path:
        return self._settings().root

    def _settings(self) -> StrataConfig:
        return self._config or StrataConfig.from_env()

    def _codec_for(self, config: StrataConfig) -> ParquetCodec:
        return self._codec or ParquetCodec(config.compression)

    def store(
        self,
        table: pa.Table,
        bundle_id: str | None = None,
        archive_on_overwrite: bool | None = None,
        metadata: Mapping[str, str] | None = None,
        column_metadata: Mapping[str, Mapping[str, str]] | None = None,
    ) -> Path:
        """Write a table as the new current version of a bundle.

        Args:
            table: Table to persist.
            bundle_id: Target bundle, a fresh identifier when omitted.
            archive_on_overwrite: Move the previous current version into the
                archive instead of deleting it. Defaults to the config value.
            metadata: Bundle-level annotations stored in the artifact.
            column_metadata: Per-column annotations stored in the artifact.

        Returns:
            Path of the written artifact.

        Raises:
            UnsupportedColumnTypeError: If a column type cannot be encoded.
                Nothing is written in that case.
            VersionCollisionError: If the new version filename already exists.
            SerializationError: If the codec fails; the bundle is unchanged.
            StoreError: If moving or deleting a previous version fails.
        """
        config = self._settings()
        codec = self._codec_for(config)
        if bundle_id is None:
            bundle_id = self._identity.generate()
        bundle_dir = self._bundle_dir(bundle_id, config.root)
        codec.validate(table, bundle_id, column_metadata)
        archive = config.archive_on_overwrite if archive_on_overwrite is None else archive_on_overwrite
        archive_dir = bundle_dir / ARCHIVE_DIR_NAME
        archive_dir.mkdir(parents=True, exist_ok=True)

        with self._locks.hold(str(bundle_dir)):
            version_id = self._identity.generate()
            file_name = codec.format_tag.artifact_name(version_id)
            target_path = bundle_dir / file_name
            current_entries = _current_entries(bundle_id, bundle_dir)
            _check_collisions(bundle_id, target_path, archive_dir, current_entries, archive)
            with tempfile.TemporaryDirectory(prefix=STAGING_DIR_PREFIX, dir=bundle_dir) as staging:
                staged_path = Path(staging) / file_name
                codec.serialize(table, staged_path, bundle_id, metadata, column_metadata)
                for entry in current_entries:
                    if archive:
                        _archive_entry(bundle_id, entry, archive_dir)
                    else:
                        _delete_entry(bundle_id, entry)
                _promote(bundle_id, staged_path, target_path)

        _LOGGER.info(
            "bundle_stored",
            bundle_id=bundle_id,
            version_id=version_id,
            path=str(target_path),
            row_count=table.num_rows,
            replaced=len(current_entries),
            archived=archive,
        )
        return target_path

    def load(
        self,
        bundle_id: str,
        root_override: str | Path | None = None,
        version_id: str | None = None,
    ) -> pa.Table:
        """Load the current version, or a specific version, of a bundle.

        Args:
            bundle_id: Bundle identifier.
            root_override: Optional storage root replacing the configured one.
            version_id: Optional version to load, current or archived.

        Returns:
            Deserialized table.

        Raises:
            BundleNotFoundError: If the bundle directory does not exist, or it
                or the selected artifact vanishes while loading.
            AmbiguousBundleError: If the bundle does not hold exactly one
                current version and no ``version_id`` was given.
            VersionNotFoundError: If ``version_id`` is not in the bundle.
            DeserializationError: If the artifact cannot be read.
        """
        config = self._settings()
        root = root_override if root_override is not None else config.root
        bundle_dir = self._existing_bundle_dir(bundle_id, root)
        artifact_path = _resolve_artifact(bundle_id, bundle_dir, version_id)
        try:
            table = self._codec_for(config).deserialize(artifact_path, bundle_id)
        except DeserializationError as error:
            if not artifact_path.exists():
                raise _vanished(bundle_id, artifact_path) from error
            raise
        _LOGGER.info(
            "bundle_loaded",
            bundle_id=bundle_id,
            path=str(artifact_path),
            row_count=table.num_rows,
        )
        return table

    def load_metadata(
        self,
        bundle_id: str,
        version_id: str | None = None,
    ) -> BundleMetadata:
        """Read the annotations of a bundle version without loading rows.

        Raises:
            BundleNotFoundError: If the bundle directory does not exist.
            AmbiguousBundleError: If the current slot is empty or ambiguous.
            VersionNotFoundError: If ``version_id`` is not in the bundle.
            DeserializationError: If the artifact schema cannot be read.
        """
        config = self._settings()
        bundle_dir = self._existing_bundle_dir(bundle_id, config.root)
        artifact_path = _resolve_artifact(bundle_id, bundle_dir, version_id)
        try:
            return self._codec_for(config).read_metadata(artifact_path, bundle_id)
        except DeserializationError as error:
            if not artifact_path.exists():
                raise _vanished(bundle_id, artifact_path) from error
            raise

    def list_bundles(self) -> list[str]:
        """List bundle ids under the storage root.

        Returns:
            Directory names in filesystem enumeration order. The order is
            not sorted and must not be relied on.
        """
        root = self.root
        if not root.is_dir():
            return []
        return [entry.name for entry in root.iterdir() if entry.is_dir()]

    def list_archive(self, bundle_id: str) -> list[str]:
        """List archived version ids of a bundle, oldest first.

        Raises:
            BundleNotFoundError: If the bundle directory does not exist.
        """
        bundle_dir = self._existing_bundle_dir(bundle_id, self.root)
        return _archived_versions(bundle_id, bundle_dir)

    def describe(self, bundle_id: str) -> BundleInfo:
        """Summarize the current and archived versions of a bundle.

        Raises:
            BundleNotFoundError: If the bundle directory does not exist.
            AmbiguousBundleError: If more than one current version exists.
        """
        bundle_dir = self._existing_bundle_dir(bundle_id, self.root)
        current_entries = _current_entries(bundle_id, bundle_dir)
        if len(current_entries) > 1:
            raise _ambiguous(bundle_id, bundle_dir, len(current_entries))
        current_version: str | None = None
        format_tag: FormatTag | None = None
        if current_entries:
            current_version = version_id_from_name(current_entries[0].name)
            format_tag = parse_format_tag(current_entries[0].name, bundle_id, current_entries[0])
        return BundleInfo(
            bundle_id=bundle_id,
            path=bundle_dir,
            current_version=current_version,
            format_tag=format_tag,
            archived_versions=tuple(_archived_versions(bundle_id, bundle_dir)),
        )

    def remove(self, bundle_id: str, archive_only: bool = False) -> None:
        """Delete a bundle, or only its archive. This cannot be undone.

        Args:
            bundle_id: Bundle identifier.
            archive_only: Delete only the archive subdirectory.

        Raises:
            StoreError: If the directory cannot be deleted.
        """
        bundle_dir = self._bundle_dir(bundle_id, self.root)
        target_dir = bundle_dir / ARCHIVE_DIR_NAME if archive_only else bundle_dir
        with self._locks.hold(str(bundle_dir)):
            if not target_dir.is_dir():
                _LOGGER.warning(
                    "bundle_remove_noop",
                    bundle_id=bundle_id,
                    path=str(target_dir),
                    archive_only=archive_only,
                )
                warnings.warn(
                    f"Nothing to remove for bundle '{bundle_id}': {target_dir} does not exist.",
                    RemovalNoOpWarning,
                    stacklevel=2,
                )
                return
            try:
                shutil.rmtree(target_dir)
            except OSError as error:
                raise StoreError(
                    f"Failed to remove {target_dir} for bundle '{bundle_id}': {error}. "
                    "Check permissions and delete the directory manually.",
                    bundle_id,
                    target_dir,
                ) from error
        _LOGGER.info(
            "bundle_removed",
            bundle_id=bundle_id,
            path=str(target_dir),
            archive_only=archive_only,
        )

    def _bundle_dir(self, bundle_id: str, root: str | Path) -> Path:
        """Return the bundle directory after validating the id.

        Raises:
            InvalidBundleIdError: If the id is not a single path component.
        """
        if (
            not bundle_id
            or bundle_id in (".", "..")
            or "/" in bundle_id
            or "\\" in bundle_id
            or "\x00" in bundle_id
        ):
            raise InvalidBundleIdError(
                f"Invalid bundle id '{bundle_id}': use a non-empty name without path separators.",
                bundle_id,
            )
        return Path(root) / bundle_id

    def _existing_bundle_dir(self, bundle_id: str, root: str | Path) -> Path:
        """Return the bundle directory, failing when it does not exist.

        Raises:
            BundleNotFoundError: If the bundle directory is missing.
        """
        bundle_dir = self._bundle_dir(bundle_id, root)
        if not bundle_dir.is_dir():
            raise _not_found(bundle_id, bundle_dir)
        return bundle_dir


def _not_found(bundle_id: str, bundle_dir: Path) -> BundleNotFoundError:
    return BundleNotFoundError(
        f"Bundle '{bundle_id}' does not exist at {bundle_dir}. "
        "Use list_bundles to discover stored bundles.",
        bundle_id,
        bundle_dir,
    )


def _vanished(bundle_id: str, artifact_path: Path) -> BundleNotFoundError:
    return BundleNotFoundError(
        f"Version artifact {artifact_path} of bundle '{bundle_id}' disappeared while it was "
        "being read; a concurrent store or remove replaced it. Retry the load.",
        bundle_id,
        artifact_path,
    )


def _scan(bundle_id: str, bundle_dir: Path, directory: Path) -> list[Path]:
    """List a directory of a bundle, sorted by name.

    A directory removed between the existence check and the scan is
    reported as a missing bundle when the bundle itself is gone, and as
    empty when only the archive is gone.

    Raises:
        BundleNotFoundError: If the bundle directory vanished.
    """
    try:
        return sorted(directory.iterdir())
    except FileNotFoundError as error:
        if directory != bundle_dir and bundle_dir.is_dir():
            return []
        raise _not_found(bundle_id, bundle_dir) from error


def _current_entries(bundle_id: str, bundle_dir: Path) -> list[Path]:
    """Return entries directly under a bundle other than archive and staging."""
    return [
        entry
        for entry in _scan(bundle_id, bundle_dir, bundle_dir)
        if entry.name != ARCHIVE_DIR_NAME and not entry.name.startswith(STAGING_DIR_PREFIX)
    ]


def _archived_versions(bundle_id: str, bundle_dir: Path) -> list[str]:
    """Return archived version ids, oldest first."""
    archive_dir = bundle_dir / ARCHIVE_DIR_NAME
    if not archive_dir.is_dir():
        return []
    return sorted(
        version_id_from_name(entry.name) for entry in _scan(bundle_id, bundle_dir, archive_dir)
    )


def _resolve_artifact(bundle_id: str, bundle_dir: Path, version_id: str | None) -> Path:
    """Resolve the artifact to read from a bundle directory.

    Raises:
        AmbiguousBundleError: If the current slot does not hold exactly one entry.
        VersionNotFoundError: If the requested version is missing.
    """
    current_entries = _current_entries(bundle_id, bundle_dir)
    if version_id is None:
        if len(current_entries) != 1:
            raise _ambiguous(bundle_id, bundle_dir, len(current_entries))
        return current_entries[0]
    archive_dir = bundle_dir / ARCHIVE_DIR_NAME
    candidates = list(current_entries)
    if archive_dir.is_dir():
        candidates.extend(_scan(bundle_id, bundle_dir, archive_dir))
    for candidate in candidates:
        if version_id_from_name(candidate.name) == version_id:
            return candidate
    raise VersionNotFoundError(
        f"Version '{version_id}' not found in bundle '{bundle_id}' at {bundle_dir}. "
        "Use list_archive or describe to discover valid version ids.",
        bundle_id,
        bundle_dir,
    )


def _ambiguous(bundle_id: str, bundle_dir: Path, count: int) -> AmbiguousBundleError:
    return AmbiguousBundleError(
        f"{count} files found in bundle directory {bundle_dir} for bundle '{bundle_id}'; "
        "expected exactly one current version. Inspect the directory and remove extras.",
        bundle_id,
        bundle_dir,
        count,
    )


def _check_collisions(
    bundle_id: str,
    target_path: Path,
    archive_dir: Path,
    current_entries: list[Path],
    archive: bool,
) -> None:
    """Fail before any mutation when a filename would be reused.

    Raises:
        VersionCollisionError: If the new artifact or an archived entry
            would overwrite an existing file.
    """
    clashes = [target_path, archive_dir / target_path.name]
    if archive:
        clashes.extend(archive_dir / entry.name for entry in current_entries)
    for clash in clashes:
        if clash.exists():
            raise VersionCollisionError(
                f"Version file {clash} already exists in bundle '{bundle_id}'. "
                "Retry the store; version ids are derived from the clock.",
                bundle_id,
                clash,
            )


def _archive_entry(bundle_id: str, entry: Path, archive_dir: Path) -> None:
    destination = archive_dir / entry.name
    try:
        os.replace(entry, destination)
    except OSError as error:
        raise StoreError(
            f"Failed to archive {entry} for bundle '{bundle_id}': {error}. "
            "Check permissions on the bundle directory.",
            bundle_id,
            entry,
        ) from error
    _LOGGER.info("bundle_entry_archived", bundle_id=bundle_id, path=str(destination))


def _delete_entry(bundle_id: str, entry: Path) -> None:
    try:
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    except OSError as error:
        raise StoreError(
            f"Failed to delete {entry} for bundle '{bundle_id}': {error}. "
            "Check permissions on the bundle directory.",
            bundle_id,
            entry,
        ) from error
    _LOGGER.info("bundle_entry_deleted", bundle_id=bundle_id, path=str(entry))


def _promote(bundle_id: str, staged_path: Path, target_path: Path) -> None:
    try:
        os.replace(staged_path, target_path)
    except OSError as error:
        raise StoreError(
            f"Failed to promote {staged_path} to {target_path} for bundle '{bundle_id}': "
            f"{error}. The bundle has no current version; rerun the store.",
            bundle_id,
            target_path,
        ) from error
