"""Parquet codec for bundle version artifacts.

This module validates Arrow tables, writes them to Parquet with bundle
and column annotations, and reads them back. The format tag embedded
in each artifact filename selects the codec on read.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import pyarrow as pa
import pyarrow.parquet as pq

from core.constants import DEFAULT_COMPRESSION, PARQUET_CODEC_NAME, SUPPORTED_COMPRESSIONS
from core.errors import (
    ConfigurationError,
    DeserializationError,
    SerializationError,
    UnsupportedColumnTypeError,
)
from core.types import BundleMetadata, FormatTag

_RESERVED_METADATA_PREFIXES = (b"ARROW:", b"PARQUET:")


class ParquetCodec:
    """Serialize Arrow tables to Parquet artifacts and back."""

    def __init__(self, compression: str = DEFAULT_COMPRESSION) -> None:
        if compression not in SUPPORTED_COMPRESSIONS:
            raise ConfigurationError(
                f"Unsupported Parquet compression '{compression}'. "
                f"Use one of: {', '.join(SUPPORTED_COMPRESSIONS)}."
            )
        self._format_tag = FormatTag(codec=PARQUET_CODEC_NAME, compression=compression)

    @property
    def format_tag(self) -> FormatTag:
        return self._format_tag

    def validate(
        self,
        table: pa.Table,
        bundle_id: str,
        column_metadata: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        """Reject tables the codec cannot persist faithfully.

        Args:
            table: Table to validate.
            bundle_id: Bundle id used for error context.
            column_metadata: Optional per-column annotations.

        Raises:
            SerializationError: If the input is not an Arrow table or the
                column annotations name unknown columns.
            UnsupportedColumnTypeError: If a column type is untyped (null),
                a union, or otherwise has no Parquet schema mapping.
        """
        if not isinstance(table, pa.Table):
            raise SerializationError(
                f"Cannot store bundle '{bundle_id}': expected a pyarrow.Table, "
                f"got {type(table).__name__}. Convert the data with pyarrow.table(...).",
                bundle_id,
            )
        for schema_field in table.schema:
            reason = _unsupported_reason(schema_field)
            if reason is not None:
                raise UnsupportedColumnTypeError(
                    f"Cannot store bundle '{bundle_id}': column '{schema_field.name}' has "
                    f"unsupported type {schema_field.type} ({reason}). Cast the column to a "
                    "type Parquet can represent before storing.",
                    bundle_id,
                    column=schema_field.name,
                    column_type=str(schema_field.type),
                )
        unknown_columns = sorted(set(column_metadata or {}) - set(table.column_names))
        if unknown_columns:
            raise SerializationError(
                f"Cannot store bundle '{bundle_id}': column metadata refers to unknown "
                f"columns {unknown_columns}. Annotate only columns present in the table.",
                bundle_id,
            )

    def serialize(
        self,
        table: pa.Table,
        path: Path,
        bundle_id: str,
        metadata: Mapping[str, str] | None = None,
        column_metadata: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        """Write a table to a Parquet artifact.

        Args:
            table: Validated table to write.
            path: Destination file path.
            bundle_id: Bundle id used for error context.
            metadata: Bundle-level annotations.
            column_metadata: Per-column annotations.

        Raises:
            SerializationError: If Arrow or the filesystem rejects the write.
        """
        annotated = _annotate(table, metadata or {}, column_metadata or {})
        compression = self._format_tag.compression
        try:
            pq.write_table(
                annotated,
                str(path),
                compression=None if compression == "none" else compression,
            )
        except (pa.ArrowException, OSError, ValueError) as error:
            raise SerializationError(
                f"Failed to write bundle '{bundle_id}' to {path}: {error}. "
                "Check column types, write permissions and available disk space.",
                bundle_id,
                path,
            ) from error

    def deserialize(self, path: Path, bundle_id: str) -> pa.Table:
        """Read a Parquet artifact into a table.

        Raises:
            DeserializationError: If the artifact is unreadable or has an
                unknown format tag.
        """
        parse_format_tag(path.name, bundle_id, path)
        try:
            return pq.read_table(str(path))
        except (pa.ArrowException, OSError, ValueError) as error:
            raise DeserializationError(
                f"Failed to read bundle '{bundle_id}' from {path}: {error}. "
                "The artifact may be truncated or corrupt; inspect or remove it.",
                bundle_id,
                path,
            ) from error

    def read_metadata(self, path: Path, bundle_id: str) -> BundleMetadata:
        """Read bundle and column annotations without loading data.

        Raises:
            DeserializationError: If the artifact schema cannot be read.
        """
        parse_format_tag(path.name, bundle_id, path)
        try:
            schema = pq.read_schema(str(path))
        except (pa.ArrowException, OSError, ValueError) as error:
            raise DeserializationError(
                f"Failed to read metadata of bundle '{bundle_id}' from {path}: {error}. "
                "The artifact may be truncated or corrupt; inspect or remove it.",
                bundle_id,
                path,
            ) from error
        column_metadata = {
            schema_field.name: _decode_metadata(schema_field.metadata) for schema_field in schema
        }
        return BundleMetadata(
            metadata=_decode_metadata(schema.metadata),
            column_metadata={name: values for name, values in column_metadata.items() if values},
        )


def is_supported_type(data_type: pa.DataType) -> bool:
    """Return whether a type, including nested children, can be persisted.

    Args:
        data_type: Arrow data type.

    Returns:
        ``False`` for null or union types anywhere in the type tree.
    """
    if pa.types.is_null(data_type) or pa.types.is_union(data_type):
        return False
    if pa.types.is_dictionary(data_type):
        return is_supported_type(data_type.value_type)
    if pa.types.is_map(data_type):
        return is_supported_type(data_type.key_type) and is_supported_type(data_type.item_type)
    if (
        pa.types.is_list(data_type)
        or pa.types.is_large_list(data_type)
        or pa.types.is_fixed_size_list(data_type)
    ):
        return is_supported_type(data_type.value_type)
    if pa.types.is_struct(data_type):
        return all(
            is_supported_type(data_type.field(index).type) for index in range(data_type.num_fields)
        )
    return True


def _unsupported_reason(schema_field: pa.Field) -> str | None:
    """Return why a column cannot be written to Parquet, or None.

    Null and union types are rejected outright; every other type is
    checked against pyarrow's Arrow-to-Parquet schema conversion by
    opening a writer on an in-memory buffer.
    """
    if not is_supported_type(schema_field.type):
        return "no concrete Parquet type"
    try:
        writer = pq.ParquetWriter(pa.BufferOutputStream(), pa.schema([schema_field]))
    except pa.ArrowException as error:
        return str(error)
    writer.close()
    return None


def parse_format_tag(file_name: str, bundle_id: str, path: Path | None = None) -> FormatTag:
    """Parse the format tag from an artifact filename.

    Args:
        file_name: Artifact filename, ``<version_id>.<codec>.<compression>``.
        bundle_id: Bundle id used for error context.
        path: Optional artifact path for error context.

    Returns:
        Parsed format tag.

    Raises:
        DeserializationError: If the tag is missing or not a Parquet tag.
    """
    parts = file_name.split(".")
    if len(parts) != 3 or not parts[0]:
        raise DeserializationError(
            f"Cannot read bundle '{bundle_id}': artifact name '{file_name}' is not "
            "'<version_id>.<codec>.<compression>'. Remove or rename the file.",
            bundle_id,
            path,
        )
    _, codec, compression = parts
    if codec != PARQUET_CODEC_NAME or compression not in SUPPORTED_COMPRESSIONS:
        raise DeserializationError(
            f"Cannot read bundle '{bundle_id}': unsupported format tag '{codec}.{compression}' "
            f"on {file_name}.",
            bundle_id,
            path,
        )
    return FormatTag(codec=codec, compression=compression)


def version_id_from_name(file_name: str) -> str:
    """Return the version id stem of an artifact filename."""
    return file_name.split(".", 1)[0]


def _annotate(
    table: pa.Table,
    metadata: Mapping[str, str],
    column_metadata: Mapping[str, Mapping[str, str]],
) -> pa.Table:
    """Attach bundle and column annotations to a table schema."""
    if not metadata and not column_metadata:
        return table
    fields = []
    for schema_field in table.schema:
        annotations = column_metadata.get(schema_field.name)
        if annotations:
            merged = dict(schema_field.metadata or {})
            merged.update(_encode_metadata(annotations))
            schema_field = schema_field.with_metadata(merged)
        fields.append(schema_field)
    schema_metadata = dict(table.schema.metadata or {})
    schema_metadata.update(_encode_metadata(metadata))
    schema = pa.schema(fields, metadata=schema_metadata)
    return pa.Table.from_arrays(table.columns, schema=schema)


def _encode_metadata(values: Mapping[str, str]) -> dict[bytes, bytes]:
    return {str(key).encode("utf-8"): str(value).encode("utf-8") for key, value in values.items()}


def _decode_metadata(values: Mapping[bytes, bytes] | None) -> dict[str, str]:
    if not values:
        return {}
    return {
        key.decode("utf-8"): value.decode("utf-8")
        for key, value in values.items()
        if not key.startswith(_RESERVED_METADATA_PREFIXES)
    }
