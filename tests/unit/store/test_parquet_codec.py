"""Unit tests for the Parquet bundle codec."""

from __future__ import annotations

import pyarrow as pa
import pytest

from core.errors import (
    ConfigurationError,
    DeserializationError,
    SerializationError,
    UnsupportedColumnTypeError,
)
from core.types import FormatTag
from store.parquet_codec import ParquetCodec, is_supported_type, parse_format_tag


def _sample_table() -> pa.Table:
    return pa.table({"symbol": ["AAPL", "MSFT"], "close": [189.5, 411.2]})


def test_format_tag_combines_codec_and_compression() -> None:
    """Format tag should render as the compound filename suffix."""
    codec = ParquetCodec("zstd")

    assert str(codec.format_tag) == "parq.zstd"
    assert codec.format_tag.artifact_name("2024_01_01_00_00_00_000000") == (
        "2024_01_01_00_00_00_000000.parq.zstd"
    )


def test_parse_format_tag_reads_filename() -> None:
    """Artifact names should parse back into a format tag."""
    tag = parse_format_tag("2024_01_01_00_00_00_000000.parq.snappy", "prices")

    assert tag == FormatTag(codec="parq", compression="snappy")


@pytest.mark.parametrize("file_name", ["notes.txt", "2024.csv.gz", "no_suffix"])
def test_parse_format_tag_rejects_foreign_files(file_name: str) -> None:
    """Files without a Parquet tag should not be treated as versions."""
    with pytest.raises(DeserializationError):
        parse_format_tag(file_name, "prices")


@pytest.mark.parametrize(
    "data_type",
    [
        pa.null(),
        pa.list_(pa.null()),
        pa.struct([("inner", pa.null())]),
        pa.dense_union([pa.field("a", pa.int64()), pa.field("b", pa.string())]),
    ],
)
def test_untyped_and_union_types_are_unsupported(data_type: pa.DataType) -> None:
    """Null and union types should be rejected, including nested ones."""
    assert not is_supported_type(data_type)


def test_nested_concrete_types_are_supported() -> None:
    """Concrete nested types should pass validation."""
    data_type = pa.struct([("prices", pa.list_(pa.float64())), ("tag", pa.string())])

    assert is_supported_type(data_type)


def test_validate_rejects_null_column() -> None:
    """A column of only missing values has no concrete type."""
    table = pa.table({"close": [1.0, 2.0], "note": pa.array([None, None])})

    with pytest.raises(UnsupportedColumnTypeError) as excinfo:
        ParquetCodec().validate(table, "prices")

    assert excinfo.value.column == "note"
    assert excinfo.value.bundle_id == "prices"


@pytest.mark.parametrize(
    "data_type",
    [pa.month_day_nano_interval(), pa.struct([])],
    ids=["month_day_nano_interval", "empty_struct"],
)
def test_validate_rejects_types_without_parquet_mapping(data_type: pa.DataType) -> None:
    """Types Parquet cannot encode should fail validation, not the write."""
    table = pa.table({"close": [1.0, 2.0], "c": pa.nulls(2, type=data_type)})

    with pytest.raises(UnsupportedColumnTypeError) as excinfo:
        ParquetCodec().validate(table, "prices")

    assert excinfo.value.column == "c"
    assert excinfo.value.column_type == str(data_type)


def test_validate_accepts_parquet_mappable_types() -> None:
    """Common concrete types should pass the Parquet schema check."""
    table = pa.table(
        {
            "when": pa.array([0, 1], type=pa.timestamp("us", tz="UTC")),
            "day": pa.array([0, 1], type=pa.date32()),
            "raw": pa.array([b"a", b"b"]),
        }
    )

    ParquetCodec().validate(table, "prices")


def test_validate_rejects_unknown_metadata_columns() -> None:
    """Column annotations must target existing columns."""
    with pytest.raises(SerializationError, match="volume"):
        ParquetCodec().validate(_sample_table(), "prices", {"volume": {"unit": "shares"}})


def test_validate_rejects_non_table_input() -> None:
    """Only Arrow tables are accepted."""
    with pytest.raises(SerializationError, match="pyarrow.Table"):
        ParquetCodec().validate({"close": [1.0]}, "prices")


def test_serialize_roundtrip_preserves_rows_and_metadata(tmp_path) -> None:
    """Written artifacts should read back with data and annotations."""
    codec = ParquetCodec()
    path = tmp_path / "2024_01_01_00_00_00_000000.parq.snappy"

    codec.serialize(
        _sample_table(),
        path,
        "prices",
        metadata={"source": "daily"},
        column_metadata={"close": {"unit": "USD"}},
    )
    loaded = codec.deserialize(path, "prices")
    annotations = codec.read_metadata(path, "prices")

    assert loaded.equals(_sample_table())
    assert annotations.metadata == {"source": "daily"}
    assert annotations.column_metadata == {"close": {"unit": "USD"}}


def test_serialize_without_compression(tmp_path) -> None:
    """The none compression should write a readable artifact."""
    codec = ParquetCodec("none")
    path = tmp_path / "2024_01_01_00_00_00_000000.parq.none"

    codec.serialize(_sample_table(), path, "prices")

    assert codec.deserialize(path, "prices").num_rows == 2


def test_deserialize_wraps_corrupt_artifact(tmp_path) -> None:
    """Unreadable artifacts should raise a deserialization error with the path."""
    path = tmp_path / "2024_01_01_00_00_00_000000.parq.snappy"
    path.write_bytes(b"not parquet")

    with pytest.raises(DeserializationError) as excinfo:
        ParquetCodec().deserialize(path, "prices")

    assert excinfo.value.path == path


def test_unknown_compression_is_rejected() -> None:
    """Codec construction should fail for unsupported compressions."""
    with pytest.raises(ConfigurationError):
        ParquetCodec("rar")
