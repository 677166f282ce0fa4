"""Unit tests for time-derived identifiers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.identity import IdentityGenerator, format_identifier, generate_id


def test_format_identifier_uses_fixed_width_fields() -> None:
    """Every field should be zero padded, including the sub-second tick."""
    moment = datetime(2024, 3, 7, 9, 5, 1, 42, tzinfo=timezone.utc)

    identifier = format_identifier(moment)

    assert identifier == "2024_03_07_09_05_01_000042"


def test_format_identifier_converts_aware_times_to_utc() -> None:
    """Aware datetimes in other zones should render in UTC."""
    offset = timezone(timedelta(hours=2))
    moment = datetime(2024, 1, 1, 1, 30, 0, tzinfo=offset)

    identifier = format_identifier(moment)

    assert identifier == "2023_12_31_23_30_00_000000"


def test_lexicographic_order_matches_chronological_order() -> None:
    """Sorting identifiers as strings should sort them in time."""
    base = datetime(2024, 9, 30, 23, 59, 59, 999999, tzinfo=timezone.utc)
    moments = [base + timedelta(microseconds=step) for step in (0, 1, 10, 1000, 10**6)]

    identifiers = [format_identifier(moment) for moment in moments]

    assert sorted(identifiers) == identifiers


def test_generate_never_goes_backwards() -> None:
    """A clock stepping backwards should not yield a smaller identifier."""
    moments = iter(
        [
            datetime(2024, 5, 1, 12, 0, 0, 500, tzinfo=timezone.utc),
            datetime(2024, 5, 1, 11, 59, 59, tzinfo=timezone.utc),
        ]
    )
    generator = IdentityGenerator(clock=lambda: next(moments))

    first = generator.generate()
    second = generator.generate()

    assert second == first


def test_same_tick_yields_identical_identifiers() -> None:
    """Identifiers are not unique within one clock tick."""
    moment = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    generator = IdentityGenerator(clock=lambda: moment)

    assert generator.generate() == generator.generate()


def test_generate_id_matches_pattern() -> None:
    """The process-wide generator should emit the fixed pattern."""
    identifier = generate_id()

    parts = identifier.split("_")

    assert [len(part) for part in parts] == [4, 2, 2, 2, 2, 2, 6]
