"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import StrataConfig
from core.errors import ConfigurationError


def test_from_env_reads_root(tmp_path) -> None:
    """Config should resolve the storage root from STRATA_ROOT."""
    config = StrataConfig.from_env(environ={"STRATA_ROOT": str(tmp_path)})

    assert config.root == tmp_path
    assert config.compression == "snappy"
    assert config.archive_on_overwrite is True


def test_from_env_uses_process_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Without an explicit mapping config should read os.environ."""
    monkeypatch.setenv("STRATA_ROOT", str(tmp_path / "cache"))
    monkeypatch.setenv("STRATA_COMPRESSION", "ZSTD")

    config = StrataConfig.from_env()

    assert config.root.name == "cache"
    assert config.compression == "zstd"


def test_root_override_beats_environment(tmp_path) -> None:
    """An explicit root override should win over STRATA_ROOT."""
    config = StrataConfig.from_env(
        environ={"STRATA_ROOT": "/elsewhere"},
        root_override=tmp_path,
    )

    assert config.root == tmp_path


def test_from_env_raises_for_invalid_compression(tmp_path) -> None:
    """Unknown compression names should fail with the allowed values."""
    environ = {"STRATA_ROOT": str(tmp_path), "STRATA_COMPRESSION": "rar"}

    with pytest.raises(ConfigurationError, match="snappy"):
        StrataConfig.from_env(environ=environ)


@pytest.mark.parametrize(("raw_value", "expected"), [("0", False), ("no", False), ("TRUE", True)])
def test_from_env_parses_archive_flag(tmp_path, raw_value: str, expected: bool) -> None:
    """Archive flag should accept common boolean spellings."""
    environ = {"STRATA_ROOT": str(tmp_path), "STRATA_ARCHIVE_ON_OVERWRITE": raw_value}

    config = StrataConfig.from_env(environ=environ)

    assert config.archive_on_overwrite is expected


def test_from_env_raises_for_invalid_archive_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-boolean archive flag."""
    monkeypatch.setenv("STRATA_ARCHIVE_ON_OVERWRITE", "sometimes")

    with pytest.raises(ConfigurationError):
        StrataConfig.from_env(root_override="/tmp/strata")

    assert os.getenv("STRATA_ARCHIVE_ON_OVERWRITE") == "sometimes"
