"""Runtime configuration model for Strata.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from core.constants import (
    ARCHIVE_ON_OVERWRITE_ENV_VAR,
    COMPRESSION_ENV_VAR,
    DEFAULT_ARCHIVE_ON_OVERWRITE,
    DEFAULT_COMPRESSION,
    FALSY_ENV_VALUES,
    SUPPORTED_COMPRESSIONS,
    TRUTHY_ENV_VALUES,
)
from core.errors import ConfigurationError
from core.paths import resolve_root


@dataclass(frozen=True)
class StrataConfig:
    """Validated runtime configuration.

    Attributes:
        root: Storage root holding one directory per bundle.
        compression: Parquet compression used for new versions.
        archive_on_overwrite: Default archive behavior for ``store``.
    """

    root: Path
    compression: str = DEFAULT_COMPRESSION
    archive_on_overwrite: bool = DEFAULT_ARCHIVE_ON_OVERWRITE

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        root_override: str | Path | None = None,
    ) -> "StrataConfig":
        """Build config from process environment variables.

        Args:
            environ: Optional environment mapping, defaults to ``os.environ``.
            root_override: Optional explicit storage root.

        Returns:
            A validated config object.

        Raises:
            ConfigurationError: If environment values are invalid.
        """
        env = os.environ if environ is None else environ
        root = resolve_root(root_override, environ=env)
        compression = parse_compression(env.get(COMPRESSION_ENV_VAR, DEFAULT_COMPRESSION))
        archive_on_overwrite = _parse_bool(
            ARCHIVE_ON_OVERWRITE_ENV_VAR,
            env.get(ARCHIVE_ON_OVERWRITE_ENV_VAR),
            DEFAULT_ARCHIVE_ON_OVERWRITE,
        )
        return cls(
            root=root.expanduser(),
            compression=compression,
            archive_on_overwrite=archive_on_overwrite,
        )


def parse_compression(raw_value: str) -> str:
    """Validate a compression name.

    Args:
        raw_value: Raw compression name.

    Returns:
        Normalized compression name.

    Raises:
        ConfigurationError: If the compression is not supported.
    """
    value = raw_value.strip().lower()
    if value not in SUPPORTED_COMPRESSIONS:
        raise ConfigurationError(
            f"Invalid {COMPRESSION_ENV_VAR} value: '{raw_value}'. "
            f"Use one of: {', '.join(SUPPORTED_COMPRESSIONS)}."
        )
    return value


def _parse_bool(name: str, raw_value: str | None, default: bool) -> bool:
    """Parse a boolean environment value.

    Raises:
        ConfigurationError: If the value is not a recognized boolean.
    """
    if raw_value is None or not raw_value.strip():
        return default
    value = raw_value.strip().lower()
    if value in TRUTHY_ENV_VALUES:
        return True
    if value in FALSY_ENV_VALUES:
        return False
    raise ConfigurationError(
        f"Invalid {name} value: expected a boolean, got '{raw_value}'. "
        f"Set {name} to true or false."
    )
