"""Core constants used across Strata modules.

This module centralizes directory names, environment keys, and defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

APP_DIR_NAME = "strata"
ROOT_ENV_VAR = "STRATA_ROOT"
COMPRESSION_ENV_VAR = "STRATA_COMPRESSION"
ARCHIVE_ON_OVERWRITE_ENV_VAR = "STRATA_ARCHIVE_ON_OVERWRITE"
ARCHIVE_DIR_NAME = "archive"
STAGING_DIR_PREFIX = ".staging-"
PARQUET_CODEC_NAME = "parq"
DEFAULT_COMPRESSION = "snappy"
SUPPORTED_COMPRESSIONS = ("snappy", "zstd", "gzip", "brotli", "lz4", "none")
DEFAULT_ARCHIVE_ON_OVERWRITE = True
VERSION_ID_FORMAT = "%Y_%m_%d_%H_%M_%S_%f"
TRUTHY_ENV_VALUES = ("1", "true", "yes", "on")
FALSY_ENV_VALUES = ("0", "false", "no", "off")
