"""Storage root resolution.

The root comes from an explicit override, then the STRATA_ROOT
environment variable, then a platform-specific cache directory. The
environment is passed in as a mapping so callers and tests control it.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath, PureWindowsPath
import sys
from typing import Mapping

from core.constants import APP_DIR_NAME, ROOT_ENV_VAR
from core.errors import ConfigurationError


def resolve_root(
    override: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    platform: str | None = None,
) -> Path:
    """Resolve the storage root directory.

    Args:
        override: Explicit root, used verbatim when provided.
        environ: Environment mapping, defaults to ``os.environ``.
        platform: Platform name, defaults to ``sys.platform``.

    Returns:
        Root path. Existence is not checked.

    Raises:
        ConfigurationError: If no override is set and the platform
            default cannot be determined.
    """
    if override is not None:
        return Path(override)
    env = os.environ if environ is None else environ
    env_root = env.get(ROOT_ENV_VAR)
    if env_root:
        return Path(env_root)
    return Path(_platform_default_root(env, platform or sys.platform))


def _platform_default_root(env: Mapping[str, str], platform: str) -> str:
    """Return the platform cache location for Strata.

    Args:
        env: Environment mapping.
        platform: Platform name as reported by ``sys.platform``.

    Returns:
        Default root as a string path.

    Raises:
        ConfigurationError: If the platform is unknown or its home
            variable is missing.
    """
    if platform.startswith("linux"):
        xdg_cache = env.get("XDG_CACHE_HOME")
        if xdg_cache:
            return str(PurePosixPath(xdg_cache) / APP_DIR_NAME)
        home = _require_env(env, "HOME", platform)
        return str(PurePosixPath(home) / ".cache" / APP_DIR_NAME)
    if platform == "darwin":
        home = _require_env(env, "HOME", platform)
        return str(PurePosixPath(home) / "Library" / "Caches" / APP_DIR_NAME)
    if platform in ("win32", "cygwin"):
        local_app_data = env.get("LOCALAPPDATA")
        if local_app_data:
            return str(PureWindowsPath(local_app_data) / APP_DIR_NAME / "cache")
        home = _require_env(env, "USERPROFILE", platform)
        return str(PureWindowsPath(home) / f".{APP_DIR_NAME}" / "cache")
    raise ConfigurationError(
        f"Cannot determine a default storage root for platform '{platform}'. "
        f"Set {ROOT_ENV_VAR} or pass an explicit root."
    )


def _require_env(env: Mapping[str, str], name: str, platform: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigurationError(
            f"Cannot determine a default storage root on '{platform}': {name} is not set. "
            f"Set {ROOT_ENV_VAR} or {name}."
        )
    return value
