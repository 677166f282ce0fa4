"""Time-derived identifiers for bundles and versions.

Identifiers render UTC wall-clock time with fixed-width fields, so
lexicographic order equals chronological order. Two calls inside the
same clock tick return the same value; callers that need uniqueness
must detect the collision themselves.
"""

from __future__ import annotations

from datetime import datetime, timezone
import threading
from typing import Callable

from core.constants import VERSION_ID_FORMAT

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdentityGenerator:
    """Monotonic, human-sortable identifier source."""

    def __init__(self, clock: Clock | None = None) -> None:
        """Create a generator.

        Args:
            clock: Optional callable returning the current time. Naive
                datetimes are interpreted as UTC.
        """
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._last_id: str | None = None

    def generate(self) -> str:
        """Return an identifier for the current instant.

        Returns:
            Identifier string, never lower than one issued earlier.
        """
        with self._lock:
            candidate = format_identifier(self._clock())
            if self._last_id is not None and candidate < self._last_id:
                candidate = self._last_id
            self._last_id = candidate
        return candidate


def format_identifier(moment: datetime) -> str:
    """Render a datetime using the fixed identifier pattern.

    Args:
        moment: Datetime to render. Aware values are converted to UTC.

    Returns:
        Identifier string such as ``2024_03_07_09_05_01_000042``.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(VERSION_ID_FORMAT)


_DEFAULT_GENERATOR = IdentityGenerator()


def default_generator() -> IdentityGenerator:
    """Return the process-wide generator shared by all stores."""
    return _DEFAULT_GENERATOR


def generate_id() -> str:
    """Return an identifier from the process-wide default generator."""
    return _DEFAULT_GENERATOR.generate()
