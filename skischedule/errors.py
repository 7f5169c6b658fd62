"""
Exception hierarchy.

Everything the package raises on purpose derives from ScheduleError,
so the CLI can catch one type and print a readable message.

CSV row problems are NOT exceptions: the codec collects them as messages
(see csv_codec.decode_csv) and lets the caller decide.
"""

from __future__ import annotations

from typing import Optional


class ScheduleError(Exception):
    """Base exception for all skischedule errors."""

    pass


class StoreError(ScheduleError):
    """A storage backend could not complete a call."""

    pass


class LocalStoreError(StoreError):
    """The local JSON store is unreadable or could not be written."""

    pass


class RemoteStoreError(StoreError):
    """
    The remote service rejected a request or could not be reached.

    status is the HTTP status code, or None for transport failures.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ConfigError(ScheduleError):
    """Invalid configuration value (slot times, pricing, settings)."""

    pass


class BackupFormatError(ScheduleError):
    """A backup payload is missing required fields or is malformed."""

    pass
