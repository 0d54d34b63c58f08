"""Typed failures raised by the logbook core.

All of them derive from TuilogError, itself a RuntimeError, so callers that
only care about "the operation failed" can keep catching RuntimeError.
"""

from __future__ import annotations


class TuilogError(RuntimeError):
    """Base class for every failure surfaced by the core."""


class StorageError(TuilogError):
    """The database rejected or failed an operation."""


class StorageUnavailableError(StorageError):
    """The logbook has been closed, or its lock can no longer be used."""


class ProfileNotFoundError(TuilogError):
    def __init__(self, profile_id: int) -> None:
        super().__init__(f"Operator profile {profile_id} not found")
        self.profile_id = profile_id


class ReferentialError(TuilogError):
    """A log entry was bound to a profile id that does not exist."""

    def __init__(self, profile_id: int) -> None:
        super().__init__(f"Cannot log QSO: operator profile {profile_id} does not exist")
        self.profile_id = profile_id


class TimestampFormatError(TuilogError, ValueError):
    pass


class ExportIOError(TuilogError):
    """The export destination could not be created or written."""
