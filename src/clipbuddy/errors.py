"""Exceptions raised by the clipboard history engine."""

from typing import Optional


class ClipBuddyError(Exception):
    """Base exception for ClipBuddy."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (Caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base_msg


class DecodeError(ClipBuddyError):
    """Stored or pasteboard bytes cannot be read under their declared type."""


class PersistenceWriteError(ClipBuddyError):
    """A durable write to the history backend failed."""


class InvalidTagError(ClipBuddyError, ValueError):
    """Tag is empty after trimming or contains the tag separator."""
