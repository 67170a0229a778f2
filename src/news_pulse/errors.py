from __future__ import annotations

from typing import Optional


class NewsPulseError(Exception):
    """Base class for every failure the core reports to the presentation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(NewsPulseError):
    """The API could not be reached."""


class ServerError(NewsPulseError):
    """The API answered with a non-success status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(NewsPulseError):
    """Input rejected locally, before any request is made."""


class InvalidIdentity(NewsPulseError):
    """An operation needed an identity and none (or a malformed one) was given."""


class BookmarkSyncError(NewsPulseError):
    """An optimistic bookmark change could not be confirmed and was rolled back."""

    def __init__(self, item_id: str, cause: Optional[NewsPulseError] = None):
        detail = f": {cause.message}" if cause else ""
        super().__init__(f"Failed to update bookmark for {item_id}{detail}")
        self.item_id = item_id
        self.cause = cause
