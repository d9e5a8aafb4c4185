"""Exceptions raised by the review scheduler."""
from typing import List, Optional


class VocabSchedError(Exception):
    """Base class for all scheduler errors."""


class ValidationError(VocabSchedError):
    """A progress record or request failed validation and was not written."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class NotFoundError(VocabSchedError):
    """A referenced word or record does not exist."""


class PersistenceError(VocabSchedError):
    """The progress store failed to read or write."""


class SessionStateError(VocabSchedError):
    """An operation was attempted in a session state that does not allow it."""
