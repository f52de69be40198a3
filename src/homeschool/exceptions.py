"""Custom exception hierarchy for the homeschool records package."""

from __future__ import annotations


class HomeschoolError(Exception):
    """Base class for all homeschool records specific errors."""


class InvalidInputError(HomeschoolError, ValueError):
    """Raised when a caller supplies malformed or out-of-range input."""


class RecordNotFoundError(HomeschoolError):
    """Raised when a stored record lookup fails."""


class DuplicateRecordError(HomeschoolError):
    """Raised when a write would violate a uniqueness rule."""
