"""
Domain-specific exception hierarchy for the groupslot application.
"""


class GroupSlotError(Exception):
    """Base class for all application-level errors."""


class InvalidFormat(GroupSlotError, ValueError):
    """Raised when a clock time, minute value or date is outside its domain."""


class DataFileError(GroupSlotError):
    """Raised when group data cannot be loaded from or written to disk."""
