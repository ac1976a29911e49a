from __future__ import annotations


class RecurrenceValidationError(ValueError):
    """Raised when a recurrence rule's fields are inconsistent."""


class RecurrenceNotFoundError(LookupError):
    """Raised when a rule or its template task does not exist."""
