from __future__ import annotations

from collections.abc import Iterable

from .enums import Frequency
from .errors import RecurrenceValidationError

WEEKDAYS = range(1, 8)
MONTH_DAYS = range(1, 32)


def normalize_days(days: Iterable[int] | None, allowed: range, label: str) -> frozenset[int] | None:
    if days is None:
        return None
    normalized = frozenset(int(day) for day in days)
    invalid = sorted(day for day in normalized if day not in allowed)
    if invalid:
        raise RecurrenceValidationError(
            f"{label} must be between {allowed.start} and {allowed.stop - 1}, got {invalid}"
        )
    # an empty set carries no constraint, same as an absent one
    return normalized or None


def validate_rule(
    frequency: str,
    interval: int,
    days_of_week: Iterable[int] | None = None,
    days_of_month: Iterable[int] | None = None,
) -> tuple[Frequency, int, frozenset[int] | None, frozenset[int] | None]:
    """Check rule fields and return them in normalized form."""
    try:
        freq = Frequency(frequency)
    except ValueError:
        allowed = ", ".join(item.value for item in Frequency)
        raise RecurrenceValidationError(
            f"Unknown frequency {frequency!r}, expected one of: {allowed}"
        ) from None

    try:
        count = int(interval)
    except (TypeError, ValueError):
        count = 0
    if isinstance(interval, bool) or count < 1:
        raise RecurrenceValidationError(f"Interval must be a positive integer, got {interval!r}")
    interval = count

    weekdays = normalize_days(days_of_week, WEEKDAYS, "Days of week")
    month_days = normalize_days(days_of_month, MONTH_DAYS, "Days of month")

    if weekdays and freq is not Frequency.WEEKLY:
        raise RecurrenceValidationError("Days of week apply only to weekly rules")
    if month_days and freq is not Frequency.MONTHLY:
        raise RecurrenceValidationError("Days of month apply only to monthly rules")

    return freq, interval, weekdays, month_days
