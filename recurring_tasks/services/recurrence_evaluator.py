"""Decides when a recurrence rule is due and builds the new task instance.

Everything here is pure: the current date and time are always passed in,
nothing is read from the clock or from storage.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta

from recurring_tasks.domain.entities import RecurrenceRuleEntity, TaskEntity
from recurring_tasks.domain.enums import Frequency, TaskStatus


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def weeks_between(start: date, end: date) -> int:
    """Whole weeks of elapsed time between two dates, floored."""
    return (end - start).days // 7


def months_between(start: date, end: date) -> int:
    """Calendar months between two dates; the day of month is ignored."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def years_between(start: date, end: date) -> int:
    return end.year - start.year


class RecurrenceEvaluator:
    def __init__(self) -> None:
        self._checks: dict[str, Callable[[RecurrenceRuleEntity, date, date, int], bool]] = {
            Frequency.DAILY.value: self._daily_due,
            Frequency.WEEKLY.value: self._weekly_due,
            Frequency.MONTHLY.value: self._monthly_due,
            Frequency.YEARLY.value: self._yearly_due,
        }

    def should_generate(self, rule: RecurrenceRuleEntity, today: date | datetime) -> bool:
        if rule.task is None:
            return False

        today = _as_date(today)
        if rule.end_date is not None and today > rule.end_date:
            return False

        baseline = self.baseline(rule)
        if baseline is None:
            return False

        check = self._checks.get(str(rule.frequency))
        if check is None:
            return False
        interval = max(int(rule.interval or 1), 1)
        return check(rule, today, baseline, interval)

    def build_instance(self, template: TaskEntity, now: datetime) -> TaskEntity:
        return replace(
            template,
            id=None,
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
            source_recurrence_id=None,
        )

    def next_generation_date(self, rule: RecurrenceRuleEntity, start: date | datetime) -> date | None:
        """First day on or after ``start`` on which the rule would fire.

        Assumes nothing is generated in between. Returns None when the rule
        cannot fire within its horizon (expired, unknown frequency, a day of
        month that never occurs, and so on).
        """
        current = _as_date(start)
        baseline = self.baseline(rule)
        lead = max((baseline - current).days, 0) if baseline is not None else 0
        for _ in range(lead + self._horizon_days(rule)):
            if rule.end_date is not None and current > rule.end_date:
                return None
            if self.should_generate(rule, current):
                return current
            current += timedelta(days=1)
        return None

    @staticmethod
    def baseline(rule: RecurrenceRuleEntity) -> date | None:
        if rule.last_generated is not None:
            return _as_date(rule.last_generated)
        if rule.task is not None and rule.task.created_at is not None:
            return _as_date(rule.task.created_at)
        return None

    @staticmethod
    def _daily_due(rule: RecurrenceRuleEntity, today: date, baseline: date, interval: int) -> bool:
        return today >= baseline + timedelta(days=interval)

    @staticmethod
    def _weekly_due(rule: RecurrenceRuleEntity, today: date, baseline: date, interval: int) -> bool:
        if rule.days_of_week and today.isoweekday() not in rule.days_of_week:
            return False
        return weeks_between(baseline, today) >= interval

    @staticmethod
    def _monthly_due(rule: RecurrenceRuleEntity, today: date, baseline: date, interval: int) -> bool:
        if rule.days_of_month and today.day not in rule.days_of_month:
            return False
        return months_between(baseline, today) >= interval

    @staticmethod
    def _yearly_due(rule: RecurrenceRuleEntity, today: date, baseline: date, interval: int) -> bool:
        created_at = rule.task.created_at if rule.task else None
        if created_at is None:
            return False
        if (today.month, today.day) != (created_at.month, created_at.day):
            return False
        return years_between(baseline, today) >= interval

    @staticmethod
    def _horizon_days(rule: RecurrenceRuleEntity) -> int:
        interval = max(int(rule.interval or 1), 1)
        frequency = str(rule.frequency)
        if frequency == Frequency.DAILY.value:
            return interval + 1
        if frequency == Frequency.WEEKLY.value:
            return (interval + 1) * 7
        if frequency == Frequency.MONTHLY.value:
            return (interval + 2) * 31
        if frequency == Frequency.YEARLY.value:
            # a Feb 29 template only fires in leap years
            return (interval + 8) * 366
        return 0
