from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime

from recurring_tasks.domain.entities import GeneratedTask, RecurrenceRuleEntity
from recurring_tasks.domain.enums import Frequency
from recurring_tasks.domain.errors import RecurrenceNotFoundError
from recurring_tasks.domain.filters import RecurrenceFilters
from recurring_tasks.domain.validation import validate_rule
from recurring_tasks.infra.models import local_today, utcnow
from recurring_tasks.infra.repository import RecurrenceRepository

from .recurrence_evaluator import RecurrenceEvaluator

logger = logging.getLogger(__name__)


class RecurringTaskService:
    def __init__(self, repo: RecurrenceRepository, evaluator: RecurrenceEvaluator | None = None) -> None:
        self._repo = repo
        self._evaluator = evaluator or RecurrenceEvaluator()

    def generate_due_tasks(
        self,
        today: date | None = None,
        now: datetime | None = None,
        dry_run: bool = False,
    ) -> list[GeneratedTask]:
        """Create one task for every rule that is due today.

        All writes share one transaction: either every new task and its
        rule's ``last_generated`` are stored, or nothing is.
        """
        now = now or utcnow()
        today = today or local_today()
        generated: list[GeneratedTask] = []

        with self._repo.generation_batch() as batch:
            for rule in batch.list_active_rules(today):
                template = rule.task
                if template is None or template.user is None:
                    logger.warning("Skipping recurrence %s: template task or owner is missing", rule.id)
                    continue
                if not self._evaluator.should_generate(rule, today):
                    continue

                instance = self._evaluator.build_instance(template, now)
                if not dry_run:
                    task_id = batch.save_task(instance, source_rule_id=rule.id)
                    batch.save_rule(replace(rule, last_generated=today))
                    instance = replace(instance, id=task_id, source_recurrence_id=rule.id)
                generated.append(GeneratedTask(rule_id=rule.id, task=instance))
                logger.info(
                    "Recurring task %s generated from recurrence %s for %s",
                    instance.id,
                    rule.id,
                    template.user.username,
                )

        logger.info("Generated %d recurring tasks for %s%s", len(generated), today, " (dry run)" if dry_run else "")
        return generated

    def create_recurring(
        self,
        template_id: int,
        owner_id: int,
        frequency: str,
        interval: int = 1,
        end_date: date | None = None,
        days_of_week: Iterable[int] | None = None,
        days_of_month: Iterable[int] | None = None,
    ) -> RecurrenceRuleEntity:
        freq, interval, weekdays, month_days = validate_rule(frequency, interval, days_of_week, days_of_month)
        if self._repo.get_template(template_id) is None:
            raise RecurrenceNotFoundError(f"Task {template_id} does not exist")

        rule = self._repo.create_rule({
            "task_id": template_id,
            "user_id": owner_id,
            "frequency": freq.value,
            "recurrence_interval": interval,
            "end_date": end_date,
            "days_of_week": weekdays,
            "days_of_month": month_days,
        })
        logger.info(
            "Recurrence %s created for task %s (%s every %d) by user %s",
            rule.id,
            template_id,
            freq.value,
            interval,
            owner_id,
        )
        return rule

    def update_recurring(
        self,
        rule_id: int,
        frequency: str | None = None,
        interval: int | None = None,
        end_date: date | None = None,
        days_of_week: Iterable[int] | None = None,
        days_of_month: Iterable[int] | None = None,
    ) -> RecurrenceRuleEntity:
        current = self._require_rule(rule_id)
        frequency = str(frequency if frequency is not None else current.frequency)
        # day sets of the old frequency are dropped when they no longer apply
        if days_of_week is None and frequency == Frequency.WEEKLY.value:
            days_of_week = current.days_of_week
        if days_of_month is None and frequency == Frequency.MONTHLY.value:
            days_of_month = current.days_of_month
        freq, interval, weekdays, month_days = validate_rule(
            frequency,
            interval if interval is not None else current.interval,
            days_of_week,
            days_of_month,
        )

        data: dict = {
            "frequency": freq.value,
            "recurrence_interval": interval,
            "days_of_week": weekdays,
            "days_of_month": month_days,
        }
        if end_date is not None:
            data["end_date"] = end_date

        updated = self._repo.update_rule(rule_id, data)
        if updated is None:
            raise RecurrenceNotFoundError(f"Recurrence rule {rule_id} does not exist")
        logger.info("Recurrence %s updated", rule_id)
        return updated

    def delete_recurring(self, rule_id: int, delete_created_tasks: bool = False) -> bool:
        deleted_tasks = self._repo.delete_rule(rule_id, delete_created_tasks)
        if deleted_tasks is None:
            return False
        logger.info("Recurrence %s deleted with %d generated tasks", rule_id, deleted_tasks)
        return True

    def get_rule(self, rule_id: int) -> RecurrenceRuleEntity | None:
        return self._repo.get_rule(rule_id)

    def list_rules(self, filters: RecurrenceFilters) -> list[RecurrenceRuleEntity]:
        return self._repo.list_rules(filters)

    def get_statistics(self, owner_id: int | None = None, today: date | None = None) -> dict:
        today = today or local_today()
        rules = self._repo.list_rules(RecurrenceFilters(owner_id=owner_id))

        by_frequency: dict[str, int] = {}
        active = 0
        for rule in rules:
            frequency = str(rule.frequency)
            by_frequency[frequency] = by_frequency.get(frequency, 0) + 1
            if rule.end_date is None or rule.end_date >= today:
                active += 1

        return {
            "total": len(rules),
            "active": active,
            "inactive": len(rules) - active,
            "by_frequency": by_frequency,
        }

    def get_upcoming(
        self,
        owner_id: int,
        limit: int = 5,
        today: date | None = None,
    ) -> list[tuple[RecurrenceRuleEntity, date]]:
        today = today or local_today()
        rules = self._repo.list_rules(RecurrenceFilters(owner_id=owner_id, active_on=today))

        upcoming = []
        for rule in rules:
            next_date = self._evaluator.next_generation_date(rule, today)
            if next_date is not None:
                upcoming.append((rule, next_date))
        upcoming.sort(key=lambda item: (item[1], item[0].id or 0))
        return upcoming[:limit]

    def _require_rule(self, rule_id: int) -> RecurrenceRuleEntity:
        rule = self._repo.get_rule(rule_id)
        if rule is None:
            raise RecurrenceNotFoundError(f"Recurrence rule {rule_id} does not exist")
        return rule
