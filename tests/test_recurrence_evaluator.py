from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from recurring_tasks.domain.entities import (
    CategoryEntity,
    RecurrenceRuleEntity,
    TaskEntity,
    UserEntity,
)
from recurring_tasks.domain.enums import Frequency, TaskStatus
from recurring_tasks.services.recurrence_evaluator import (
    RecurrenceEvaluator,
    months_between,
    weeks_between,
)

OWNER = UserEntity(id=1, username="alice")
ASSIGNEE = UserEntity(id=2, username="bob")


def make_template(created_at: datetime | None = datetime(2024, 12, 1, 9, 30)) -> TaskEntity:
    return TaskEntity(
        id=10,
        name="Weekly report",
        description="Send the numbers",
        priority="high",
        status=TaskStatus.IN_PROGRESS,
        user=OWNER,
        assigned_user=ASSIGNEE,
        category=CategoryEntity(id=3, name="Reports"),
        created_at=created_at,
        updated_at=created_at,
    )


def make_rule(frequency: str, **fields) -> RecurrenceRuleEntity:
    fields.setdefault("task", make_template())
    return RecurrenceRuleEntity(id=1, owner_id=OWNER.id, frequency=frequency, **fields)


def test_expired_rule_is_never_due() -> None:
    evaluator = RecurrenceEvaluator()
    for frequency in Frequency:
        rule = make_rule(
            frequency.value,
            end_date=date(2025, 1, 10),
            last_generated=date(2020, 1, 1),
        )
        assert evaluator.should_generate(rule, date(2025, 1, 11)) is False


def test_rule_ending_today_is_still_active() -> None:
    rule = make_rule("daily", end_date=date(2025, 1, 11), last_generated=date(2025, 1, 10))
    assert RecurrenceEvaluator().should_generate(rule, date(2025, 1, 11)) is True


def test_daily_due_from_next_day() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("daily", interval=1, last_generated=date(2025, 1, 10))

    assert evaluator.should_generate(rule, date(2025, 1, 11)) is True
    assert evaluator.should_generate(rule, date(2025, 1, 10)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 9)) is False


def test_daily_interval_counts_days() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("daily", interval=3, last_generated=date(2025, 1, 10))

    assert evaluator.should_generate(rule, date(2025, 1, 12)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 13)) is True


def test_baseline_falls_back_to_template_creation() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("daily", task=make_template(datetime(2025, 1, 10, 18, 45)))

    assert evaluator.baseline(rule) == date(2025, 1, 10)
    assert evaluator.should_generate(rule, date(2025, 1, 10)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 11)) is True


def test_missing_baseline_is_not_due() -> None:
    rule = make_rule("daily", task=make_template(created_at=None))
    assert RecurrenceEvaluator().should_generate(rule, date(2025, 1, 11)) is False


def test_missing_template_is_not_due() -> None:
    rule = make_rule("daily", task=None, last_generated=date(2025, 1, 1))
    assert RecurrenceEvaluator().should_generate(rule, date(2025, 1, 11)) is False


def test_unknown_frequency_is_inert() -> None:
    rule = make_rule("fortnightly", last_generated=date(2020, 1, 1))
    assert RecurrenceEvaluator().should_generate(rule, date(2025, 1, 11)) is False


def test_weekly_day_filter_rejects_other_weekdays() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule(
        "weekly",
        interval=1,
        days_of_week=frozenset({1, 3, 5}),
        last_generated=date(2024, 6, 3),
    )

    # Tuesday, many weeks after the baseline
    assert evaluator.should_generate(rule, date(2025, 1, 14)) is False
    # Monday
    assert evaluator.should_generate(rule, date(2025, 1, 13)) is True


def test_weekly_needs_a_whole_week_elapsed() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule(
        "weekly",
        interval=1,
        days_of_week=frozenset({1, 3, 5}),
        last_generated=date(2025, 1, 6),
    )

    # Wednesday after the baseline Monday: allowed day, but only 2 days elapsed
    assert evaluator.should_generate(rule, date(2025, 1, 8)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 13)) is True


def test_weekly_every_two_weeks_on_monday() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule(
        "weekly",
        interval=2,
        days_of_week=frozenset({1}),
        last_generated=date(2025, 1, 6),
    )

    assert evaluator.should_generate(rule, date(2025, 1, 13)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 20)) is True


def test_weekly_without_days_only_checks_interval() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("weekly", interval=1, last_generated=date(2025, 1, 6))

    assert evaluator.should_generate(rule, date(2025, 1, 12)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 14)) is True


def test_monthly_day_filter_and_interval() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule(
        "monthly",
        interval=2,
        days_of_month=frozenset({1, 15}),
        last_generated=date(2025, 1, 15),
    )

    # one month elapsed
    assert evaluator.should_generate(rule, date(2025, 2, 15)) is False
    # two months elapsed, allowed days
    assert evaluator.should_generate(rule, date(2025, 3, 1)) is True
    assert evaluator.should_generate(rule, date(2025, 3, 15)) is True
    # two months elapsed, other day
    assert evaluator.should_generate(rule, date(2025, 3, 2)) is False


def test_monthly_elapsed_months_ignore_day_of_month() -> None:
    rule = make_rule("monthly", interval=1, last_generated=date(2025, 1, 31))
    assert RecurrenceEvaluator().should_generate(rule, date(2025, 2, 1)) is True


def test_monthly_counts_across_year_boundary() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("monthly", interval=3, last_generated=date(2024, 11, 20))

    assert evaluator.should_generate(rule, date(2025, 1, 31)) is False
    assert evaluator.should_generate(rule, date(2025, 2, 1)) is True


def test_yearly_requires_creation_month_day() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("yearly", interval=1, task=make_template(datetime(2023, 3, 10, 8, 0)))

    assert evaluator.should_generate(rule, date(2025, 3, 11)) is False
    assert evaluator.should_generate(rule, date(2025, 3, 10)) is True


def test_yearly_interval_uses_baseline_year() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule(
        "yearly",
        interval=2,
        task=make_template(datetime(2020, 3, 10, 8, 0)),
        last_generated=date(2024, 3, 10),
    )

    assert evaluator.should_generate(rule, date(2025, 3, 10)) is False
    assert evaluator.should_generate(rule, date(2026, 3, 10)) is True


def test_yearly_without_template_creation_date_is_not_due() -> None:
    rule = make_rule("yearly", task=make_template(created_at=None), last_generated=date(2020, 3, 10))
    assert RecurrenceEvaluator().should_generate(rule, date(2025, 3, 10)) is False


def test_interval_below_one_behaves_like_one() -> None:
    rule = make_rule("daily", interval=0, last_generated=date(2025, 1, 10))
    evaluator = RecurrenceEvaluator()

    assert evaluator.should_generate(rule, date(2025, 1, 10)) is False
    assert evaluator.should_generate(rule, date(2025, 1, 11)) is True


def test_datetime_today_is_reduced_to_its_date() -> None:
    rule = make_rule("daily", last_generated=date(2025, 1, 10))
    assert RecurrenceEvaluator().should_generate(rule, datetime(2025, 1, 11, 0, 5)) is True


def test_should_generate_is_repeatable() -> None:
    evaluator = RecurrenceEvaluator()
    rule = make_rule("weekly", interval=2, days_of_week=frozenset({1}), last_generated=date(2025, 1, 6))
    snapshot = replace(rule)

    first = evaluator.should_generate(rule, date(2025, 1, 20))
    second = evaluator.should_generate(rule, date(2025, 1, 20))

    assert first is second is True
    assert rule == snapshot


def test_build_instance_copies_template_fields() -> None:
    template = make_template()
    now = datetime(2025, 1, 11, 6, 0)

    instance = RecurrenceEvaluator().build_instance(template, now)

    assert instance.id is None
    assert instance.name == template.name
    assert instance.description == template.description
    assert instance.priority == template.priority
    assert instance.user == OWNER
    assert instance.assigned_user == ASSIGNEE
    assert instance.category == template.category
    assert instance.status is TaskStatus.PENDING
    assert instance.created_at == now
    assert instance.updated_at == now
    assert template.created_at == datetime(2024, 12, 1, 9, 30)
    assert template.id == 10


def test_next_generation_date_daily() -> None:
    rule = make_rule("daily", interval=3, last_generated=date(2025, 1, 10))
    assert RecurrenceEvaluator().next_generation_date(rule, date(2025, 1, 11)) == date(2025, 1, 13)


def test_next_generation_date_weekly_on_monday() -> None:
    rule = make_rule("weekly", interval=2, days_of_week=frozenset({1}), last_generated=date(2025, 1, 6))
    assert RecurrenceEvaluator().next_generation_date(rule, date(2025, 1, 7)) == date(2025, 1, 20)


def test_next_generation_date_skips_short_months() -> None:
    rule = make_rule("monthly", interval=1, days_of_month=frozenset({31}), last_generated=date(2025, 1, 31))
    assert RecurrenceEvaluator().next_generation_date(rule, date(2025, 2, 1)) == date(2025, 3, 31)


def test_next_generation_date_leap_day_template() -> None:
    rule = make_rule("yearly", interval=1, task=make_template(datetime(2024, 2, 29, 12, 0)))
    assert RecurrenceEvaluator().next_generation_date(rule, date(2024, 3, 1)) == date(2028, 2, 29)


def test_next_generation_date_none_after_end_date() -> None:
    rule = make_rule(
        "monthly",
        interval=1,
        last_generated=date(2025, 1, 15),
        end_date=date(2025, 1, 31),
    )
    assert RecurrenceEvaluator().next_generation_date(rule, date(2025, 1, 16)) is None


def test_elapsed_helpers() -> None:
    assert weeks_between(date(2025, 1, 6), date(2025, 1, 19)) == 1
    assert weeks_between(date(2025, 1, 6), date(2025, 1, 20)) == 2
    assert months_between(date(2025, 1, 31), date(2025, 2, 1)) == 1
    assert months_between(date(2024, 12, 1), date(2025, 2, 28)) == 2
