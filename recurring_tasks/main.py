"""Command-line entry point, meant to be run on a schedule (e.g. a daily cron).

Without a subcommand it generates the recurring tasks that are due today.
"""
from __future__ import annotations

import argparse
import sys
from datetime import date

from recurring_tasks.domain.enums import Frequency
from recurring_tasks.domain.filters import RecurrenceFilters
from recurring_tasks.infra.db import init_db
from recurring_tasks.infra.logging import setup_logging
from recurring_tasks.infra.repository import RecurrenceRepository
from recurring_tasks.services.recurring_task_service import RecurringTaskService


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from None


def _format_days(days: frozenset[int] | None) -> str:
    return ",".join(str(day) for day in sorted(days)) if days else "-"


def cmd_generate(service: RecurringTaskService, args: argparse.Namespace) -> None:
    print("Starting recurring task generation...")
    generated = service.generate_due_tasks(today=args.date, dry_run=args.dry_run)
    prefix = "Would create" if args.dry_run else "Created"
    for item in generated:
        owner = item.task.user.username if item.task.user else "?"
        print(f"{prefix} recurring task: {item.task.name} for user {owner}")
    print(f"Generated {len(generated)} new recurring tasks.")


def cmd_list(service: RecurringTaskService, args: argparse.Namespace) -> None:
    filters = RecurrenceFilters(owner_id=args.owner, frequency=args.frequency, active_on=args.active_on)
    rules = service.list_rules(filters)
    if not rules:
        print("No recurring tasks found.")
        return
    for rule in rules:
        name = rule.task.name if rule.task else "<missing task>"
        print(
            f"#{rule.id} {name}: {rule.frequency} every {rule.interval}"
            f" | weekdays {_format_days(rule.days_of_week)}"
            f" | month days {_format_days(rule.days_of_month)}"
            f" | ends {rule.end_date or '-'}"
            f" | last generated {rule.last_generated or '-'}"
        )


def cmd_stats(service: RecurringTaskService, args: argparse.Namespace) -> None:
    stats = service.get_statistics(owner_id=args.owner)
    print(f"Total: {stats['total']}")
    print(f"Active: {stats['active']}")
    print(f"Inactive: {stats['inactive']}")
    for frequency, count in sorted(stats["by_frequency"].items()):
        print(f"  {frequency}: {count}")


def cmd_upcoming(service: RecurringTaskService, args: argparse.Namespace) -> None:
    upcoming = service.get_upcoming(args.owner, limit=args.limit)
    if not upcoming:
        print("No upcoming recurring tasks.")
        return
    for rule, next_date in upcoming:
        name = rule.task.name if rule.task else "<missing task>"
        print(f"{next_date.isoformat()} {name} (#{rule.id}, {rule.frequency})")


def _add_generate_arguments(parser: argparse.ArgumentParser, root: bool = False) -> None:
    # the subcommand copies must not overwrite flags already given before it
    date_default = None if root else argparse.SUPPRESS
    dry_run_default = False if root else argparse.SUPPRESS
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=date_default,
        help="Evaluate rules as of this date (YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=dry_run_default,
        help="Report what would be created without writing anything.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recurring-tasks",
        description="Generate task instances from recurrence rules.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level.")
    _add_generate_arguments(parser, root=True)
    parser.set_defaults(func=cmd_generate)

    subparsers = parser.add_subparsers(dest="command")

    generate_parser = subparsers.add_parser("generate", help="Create the recurring tasks due today")
    _add_generate_arguments(generate_parser)
    generate_parser.set_defaults(func=cmd_generate)

    list_parser = subparsers.add_parser("list", help="List recurrence rules")
    list_parser.add_argument("--owner", type=int, default=None, help="Only rules owned by this user id")
    list_parser.add_argument("--frequency", choices=[item.value for item in Frequency], default=None)
    list_parser.add_argument("--active-on", type=_parse_date, default=None, help="Only rules not ended on this date")
    list_parser.set_defaults(func=cmd_list)

    stats_parser = subparsers.add_parser("stats", help="Show recurrence statistics")
    stats_parser.add_argument("--owner", type=int, default=None)
    stats_parser.set_defaults(func=cmd_stats)

    upcoming_parser = subparsers.add_parser("upcoming", help="Show the next generation dates for a user")
    upcoming_parser.add_argument("--owner", type=int, required=True)
    upcoming_parser.add_argument("--limit", type=int, default=5)
    upcoming_parser.set_defaults(func=cmd_upcoming)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)
    init_db()

    service = RecurringTaskService(RecurrenceRepository())
    args.func(service, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
