from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .enums import TaskStatus


@dataclass(frozen=True)
class UserEntity:
    id: int | None
    username: str


@dataclass(frozen=True)
class CategoryEntity:
    id: int | None
    name: str


@dataclass(frozen=True)
class TaskEntity:
    id: int | None
    name: str
    description: str | None
    priority: str
    user: Optional[UserEntity]
    assigned_user: Optional[UserEntity]
    category: Optional[CategoryEntity]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    status: TaskStatus = TaskStatus.PENDING
    source_recurrence_id: int | None = None


@dataclass(frozen=True)
class RecurrenceRuleEntity:
    """A stored rule telling how often a template task spawns new instances.

    ``days_of_week`` uses ISO numbering (1=Monday..7=Sunday). ``None`` for
    either day set means the rule has no calendar constraint of that kind.
    """

    id: int | None
    task: Optional[TaskEntity]
    owner_id: int | None
    frequency: str
    interval: int = 1
    end_date: Optional[date] = None
    days_of_week: frozenset[int] | None = None
    days_of_month: frozenset[int] | None = None
    last_generated: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class GeneratedTask:
    rule_id: int | None
    task: TaskEntity
