from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from recurring_tasks.domain.entities import (
    CategoryEntity,
    RecurrenceRuleEntity,
    TaskEntity,
    UserEntity,
)
from recurring_tasks.domain.enums import TaskStatus
from recurring_tasks.domain.errors import RecurrenceNotFoundError
from recurring_tasks.domain.filters import RecurrenceFilters

from .db import SessionLocal
from .models import CategoryModel, TaskModel, TaskRecurrenceModel, UserModel

DAY_COLUMNS = ("days_of_week", "days_of_month")


def _to_user(model: UserModel | None) -> Optional[UserEntity]:
    if model is None:
        return None
    return UserEntity(id=model.id, username=model.username)


def _to_category(model: CategoryModel | None) -> Optional[CategoryEntity]:
    if model is None:
        return None
    return CategoryEntity(id=model.id, name=model.name)


def _to_task(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        name=model.name,
        description=model.description,
        priority=model.priority,
        status=TaskStatus(model.status),
        user=_to_user(model.user),
        assigned_user=_to_user(model.assigned_user),
        category=_to_category(model.category),
        created_at=model.created_at,
        updated_at=model.updated_at,
        source_recurrence_id=model.source_recurrence_id,
    )


def _to_days(value: list[int] | None) -> frozenset[int] | None:
    return frozenset(value) if value else None


def _to_rule(model: TaskRecurrenceModel) -> RecurrenceRuleEntity:
    return RecurrenceRuleEntity(
        id=model.id,
        task=_to_task(model.task) if model.task else None,
        owner_id=model.user_id,
        frequency=model.frequency,
        interval=model.recurrence_interval,
        end_date=model.end_date,
        days_of_week=_to_days(model.days_of_week),
        days_of_month=_to_days(model.days_of_month),
        last_generated=model.last_generated,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _days_column(days: Iterable[int] | None) -> list[int] | None:
    return sorted(days) if days else None


def _prepare_rule_data(data: dict) -> dict:
    prepared = dict(data)
    for key in DAY_COLUMNS:
        if key in prepared:
            prepared[key] = _days_column(prepared[key])
    if "frequency" in prepared:
        prepared["frequency"] = str(prepared["frequency"])
    return prepared


def _active_on(stmt, today: date):
    return stmt.where(
        or_(TaskRecurrenceModel.end_date.is_(None), TaskRecurrenceModel.end_date >= today)
    )


def _apply_filters(stmt, filters: RecurrenceFilters) -> object:
    if filters.owner_id is not None:
        stmt = stmt.where(TaskRecurrenceModel.user_id == filters.owner_id)
    if filters.frequency:
        stmt = stmt.where(TaskRecurrenceModel.frequency == str(filters.frequency))
    if filters.active_on:
        stmt = _active_on(stmt, filters.active_on)
    return stmt


class GenerationBatch:
    """Storage operations of one generation run, sharing a single transaction."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_active_rules(self, today: date) -> list[RecurrenceRuleEntity]:
        stmt = _active_on(select(TaskRecurrenceModel), today).order_by(TaskRecurrenceModel.id.asc())
        return [_to_rule(rule) for rule in self._session.scalars(stmt)]

    def save_task(self, task: TaskEntity, source_rule_id: int | None = None) -> int:
        model = TaskModel(
            name=task.name,
            description=task.description,
            status=str(task.status),
            priority=task.priority,
            created_at=task.created_at,
            updated_at=task.updated_at,
            user_id=task.user.id if task.user else None,
            assigned_user_id=task.assigned_user.id if task.assigned_user else None,
            category_id=task.category.id if task.category else None,
            source_recurrence_id=source_rule_id,
        )
        self._session.add(model)
        self._session.flush()
        return model.id

    def save_rule(self, rule: RecurrenceRuleEntity) -> None:
        model = self._session.get(TaskRecurrenceModel, rule.id)
        if model is None:
            raise RecurrenceNotFoundError(f"Recurrence rule {rule.id} does not exist")
        if rule.last_generated is not None and (
            model.last_generated is None or rule.last_generated > model.last_generated
        ):
            model.last_generated = rule.last_generated
        self._session.flush()


class RecurrenceRepository:
    @contextmanager
    def generation_batch(self) -> Iterator[GenerationBatch]:
        with SessionLocal.begin() as session:
            yield GenerationBatch(session)

    def list_rules(self, filters: RecurrenceFilters) -> list[RecurrenceRuleEntity]:
        with SessionLocal() as session:
            stmt = select(TaskRecurrenceModel)
            stmt = _apply_filters(stmt, filters)
            stmt = stmt.order_by(TaskRecurrenceModel.id.asc())
            return [_to_rule(rule) for rule in session.scalars(stmt)]

    def get_rule(self, rule_id: int) -> Optional[RecurrenceRuleEntity]:
        with SessionLocal() as session:
            rule = session.get(TaskRecurrenceModel, rule_id)
            return _to_rule(rule) if rule else None

    def get_template(self, task_id: int) -> Optional[TaskEntity]:
        with SessionLocal() as session:
            task = session.get(TaskModel, task_id)
            return _to_task(task) if task else None

    def create_rule(self, data: dict) -> RecurrenceRuleEntity:
        with SessionLocal() as session:
            rule = TaskRecurrenceModel(**_prepare_rule_data(data))
            session.add(rule)
            session.commit()
            session.refresh(rule)
            return _to_rule(rule)

    def update_rule(self, rule_id: int, data: dict) -> Optional[RecurrenceRuleEntity]:
        with SessionLocal() as session:
            rule = session.get(TaskRecurrenceModel, rule_id)
            if not rule:
                return None
            for key, value in _prepare_rule_data(data).items():
                setattr(rule, key, value)
            session.commit()
            session.refresh(rule)
            return _to_rule(rule)

    def delete_rule(self, rule_id: int, delete_created_tasks: bool = False) -> Optional[int]:
        """Delete a rule; returns how many generated tasks went with it, or None if absent."""
        with SessionLocal() as session:
            rule = session.get(TaskRecurrenceModel, rule_id)
            if not rule:
                return None
            deleted = 0
            if delete_created_tasks:
                result = session.execute(
                    delete(TaskModel).where(TaskModel.source_recurrence_id == rule_id)
                )
                deleted = result.rowcount or 0
            session.delete(rule)
            session.commit()
            return deleted
