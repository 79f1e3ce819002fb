"""Task persistence helpers: creation, patching, listing, search and statistics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, or_

from database import db
from models.category import Category
from models.partition import PartitionKey, TaskPriority, TaskStatus
from models.profile import Profile
from models.task import Task
from services.errors import NotFoundError
from services.ordering_service import append_task, bulk_reorder, list_partition

SORT_FIELDS = {
    "title": Task.title,
    "dueDate": Task.due_date,
    "priority": Task.priority,
    "status": Task.status,
    "createdAt": Task.created_at,
    "sortOrder": Task.sort_order,
}

UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date", "category_id")


@dataclass
class TaskFilters:
    status: Optional[TaskStatus] = None
    category_id: Optional[str] = None
    priority: Optional[TaskPriority] = None
    search: Optional[str] = None
    due_date_from: Optional[datetime] = None
    due_date_to: Optional[datetime] = None


@dataclass
class TaskSort:
    field: str = "sortOrder"
    direction: str = "asc"


def get_task(task_id: str) -> Task | None:
    return db.session.get(Task, task_id)


def _resolve_category(profile_id: str, category_id: str | None) -> Category | None:
    if category_id is None:
        return None
    category = db.session.get(Category, category_id)
    if category is None or category.profile_id != profile_id:
        raise NotFoundError("Category not found")
    return category


def create_task(
    profile_id: str,
    title: str,
    *,
    description: str | None = None,
    status: TaskStatus | str = TaskStatus.PENDING,
    priority: TaskPriority | str = TaskPriority.MEDIUM,
    due_date: datetime | None = None,
    category_id: str | None = None,
) -> Task:
    """Create a task at the end of its (profile, status) partition and commit it."""
    profile = db.session.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError("Profile not found")

    task = Task(
        profile_id=profile.id,
        title=title,
        description=description,
        status=TaskStatus(status).value,
        priority=TaskPriority(priority).value,
        due_date=due_date,
    )
    category = _resolve_category(profile.id, category_id)
    if category is not None:
        task.category_id = category.id

    append_task(task)
    db.session.commit()
    return task


def update_task(task: Task, changes: dict[str, Any]) -> Task:
    """Apply a partial patch. The sort order is never recomputed here."""
    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field == "category_id":
            category = _resolve_category(task.profile_id, value)
            task.category_id = category.id if category else None
        elif field == "status":
            task.status = TaskStatus(value).value
        elif field == "priority":
            task.priority = TaskPriority(value).value
        else:
            setattr(task, field, value)
    db.session.commit()
    return task


def delete_task(task: Task) -> None:
    """Delete a task; siblings keep their sort orders."""
    db.session.delete(task)
    db.session.commit()


def _apply_filters(query, filters: TaskFilters | None):
    if filters is None:
        return query
    if filters.status:
        query = query.filter(Task.status == TaskStatus(filters.status).value)
    if filters.category_id:
        query = query.filter(Task.category_id == filters.category_id)
    if filters.priority:
        query = query.filter(Task.priority == TaskPriority(filters.priority).value)
    if filters.search:
        query = _apply_search(query, filters.search)
    if filters.due_date_from:
        query = query.filter(Task.due_date >= filters.due_date_from)
    if filters.due_date_to:
        query = query.filter(Task.due_date <= filters.due_date_to)
    return query


def _apply_search(query, term: str):
    pattern = f"%{term.strip()}%"
    return query.outerjoin(Category, Task.category_id == Category.id).filter(
        or_(
            Task.title.ilike(pattern),
            Task.description.ilike(pattern),
            Category.name.ilike(pattern),
        )
    )


def list_tasks(
    profile_id: str,
    filters: TaskFilters | None = None,
    sort: TaskSort | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Task]:
    """Return the tasks of a profile, by sort order unless told otherwise."""
    sort = sort or TaskSort()
    column = SORT_FIELDS.get(sort.field, Task.sort_order)
    ordering = column.desc() if sort.direction == "desc" else column.asc()

    query = _apply_filters(Task.query.filter(Task.profile_id == profile_id), filters)
    query = query.order_by(ordering, Task.created_at.asc())
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all()


def bulk_update_sort_order(updates: list[dict[str, Any]]) -> int:
    """Persist ``[{"id": ..., "sortOrder": ...}]`` as a single transaction."""
    return bulk_reorder(updates)


def list_tasks_by_partition(profile_id: str, status: TaskStatus | str | None = None) -> list[Task]:
    """Return one partition, or every task of the profile when no status is given."""
    if status is None:
        return list_tasks(profile_id)
    return list_partition(PartitionKey(profile_id, status))


def search_tasks(user_id: str, term: str, filters: TaskFilters | None = None) -> list[Task]:
    """Search title, description and category name across all profiles of a user."""
    query = Task.query.join(Profile, Task.profile_id == Profile.id).filter(
        Profile.user_id == user_id
    )
    query = _apply_search(query, term)
    if filters is not None:
        filters = TaskFilters(
            status=filters.status,
            category_id=filters.category_id,
            priority=filters.priority,
            due_date_from=filters.due_date_from,
            due_date_to=filters.due_date_to,
        )
        query = _apply_filters(query, filters)
    return query.order_by(Task.updated_at.desc()).all()


def overdue_tasks(profile_id: str, now: datetime | None = None) -> list[Task]:
    now = now or datetime.utcnow()
    return (
        Task.query.filter(
            Task.profile_id == profile_id,
            Task.due_date < now,
            Task.status != TaskStatus.COMPLETED.value,
        )
        .order_by(Task.due_date.asc())
        .all()
    )


def tasks_due_today(profile_id: str, now: datetime | None = None) -> list[Task]:
    now = now or datetime.utcnow()
    start_of_day = datetime(now.year, now.month, now.day)
    end_of_day = start_of_day + timedelta(days=1)
    return (
        Task.query.filter(
            Task.profile_id == profile_id,
            Task.due_date >= start_of_day,
            Task.due_date < end_of_day,
        )
        .order_by(Task.due_date.asc())
        .all()
    )


def get_task_stats(profile_id: str) -> dict[str, int]:
    """Return per-status counts and the number of overdue tasks of a profile."""
    rows = (
        db.session.query(Task.status, func.count(Task.id))
        .filter(Task.profile_id == profile_id)
        .group_by(Task.status)
        .all()
    )
    counts = {status: count for status, count in rows}
    return {
        "total": sum(counts.values()),
        "pending": counts.get(TaskStatus.PENDING.value, 0),
        "inProgress": counts.get(TaskStatus.IN_PROGRESS.value, 0),
        "completed": counts.get(TaskStatus.COMPLETED.value, 0),
        "overdue": len(overdue_tasks(profile_id)),
    }
