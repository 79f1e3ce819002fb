"""Sort order assignment and bulk reindexing within task partitions.

Every function reads the live partition rows; nothing here caches an
ordering between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from database import db
from models.partition import PartitionKey, TaskStatus
from models.profile import Profile
from models.task import Task
from services.errors import CrossPartitionError, TaskNotFoundError


@dataclass(frozen=True)
class OrderUpdate:
    """New sort order for a single task."""

    task_id: str
    sort_order: int


def _partition_filter(query, partition: PartitionKey):
    return query.filter(
        Task.profile_id == partition.profile_id,
        Task.status == partition.status.value,
    )


def list_partition(partition: PartitionKey) -> list[Task]:
    """Return the tasks of a partition by ascending sort order."""
    return (
        _partition_filter(Task.query, partition)
        .order_by(Task.sort_order.asc(), Task.created_at.asc())
        .all()
    )


def current_max_sort_order(partition: PartitionKey) -> int | None:
    """Return the highest sort order in the partition, None when it is empty."""
    query = _partition_filter(db.session.query(func.max(Task.sort_order)), partition)
    return query.scalar()


def next_sort_order(partition: PartitionKey) -> int:
    """Return the sort order that appends to the end of the partition (0-based)."""
    # Take the write lock on the owning profile before reading the maximum:
    # a row lock on PostgreSQL, the database RESERVED lock on SQLite.
    db.session.query(Profile).filter(Profile.id == partition.profile_id).update(
        {Profile.updated_at: Profile.updated_at}, synchronize_session=False
    )
    current_max = current_max_sort_order(partition)
    if current_max is None:
        return 0
    return current_max + 1


def append_task(task: Task) -> Task:
    """Place a new task at the end of its partition and add it to the session."""
    task.sort_order = next_sort_order(PartitionKey.of(task))
    db.session.add(task)
    return task


def _normalize_updates(updates: Iterable[OrderUpdate | dict]) -> list[OrderUpdate]:
    normalized: list[OrderUpdate] = []
    seen: set[str] = set()
    for update in updates:
        if isinstance(update, dict):
            update = OrderUpdate(task_id=update["id"], sort_order=update["sortOrder"])
        if update.task_id in seen:
            raise ValueError(f"Task {update.task_id} appears more than once in the batch.")
        if update.sort_order < 0:
            raise ValueError("Sort order must be a non-negative integer.")
        seen.add(update.task_id)
        normalized.append(update)
    return normalized


def check_batch(task_ids: Sequence[str]) -> dict[str, Task]:
    """Resolve a reorder batch, raising before anything is written.

    Raises TaskNotFoundError when any id does not resolve and
    CrossPartitionError when the tasks span more than one profile.
    """
    tasks = {task.id: task for task in Task.query.filter(Task.id.in_(list(task_ids))).all()}
    missing = [task_id for task_id in task_ids if task_id not in tasks]
    if missing:
        raise TaskNotFoundError(missing)
    profile_ids = {task.profile_id for task in tasks.values()}
    if len(profile_ids) > 1:
        raise CrossPartitionError(profile_ids)
    return tasks


def bulk_reorder(updates: Sequence[OrderUpdate | dict]) -> int:
    """Apply all sort order updates as one transaction.

    Either every update is persisted or none is. The batch is checked with
    check_batch inside the same transaction. Returns the number of updated
    tasks.
    """
    normalized = _normalize_updates(updates)
    if not normalized:
        return 0

    task_ids = [update.task_id for update in normalized]
    try:
        tasks = check_batch(task_ids)
        profile_ids = {task.profile_id for task in tasks.values()}

        for update in normalized:
            tasks[update.task_id].sort_order = update.sort_order
        db.session.commit()
    except (TaskNotFoundError, CrossPartitionError):
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Bulk reorder of %d tasks rolled back", len(normalized), exc_info=True)
        raise

    logging.info("Reordered %d tasks in profile %s", len(normalized), profile_ids.pop())
    return len(normalized)


def change_status(task_id: str, status: TaskStatus | str) -> Task:
    """Move a task to another status partition without touching any sort order.

    The task keeps its numeric sort order, which may collide with a sibling in
    the new partition until that partition is next reordered.
    """
    status = TaskStatus(status)
    task = db.session.get(Task, task_id)
    if task is None:
        raise TaskNotFoundError([task_id])
    task.status = status.value
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Status change of task %s rolled back", task_id, exc_info=True)
        raise
    return task
