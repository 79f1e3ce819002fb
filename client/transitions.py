"""Drag-and-drop classification for the task board.

A drop can collide with several targets at once: a task card and the status
section that contains it, for instance. Classifier predicates are evaluated
in priority order over all collisions, so a task-level match always wins
over a section-level match.

Gestures are not serialized. A gesture that starts before an earlier one has
settled computes its reorder from whatever task list is cached at that
moment and its request can overwrite the earlier result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from client import query_keys
from client.api import ApiClient, ApiError
from client.cache import QueryCache
from models.partition import PartitionKey, TaskStatus


@dataclass(frozen=True)
class TaskTarget:
    """A task card under the pointer."""

    task_id: str
    partition: PartitionKey


@dataclass(frozen=True)
class PartitionTarget:
    """A status section drop zone, possibly empty."""

    partition: PartitionKey


DropTarget = Union[TaskTarget, PartitionTarget]


@dataclass(frozen=True)
class DragGesture:
    task_id: str
    origin: PartitionKey


@dataclass(frozen=True)
class Reorder:
    partition: PartitionKey
    task_id: str
    over_id: str


@dataclass(frozen=True)
class StatusChange:
    task_id: str
    source: PartitionKey
    status: TaskStatus

    @property
    def target(self) -> PartitionKey:
        return PartitionKey(self.source.profile_id, self.status)


@dataclass(frozen=True)
class Noop:
    reason: str = ""


Transition = Union[Reorder, StatusChange, Noop]
Classifier = Callable[[DragGesture, DropTarget], Optional[Transition]]


def _same_partition_task(gesture: DragGesture, target: DropTarget) -> Optional[Transition]:
    if not isinstance(target, TaskTarget) or target.task_id == gesture.task_id:
        return None
    if target.partition != gesture.origin:
        return None
    return Reorder(gesture.origin, gesture.task_id, target.task_id)


def _other_partition_task(gesture: DragGesture, target: DropTarget) -> Optional[Transition]:
    if not isinstance(target, TaskTarget) or target.task_id == gesture.task_id:
        return None
    partition = target.partition
    if partition.profile_id != gesture.origin.profile_id or partition == gesture.origin:
        return None
    return StatusChange(gesture.task_id, gesture.origin, partition.status)


def _partition_marker(gesture: DragGesture, target: DropTarget) -> Optional[Transition]:
    if not isinstance(target, PartitionTarget):
        return None
    if target.partition.profile_id != gesture.origin.profile_id:
        return None
    if target.partition.status == gesture.origin.status:
        return Noop("dropped on its own section")
    return StatusChange(gesture.task_id, gesture.origin, target.partition.status)


CLASSIFIERS: Sequence[Classifier] = (
    _same_partition_task,
    _other_partition_task,
    _partition_marker,
)


def classify(
    gesture: DragGesture,
    collisions: Sequence[DropTarget],
    classifiers: Sequence[Classifier] = CLASSIFIERS,
) -> Transition:
    """Return the transition of the first classifier that matches any collision."""
    for classifier in classifiers:
        for target in collisions:
            transition = classifier(gesture, target)
            if transition is not None:
                return transition
    if not collisions:
        return Noop("dropped outside any target")
    return Noop("no valid target")


def compute_reorder(
    tasks: Sequence[Mapping[str, Any]], active_id: str, over_id: str
) -> List[Dict[str, Any]]:
    """Move ``active_id`` to the position of ``over_id`` and renumber from 0.

    Returns the whole partition as ``[{"id", "sortOrder"}]``, or an empty list
    when either task is not part of ``tasks``.
    """
    ordered = sorted(tasks, key=lambda task: task["sortOrder"])
    ids = [task["id"] for task in ordered]
    if active_id not in ids or over_id not in ids:
        return []
    active_index = ids.index(active_id)
    over_index = ids.index(over_id)
    ids.insert(over_index, ids.pop(active_index))
    return [{"id": task_id, "sortOrder": index} for index, task_id in enumerate(ids)]


class Board(Protocol):
    def find_task(self, task_id: str) -> Optional[Mapping[str, Any]]: ...

    def partition_tasks(self, partition: PartitionKey) -> List[Mapping[str, Any]]: ...


class Backend(Protocol):
    def bulk_reorder(self, task_updates: Sequence[Mapping[str, Any]]) -> Any: ...

    def change_status(self, task_id: str, status: str) -> Any: ...


class CacheBoard:
    """Board state read from the cached task list of one profile."""

    def __init__(self, api: ApiClient, cache: QueryCache, profile_id: str):
        self.api = api
        self.cache = cache
        self.profile_id = profile_id

    def tasks(self) -> List[Mapping[str, Any]]:
        key = query_keys.profile_tasks_key(self.profile_id)
        return self.cache.query(key, lambda: self.api.list_tasks(self.profile_id)) or []

    def find_task(self, task_id: str) -> Optional[Mapping[str, Any]]:
        for task in self.tasks():
            if task["id"] == task_id:
                return task
        return None

    def partition_tasks(self, partition: PartitionKey) -> List[Mapping[str, Any]]:
        return [task for task in self.tasks() if partition.contains(task)]


class TransitionCoordinator:
    """Turn drag gestures into reorder or status change calls.

    ``backend`` is usually a TaskMutations instance so that every call is
    applied optimistically. Failures are logged and passed to ``notify``;
    restoring the visible order is left to the backend.
    """

    def __init__(
        self,
        backend: Backend,
        board: Board,
        notify: Optional[Callable[[str], None]] = None,
        classifiers: Sequence[Classifier] = CLASSIFIERS,
    ):
        self.backend = backend
        self.board = board
        self.notify = notify
        self.classifiers = classifiers

    def start(self, task_id: str) -> DragGesture:
        task = self.board.find_task(task_id)
        if task is None:
            raise LookupError(f"Task {task_id} is not on the board")
        return DragGesture(task_id, PartitionKey.from_payload(task))

    def cancel(self, gesture: DragGesture) -> Noop:
        return Noop("cancelled")

    def drop(self, gesture: DragGesture, collisions: Sequence[DropTarget]) -> Transition:
        transition = classify(gesture, collisions, self.classifiers)
        try:
            if isinstance(transition, Reorder):
                updates = compute_reorder(
                    self.board.partition_tasks(transition.partition),
                    transition.task_id,
                    transition.over_id,
                )
                if not updates:
                    return Noop("task left the partition")
                self.backend.bulk_reorder(updates)
            elif isinstance(transition, StatusChange):
                self.backend.change_status(transition.task_id, transition.status.value)
        except ApiError as error:
            logging.warning("Failed to apply %s", type(transition).__name__, exc_info=True)
            if self.notify is not None:
                self.notify(str(error))
        return transition
