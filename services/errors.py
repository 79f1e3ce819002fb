"""Exceptions raised by the service layer and mapped to HTTP statuses in routes."""
from __future__ import annotations

from typing import Iterable


class NotFoundError(LookupError):
    """A referenced user, profile, category or task does not exist."""


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_ids: Iterable[str]):
        self.task_ids = tuple(task_ids)
        super().__init__("One or more tasks not found")


class CrossPartitionError(ValueError):
    """A bulk reorder batch spans more than one profile."""

    def __init__(self, profile_ids: Iterable[str]):
        self.profile_ids = tuple(sorted(profile_ids))
        super().__init__("All tasks must belong to the same profile")


class ConflictError(ValueError):
    """A unique constraint (profile name, user email) would be violated."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
