"""Task lifecycle enums and the ordering partition key.

A partition is the (profile, status) pair inside which sort orders are
meaningful. Comparing sort orders of tasks from different partitions has no
meaning.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping


class TaskStatus(StrEnum):
    """Lifecycle states of a task."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(StrEnum):
    """Priority levels of a task."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class PartitionKey:
    """Composite ordering domain of a task."""

    profile_id: str
    status: TaskStatus

    def __post_init__(self):
        # Accept raw strings so payload and ORM values hash identically.
        object.__setattr__(self, "status", TaskStatus(self.status))

    @classmethod
    def of(cls, task: Any) -> "PartitionKey":
        """Return the partition of an ORM task."""
        return cls(task.profile_id, task.status)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PartitionKey":
        """Return the partition of a serialized task payload."""
        return cls(payload["profileId"], payload["status"])

    def contains(self, payload: Mapping[str, Any]) -> bool:
        return (
            payload.get("profileId") == self.profile_id
            and payload.get("status") == self.status.value
        )

    def __str__(self):
        return f"{self.profile_id}/{self.status.value}"
