"""Optimistic task mutations.

Each mutation follows the same sequence: cancel in-flight task fetches,
snapshot every cached task query, patch them speculatively, send the request,
restore the snapshot if the request fails and finally invalidate the affected
queries whatever the outcome.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from client import query_keys
from client.api import ApiClient, ApiError
from client.cache import QueryCache

TaskPayload = Dict[str, Any]

WIRE_FIELDS = ("title", "description", "status", "priority", "dueDate", "categoryId")


def _list_patch(fn: Callable[[List[TaskPayload]], List[TaskPayload]]):
    def _apply(data):
        # Single-task entries and search results are left alone.
        if not isinstance(data, list):
            return data
        return fn(data)

    return _apply


def _filters_of(key) -> Mapping[str, Any]:
    if len(key) > 3 and key[3]:
        return dict(key[3])
    return {}


def _matches_filters(task: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    for name in ("status", "priority", "categoryId"):
        if name in filters and task.get(name) != filters[name]:
            return False
    return True


class TaskMutations:
    """Optimistic create, update, status change, delete and bulk reorder."""

    def __init__(self, api: ApiClient, cache: QueryCache):
        self.api = api
        self.cache = cache

    def _find_cached_task(self, task_id: str) -> Optional[TaskPayload]:
        single = self.cache.get(query_keys.task_key(task_id))
        if isinstance(single, dict):
            return single
        for key in self.cache.keys_matching(query_keys.TASKS):
            data = self.cache.get(key)
            if not isinstance(data, list):
                continue
            for task in data:
                if task.get("id") == task_id:
                    return task
        return None

    def _profile_of(self, task_id: str) -> Optional[str]:
        task = self._find_cached_task(task_id)
        return task.get("profileId") if task else None

    def _settle(self, profile_ids: Iterable[Optional[str]]) -> None:
        profile_ids = {profile_id for profile_id in profile_ids if profile_id}
        if not profile_ids:
            self.cache.invalidate(query_keys.TASKS)
            return
        for profile_id in profile_ids:
            self.cache.invalidate(query_keys.profile_tasks_prefix(profile_id))
            # Profile payloads carry task counts.
            self.cache.invalidate(query_keys.profile_key(profile_id))

    def _run(
        self,
        action: str,
        apply_patch: Callable[[], Any],
        request: Callable[[], Any],
        profile_ids: Callable[[Any], Iterable],
    ):
        self.cache.cancel(query_keys.TASKS)
        snapshot = self.cache.snapshot(query_keys.TASKS)
        apply_patch()

        result = None
        try:
            result = request()
        except ApiError:
            self.cache.rollback(snapshot)
            logging.warning(
                "%s failed, restored %d cached task queries", action, len(snapshot), exc_info=True
            )
            raise
        finally:
            self._settle(profile_ids(result))
        return result

    def create_task(self, data: Mapping[str, Any]) -> TaskPayload:
        """Create a task, showing a provisional copy in matching cached lists."""
        profile_id = data["profileId"]
        provisional = {
            "id": f"provisional-{uuid.uuid4()}",
            "profileId": profile_id,
            "categoryId": data.get("categoryId"),
            "title": data.get("title", ""),
            "description": data.get("description"),
            "status": data.get("status") or "PENDING",
            "priority": data.get("priority") or "MEDIUM",
            "dueDate": data.get("dueDate"),
            "sortOrder": None,
        }
        prefix = query_keys.profile_tasks_prefix(profile_id)

        def _insert(key):
            def _apply(tasks):
                if not _matches_filters(provisional, _filters_of(key)):
                    return tasks
                siblings = [
                    task["sortOrder"]
                    for task in tasks
                    if task.get("status") == provisional["status"] and task.get("sortOrder") is not None
                ]
                entry = dict(provisional, sortOrder=max(siblings) + 1 if siblings else 0)
                return tasks + [entry]

            return _list_patch(_apply)

        def _patch_lists():
            for key in self.cache.keys_matching(prefix):
                self.cache.patch(key, _insert(key))

        task = self._run(
            "Create task",
            _patch_lists,
            lambda: self.api.create_task(dict(data)),
            lambda result: [profile_id],
        )
        self.cache.set(query_keys.task_key(task["id"]), task)
        return task

    def _patch_all(self, fn):
        return lambda: self.cache.patch(query_keys.TASKS, _list_patch(fn))

    def update_task(self, task_id: str, changes: Mapping[str, Any]) -> TaskPayload:
        fields = {name: value for name, value in changes.items() if name in WIRE_FIELDS}

        def _apply(tasks):
            return [dict(task, **fields) if task.get("id") == task_id else task for task in tasks]

        profile_id = self._profile_of(task_id)
        task = self._run(
            "Update task",
            self._patch_all(_apply),
            lambda: self.api.update_task(task_id, dict(changes)),
            lambda result: [profile_id, result and result.get("profileId")],
        )
        self.cache.set(query_keys.task_key(task["id"]), task)
        return task

    def change_status(self, task_id: str, status: str) -> TaskPayload:
        """Move a task to another status section. Its sort order is kept."""
        status = str(status)

        def _apply(tasks):
            return [dict(task, status=status) if task.get("id") == task_id else task for task in tasks]

        profile_id = self._profile_of(task_id)
        task = self._run(
            "Status change",
            self._patch_all(_apply),
            lambda: self.api.update_task_status(task_id, status),
            lambda result: [profile_id, result and result.get("profileId")],
        )
        self.cache.set(query_keys.task_key(task["id"]), task)
        return task

    def delete_task(self, task_id: str) -> Any:
        def _apply(tasks):
            return [task for task in tasks if task.get("id") != task_id]

        profile_id = self._profile_of(task_id)
        result = self._run(
            "Delete task",
            self._patch_all(_apply),
            lambda: self.api.delete_task(task_id),
            lambda result: [profile_id],
        )
        self.cache.remove(query_keys.task_key(task_id))
        return result

    def bulk_reorder(self, task_updates: Iterable[Mapping[str, Any]]) -> Any:
        """Apply a full ``{id: sortOrder}`` mapping to every cached task list."""
        updates = [{"id": update["id"], "sortOrder": update["sortOrder"]} for update in task_updates]
        lookup = {update["id"]: update["sortOrder"] for update in updates}

        def _apply(tasks):
            return [
                dict(task, sortOrder=lookup[task.get("id")]) if task.get("id") in lookup else task
                for task in tasks
            ]

        profile_ids = {self._profile_of(update["id"]) for update in updates}
        return self._run(
            "Bulk reorder",
            self._patch_all(_apply),
            lambda: self.api.bulk_update_order(updates),
            lambda result: profile_ids,
        )
