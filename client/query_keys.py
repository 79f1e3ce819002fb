"""Cache keys for API queries.

Keys are tuples so that a shorter key works as a prefix matching every
longer key that starts with it.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

QueryKey = Tuple[Any, ...]

USERS: QueryKey = ("users",)
PROFILES: QueryKey = ("profiles",)
CATEGORIES: QueryKey = ("categories",)
TASKS: QueryKey = ("tasks",)


def freeze_filters(filters: Optional[Mapping[str, Any]]) -> Optional[Tuple[Tuple[str, Any], ...]]:
    """Return a hashable, order-independent form of a filter mapping."""
    if not filters:
        return None
    items = tuple(sorted((key, value) for key, value in filters.items() if value is not None))
    return items or None


def user_key(user_id: str) -> QueryKey:
    return ("users", user_id)


def profile_key(profile_id: str) -> QueryKey:
    return ("profiles", profile_id)


def user_profiles_key(user_id: str) -> QueryKey:
    return ("profiles", "user", user_id)


def category_key(category_id: str) -> QueryKey:
    return ("categories", category_id)


def profile_categories_key(profile_id: str) -> QueryKey:
    return ("categories", "profile", profile_id)


def task_key(task_id: str) -> QueryKey:
    return ("tasks", task_id)


def profile_tasks_prefix(profile_id: str) -> QueryKey:
    return ("tasks", "profile", profile_id)


def profile_tasks_key(profile_id: str, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
    return ("tasks", "profile", profile_id, freeze_filters(filters))


def task_search_key(user_id: str, query: str, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
    return ("tasks", "search", user_id, query, freeze_filters(filters))
