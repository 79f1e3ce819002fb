"""Profile persistence and name-uniqueness rules."""
from __future__ import annotations

from typing import Any

from sqlalchemy import func

from database import db
from models.profile import Profile
from models.user import User
from services.errors import ConflictError, NotFoundError
from services.task_service import get_task_stats

PROFILE_NAME_CONFLICT = "A profile with this name already exists for this user"


def is_name_unique(user_id: str, name: str, exclude_id: str | None = None) -> bool:
    """Return True when no other profile of the user has the name, ignoring case."""
    query = Profile.query.filter(
        Profile.user_id == user_id,
        func.lower(Profile.name) == name.strip().lower(),
    )
    if exclude_id:
        query = query.filter(Profile.id != exclude_id)
    return query.first() is None


def get_profile(profile_id: str) -> Profile | None:
    return db.session.get(Profile, profile_id)


def get_user_profiles(user_id: str) -> list[Profile]:
    return Profile.query.filter_by(user_id=user_id).order_by(Profile.created_at.asc()).all()


def create_profile(user_id: str, name: str, color: str | None = None) -> Profile:
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    name = name.strip()
    if not is_name_unique(user_id, name):
        raise ConflictError("Profile name already exists", field="name")
    profile = Profile(user_id=user_id, name=name, color=color)
    db.session.add(profile)
    db.session.commit()
    return profile


def update_profile(profile: Profile, changes: dict[str, Any]) -> Profile:
    if "name" in changes and changes["name"] is not None:
        name = changes["name"].strip()
        if not is_name_unique(profile.user_id, name, exclude_id=profile.id):
            raise ConflictError("Profile name already exists", field="name")
        profile.name = name
    if "color" in changes and changes["color"] is not None:
        profile.color = changes["color"]
    db.session.commit()
    return profile


def delete_profile(profile: Profile) -> None:
    """Delete a profile together with its tasks and categories."""
    db.session.delete(profile)
    db.session.commit()


def serialize_profile(profile: Profile, *, include_stats: bool = False) -> dict[str, Any]:
    payload = profile.to_dict()
    payload["categories"] = [category.to_dict() for category in profile.categories]
    if include_stats:
        payload["tasks"] = [task.to_dict() for task in profile.tasks]
        payload["taskStats"] = get_task_stats(profile.id)
    return payload
