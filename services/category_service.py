"""Category persistence helpers."""
from __future__ import annotations

from typing import Any

from database import db
from models.category import Category
from models.profile import Profile
from services.errors import NotFoundError


def get_category(category_id: str) -> Category | None:
    return db.session.get(Category, category_id)


def get_profile_categories(profile_id: str) -> list[Category]:
    return Category.query.filter_by(profile_id=profile_id).order_by(Category.name.asc()).all()


def create_category(profile_id: str, name: str, color: str | None = None) -> Category:
    if db.session.get(Profile, profile_id) is None:
        raise NotFoundError("Profile not found")
    category = Category(profile_id=profile_id, name=name.strip(), color=color)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category: Category, changes: dict[str, Any]) -> Category:
    if changes.get("name") is not None:
        category.name = changes["name"].strip()
    if changes.get("color") is not None:
        category.color = changes["color"]
    db.session.commit()
    return category


def delete_category(category: Category) -> int:
    """Delete a category and detach its tasks. Returns the number of detached tasks."""
    detached = len(category.tasks)
    for task in list(category.tasks):
        task.category = None
    db.session.delete(category)
    db.session.commit()
    return detached
