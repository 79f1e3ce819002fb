"""User persistence helpers."""
from __future__ import annotations

from typing import Any

from database import db
from models.user import User
from services.errors import ConflictError


def get_user(user_id: str) -> User | None:
    return db.session.get(User, user_id)


def list_users() -> list[User]:
    return User.query.order_by(User.created_at.asc()).all()


def _email_taken(email: str, exclude_id: str | None = None) -> bool:
    query = User.query.filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def create_user(email: str, name: str | None = None) -> User:
    email = email.strip().lower()
    if _email_taken(email):
        raise ConflictError("A user with this email already exists", field="email")
    user = User(email=email, name=name)
    db.session.add(user)
    db.session.commit()
    return user


def update_user(user: User, changes: dict[str, Any]) -> User:
    if changes.get("email") is not None:
        email = changes["email"].strip().lower()
        if _email_taken(email, exclude_id=user.id):
            raise ConflictError("A user with this email already exists", field="email")
        user.email = email
    if changes.get("name") is not None:
        user.name = changes["name"]
    db.session.commit()
    return user


def delete_user(user: User) -> None:
    db.session.delete(user)
    db.session.commit()
