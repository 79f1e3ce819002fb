"""A task represents an objective that needs to be completed

A Task belongs to exactly one Profile
A Task can be labelled with at most one Category of the same Profile
A Task has a status (PENDING, IN_PROGRESS, COMPLETED) and a priority
A Task has a manual sort order, only meaningful among the Tasks sharing
its Profile and status (see PartitionKey)
Changing the status of a Task never renumbers sort orders
Deleting a Task leaves gaps in the sort order of its siblings

"""
from __future__ import annotations
from datetime import datetime
from typing import Optional

import bleach
from database import db, generate_id, isoformat
from markdown import markdown as render_markdown
from markupsafe import Markup

from .partition import PartitionKey, TaskPriority, TaskStatus


def render_task_description_html(description: Optional[str]) -> Markup:
    """Render task description Markdown into sanitized HTML."""
    if not description:
        return Markup("")
    html = render_markdown(
        description,
        extensions=["extra", "sane_lists"],
        output_format="html5",
        tab_length=2,
    )
    allowed_tags = list(bleach.sanitizer.ALLOWED_TAGS) + [
        "p",
        "pre",
        "code",
        "ul",
        "ol",
        "li",
        "table",
        "thead",
        "tbody",
        "tr",
        "th",
        "td",
        "strong",
        "em",
        "blockquote",
        "br",
        "hr",
    ]
    allowed_attributes = {
        **bleach.sanitizer.ALLOWED_ATTRIBUTES,
        "a": ["href", "title", "target", "rel"],
    }
    sanitized_html = bleach.clean(html, tags=allowed_tags, attributes=allowed_attributes)
    return Markup(sanitized_html)


class Task(db.Model):
    __table_args__ = (
        db.Index("ix_task_partition_sort_order", "profile_id", "status", "sort_order"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    profile_id = db.Column(
        db.String(36),
        db.ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id = db.Column(
        db.String(36),
        db.ForeignKey("category.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=TaskStatus.PENDING.value)
    priority = db.Column(db.String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    due_date = db.Column(db.DateTime, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    profile = db.relationship("Profile", back_populates="tasks")
    category = db.relationship("Category", back_populates="tasks", lazy="joined")

    @property
    def status_enum(self) -> TaskStatus:
        return TaskStatus(self.status)

    @property
    def priority_enum(self) -> TaskPriority:
        return TaskPriority(self.priority)

    @property
    def partition(self) -> PartitionKey:
        return PartitionKey.of(self)

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None or self.status_enum == TaskStatus.COMPLETED:
            return False
        return self.due_date < datetime.utcnow()

    @property
    def description_html(self):
        return render_task_description_html(self.description)

    def to_dict(self):
        return {
            "id": self.id,
            "profileId": self.profile_id,
            "categoryId": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "title": self.title,
            "description": self.description,
            "descriptionHtml": str(self.description_html),
            "status": self.status,
            "priority": self.priority,
            "dueDate": isoformat(self.due_date),
            "sortOrder": self.sort_order,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Task {self.title}>"
