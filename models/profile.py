"""Profile is the container of Tasks and Categories.

A Profile is a named, colored context (Work, Personal, ...)
A User can define multiple Profiles
A Profile name is unique for its User, ignoring case
Deleting a Profile deletes all its Tasks and Categories

"""
from datetime import datetime

from database import db, generate_id, isoformat


class Profile(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(50), nullable=False)
    color = db.Column(db.String(7), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    user = db.relationship("User", back_populates="profiles")
    tasks = db.relationship(
        "Task",
        back_populates="profile",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="Task.sort_order",
    )
    categories = db.relationship(
        "Category",
        back_populates="profile",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Category.name",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "color": self.color,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Profile {self.name}>"
