""" Represents a user in the system.

A User owns multiple Profiles (see Profile)
Deleting a User deletes all its Profiles, and through them every Category and Task

"""
from datetime import datetime

from database import db, generate_id, isoformat


class User(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    profiles = db.relationship(
        "Profile",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Profile.created_at",
    )

    def to_dict(self, include_profiles: bool = False):
        payload = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_profiles:
            payload["profiles"] = [profile.to_dict() for profile in self.profiles]
        return payload

    def __repr__(self):
        return f"<User {self.email}>"
