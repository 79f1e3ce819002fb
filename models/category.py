from datetime import datetime

from database import db, generate_id, isoformat


class Category(db.Model):
    """Optional grouping label on a task, scoped to a profile.

    Deleting a category detaches its tasks; the tasks themselves survive.
    """

    __tablename__ = "category"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    profile_id = db.Column(
        db.String(36),
        db.ForeignKey("profile.id", ondelete="CASCADE"),
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

    profile = db.relationship("Profile", back_populates="categories")
    # No delete cascade: the ORM nulls task.category_id when the category goes away.
    tasks = db.relationship(
        "Task",
        back_populates="category",
        lazy="select",
        order_by="Task.sort_order",
    )

    def to_dict(self, include_tasks: bool = False):
        payload = {
            "id": self.id,
            "profileId": self.profile_id,
            "name": self.name,
            "color": self.color,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "taskCount": len(self.tasks),
        }
        if include_tasks:
            payload["tasks"] = [task.to_dict() for task in self.tasks]
        return payload

    def __repr__(self):
        return f"<Category {self.name}>"
