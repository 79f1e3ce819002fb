"""Sample data for users opening the application for the first time."""
from __future__ import annotations

from datetime import datetime, timedelta

from models.partition import TaskPriority, TaskStatus
from services.category_service import create_category
from services.profile_service import create_profile
from services.task_service import create_task

SAMPLE_PROFILES = (
    {
        "name": "Work",
        "color": "#3B82F6",
        "categories": (("Meetings", "#8B5CF6"), ("Development", "#F59E0B")),
        "tasks": (
            ("Meetings", "Team standup meeting", "Daily standup with the development team",
             TaskStatus.PENDING, TaskPriority.MEDIUM, 2),
            ("Development", "Complete user authentication feature",
             "Implement OAuth login and user session management",
             TaskStatus.IN_PROGRESS, TaskPriority.HIGH, 5),
            ("Development", "Code review for PR #123",
             "Review and provide feedback on the new API endpoints",
             TaskStatus.PENDING, TaskPriority.MEDIUM, 1),
        ),
    },
    {
        "name": "Personal",
        "color": "#10B981",
        "categories": (("Health", "#EF4444"), ("Shopping", "#EC4899")),
        "tasks": (
            ("Health", "Schedule dentist appointment", "Annual cleaning and checkup",
             TaskStatus.PENDING, TaskPriority.LOW, 7),
            ("Shopping", "Buy groceries for the week", "Milk, bread, fruits, vegetables, and protein",
             TaskStatus.COMPLETED, TaskPriority.MEDIUM, -1),
        ),
    },
)


def create_sample_data(user_id: str, now: datetime | None = None) -> dict[str, list]:
    """Create the Work and Personal sample profiles with categories and tasks."""
    now = now or datetime.utcnow()
    created: dict[str, list] = {"profiles": [], "categories": [], "tasks": []}
    for sample in SAMPLE_PROFILES:
        profile = create_profile(user_id, sample["name"], sample["color"])
        created["profiles"].append(profile)

        categories = {}
        for name, color in sample["categories"]:
            category = create_category(profile.id, name, color)
            categories[name] = category
            created["categories"].append(category)

        for category_name, title, description, status, priority, due_in_days in sample["tasks"]:
            task = create_task(
                profile.id,
                title,
                description=description,
                status=status,
                priority=priority,
                due_date=now + timedelta(days=due_in_days),
                category_id=categories[category_name].id,
            )
            created["tasks"].append(task)
    return created
