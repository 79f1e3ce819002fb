import uuid

from app import app, db
from models.category import Category
from models.task import Task
from services.profile_service import PROFILE_NAME_CONFLICT
from tests.utils.app_case import AppTestCase


class ProfileRoutesTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        self.user_id = self.create_user()

    def test_create_and_list_profiles(self):
        response = self.client.post(
            "/api/profiles",
            json={"userId": self.user_id, "name": " Work ", "color": "#3B82F6"},
        )
        self.assertEqual(response.status_code, 201)
        data = response.get_json()["data"]
        self.assertEqual(data["name"], "Work")
        self.assertEqual(data["categories"], [])

        response = self.client.get(f"/api/profiles?userId={self.user_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([profile["name"] for profile in response.get_json()["data"]], ["Work"])

    def test_duplicate_name_conflicts_ignoring_case(self):
        self.create_profile(self.user_id, name="Work")

        response = self.client.post(
            "/api/profiles",
            json={"userId": self.user_id, "name": "WORK"},
        )
        self.assertEqual(response.status_code, 409)
        payload = response.get_json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["details"], {"name": PROFILE_NAME_CONFLICT})

        other_user = self.create_user(email="other@example.com")
        response = self.client.post(
            "/api/profiles",
            json={"userId": other_user, "name": "Work"},
        )
        self.assertEqual(response.status_code, 201)

    def test_rename_to_existing_name_conflicts(self):
        self.create_profile(self.user_id, name="Work")
        personal = self.create_profile(self.user_id, name="Personal")

        response = self.client.put(f"/api/profiles/{personal}", json={"name": "work"})
        self.assertEqual(response.status_code, 409)

        response = self.client.put(f"/api/profiles/{personal}", json={"name": "Personal", "color": "#10B981"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"]["color"], "#10B981")

    def test_profile_validation(self):
        response = self.client.post(
            "/api/profiles",
            json={"userId": self.user_id, "name": "x" * 51, "color": "blue"},
        )
        self.assertEqual(response.status_code, 400)
        details = response.get_json()["details"]
        self.assertEqual(details["name"], "Profile name must be 50 characters or less")
        self.assertEqual(details["color"], "Invalid hex color format")

        response = self.client.post("/api/profiles", json={"userId": self.user_id, "name": "   "})
        self.assertEqual(response.get_json()["details"]["name"], "Profile name is required")

        response = self.client.get("/api/profiles")
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/api/profiles",
            json={"userId": str(uuid.uuid4()), "name": "Ghost"},
        )
        self.assertEqual(response.status_code, 404)

    def test_detail_includes_task_stats(self):
        profile_id = self.create_profile(self.user_id)
        self.create_task(profile_id, "One", 0)
        self.create_task(profile_id, "Two", 1)
        self.create_task(profile_id, "Three", 0, status="IN_PROGRESS")
        self.create_task(profile_id, "Four", 0, status="COMPLETED")

        response = self.client.get(f"/api/profiles/{profile_id}")
        self.assertEqual(response.status_code, 200)
        data = response.get_json()["data"]
        self.assertEqual(
            data["taskStats"],
            {"total": 4, "pending": 2, "inProgress": 1, "completed": 1, "overdue": 0},
        )
        self.assertEqual(len(data["tasks"]), 4)

    def test_delete_profile_removes_tasks_and_categories(self):
        profile_id = self.create_profile(self.user_id)
        category_id = self.create_category(profile_id)
        task_id = self.create_task(profile_id, "Task", 0, category_id=category_id)

        response = self.client.delete(f"/api/profiles/{profile_id}")
        self.assertEqual(response.status_code, 200)

        with app.app_context():
            self.assertIsNone(db.session.get(Task, task_id))
            self.assertIsNone(db.session.get(Category, category_id))

        response = self.client.get(f"/api/profiles/{profile_id}")
        self.assertEqual(response.status_code, 404)
