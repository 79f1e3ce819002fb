from app import app
from models.profile import Profile
from models.task import Task
from tests.utils.app_case import AppTestCase


class UserRoutesTestCase(AppTestCase):
    def test_create_user_normalizes_email(self):
        response = self.client.post(
            "/api/users",
            json={"email": "Ada@Example.com", "name": "Ada"},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["data"]["email"], "ada@example.com")

        response = self.client.post("/api/users", json={"email": "ada@example.com"})
        self.assertEqual(response.status_code, 409)
        self.assertIn("email", response.get_json()["details"])

    def test_invalid_email_is_rejected(self):
        response = self.client.post("/api/users", json={"email": "not-an-email"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("email", response.get_json()["details"])

    def test_get_update_and_delete_user(self):
        user_id = self.create_user()

        response = self.client.get(f"/api/users/{user_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"]["profiles"], [])

        response = self.client.put(f"/api/users/{user_id}", json={"name": "Renamed"})
        self.assertEqual(response.get_json()["data"]["name"], "Renamed")

        response = self.client.delete(f"/api/users/{user_id}")
        self.assertEqual(response.status_code, 200)
        response = self.client.get(f"/api/users/{user_id}")
        self.assertEqual(response.status_code, 404)

    def test_onboarding_creates_sample_data_once(self):
        user_id = self.create_user()

        response = self.client.post(f"/api/users/{user_id}/onboard")
        self.assertEqual(response.status_code, 201)
        data = response.get_json()["data"]
        self.assertEqual([profile["name"] for profile in data["profiles"]], ["Work", "Personal"])
        self.assertEqual(data["taskCount"], 5)

        with app.app_context():
            work = Profile.query.filter_by(user_id=user_id, name="Work").one()
            pending = (
                Task.query.filter_by(profile_id=work.id, status="PENDING")
                .order_by(Task.sort_order)
                .all()
            )
            self.assertEqual([task.sort_order for task in pending], [0, 1])
            self.assertEqual(len(work.categories), 2)

        response = self.client.post(f"/api/users/{user_id}/onboard")
        self.assertEqual(response.status_code, 409)
