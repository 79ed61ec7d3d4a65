from datetime import timedelta

from django.utils import timezone

from marketplace.notifications import create_notification, notification_content

from .base import APITestCase


class NotificationContentTests(APITestCase):

    def test_templates_fill_context(self):
        content = notification_content("match_found", name="Deep Dive")
        self.assertEqual(content["title"], "New Match!")
        self.assertIn("matched with Deep Dive", content["message"])
        self.assertEqual(content["actionText"], "View Match")

    def test_missing_context_and_unknown_type(self):
        self.assertIn("matched with !", notification_content("match_found")["message"])
        self.assertEqual(notification_content("something_else")["title"], "New Notification")

    def test_create_notification(self):
        notification_id = create_notification("amy", "payment_received", {"amount": "50.00"},
                                              metadata={"collaborationId": "c1"})
        stored = self.db.doc("notifications", notification_id)
        self.assertEqual(stored["userId"], "amy")
        self.assertFalse(stored["read"])
        self.assertEqual(stored["message"], "Payment of $50.00 has been received and held in escrow.")
        self.assertIsNone(create_notification(None, "payment_received"))


class NotificationViewTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy")
        self.login("bob")
        now = timezone.now()
        self.db.add("notifications", "n1", {"userId": "amy", "title": "Old", "read": True,
                                            "createdAt": now - timedelta(days=2)})
        self.db.add("notifications", "n2", {"userId": "amy", "title": "New", "read": False,
                                            "createdAt": now - timedelta(hours=1)})
        self.db.add("notifications", "n3", {"userId": "amy", "title": "Expired", "read": False,
                                            "createdAt": now, "expiresAt": now - timedelta(minutes=5)})
        self.db.add("notifications", "n4", {"userId": "bob", "title": "Bob's", "read": False,
                                            "createdAt": now})

    def titles(self, response):
        return [item["title"] for item in response.json()["notifications"]]

    def test_list(self):
        self.assertEqual(self.titles(self.get("notifications", uid="amy")), ["New", "Old"])
        self.assertEqual(self.titles(self.get("notifications", uid="amy", data={"unreadOnly": "true"})), ["New"])
        self.assertEqual(self.titles(self.get("notifications", uid="amy", data={"limit": "2"})), ["New"])

    def test_invalid_limit(self):
        response = self.get("notifications", uid="amy", data={"limit": "many"})
        self.assertEqual(response.json()["error"], "invalid_limit")

    def test_requires_auth(self):
        self.assertEqual(self.get("notifications").status_code, 401)

    def test_create(self):
        response = self.post("notifications", {
            "type": "system", "title": "Hi", "message": "Welcome aboard", "actionUrl": "/dashboard",
            "expiresAt": "2099-01-01T00:00:00Z",
        }, uid="amy")

        self.assertEqual(response.status_code, 201)
        stored = self.db.doc("notifications", response.json()["notificationId"])
        self.assertEqual(stored["userId"], "amy")
        self.assertEqual(stored["actionUrl"], "/dashboard")
        self.assertEqual(stored["expiresAt"].year, 2099)

    def test_create_validation(self):
        self.assertEqual(self.post("notifications", {"type": "system"}, uid="amy").json()["error"], "missing_fields")
        response = self.post("notifications", {
            "type": "system", "title": "Hi", "message": "x", "expiresAt": "someday",
        }, uid="amy")
        self.assertEqual(response.json()["error"], "invalid_expires_at")

    def test_mark_read_only_touches_own(self):
        response = self.send("patch", "notifications", {"notificationIds": ["n2", "n4", "missing"]}, uid="amy")

        self.assertEqual(response.json(), {"success": True, "updatedCount": 1})
        self.assertTrue(self.db.doc("notifications", "n2")["read"])
        self.assertFalse(self.db.doc("notifications", "n4")["read"])

    def test_mark_read_needs_ids(self):
        response = self.send("patch", "notifications", {"notificationIds": []}, uid="amy")
        self.assertEqual(response.json()["error"], "notification_ids_required")

    def test_mark_all_read(self):
        response = self.send("delete", "notifications", uid="amy")

        self.assertEqual(response.json()["updatedCount"], 2)
        self.assertTrue(self.db.doc("notifications", "n3")["read"])
        self.assertFalse(self.db.doc("notifications", "n4")["read"])

    def test_mark_read_skips_ids_that_are_not_strings(self):
        response = self.send("patch", "notifications", {"notificationIds": [123, None, {"id": "n4"}, "n2"]}, uid="amy")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "updatedCount": 1})
        self.assertTrue(self.db.doc("notifications", "n2")["read"])

        response = self.send("patch", "notifications", {"notificationIds": [1, 2]}, uid="amy")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "notification_ids_required")

    def test_mark_all_read_commits_in_chunks(self):
        for index in range(600):
            self.db.add("notifications", f"bulk{index}", {"userId": "bob", "title": "Bulk", "read": False})

        response = self.send("delete", "notifications", uid="bob")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["updatedCount"], 601)
        self.assertEqual(self.db.commits, [500, 101])
        self.assertTrue(all(item["read"] for item in self.db.docs("notifications").values()
                            if item["userId"] == "bob"))
