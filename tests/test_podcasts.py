from unittest import mock

from marketplace.errors import RSSError

from .base import APITestCase


class PodcastSubmitTests(APITestCase):

    def test_requires_token(self):
        response = self.post("podcasts/submit", {"title": "Show"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "unauthorized")

    def test_rejects_unknown_token(self):
        response = self.client.post(
            "/api/podcasts/submit", data="{}", content_type="application/json",
            HTTP_AUTHORIZATION="Bearer nope",
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "invalid_token")

    def test_missing_fields(self):
        self.login("owner")
        response = self.post("podcasts/submit", {"title": "Show", "categories": []}, uid="owner")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["missing"], ["rssFeedUrl", "categories"])

    def test_creates_approved_podcast_and_flags_owner(self):
        self.login("owner")
        response = self.post("podcasts/submit", {
            "title": "  Deep Dive  ",
            "rssFeedUrl": "https://feeds.example.com/deep.xml",
            "categories": ["Tech"],
        }, uid="owner")

        self.assertEqual(response.status_code, 201)
        podcast_id = response.json()["podcastId"]
        podcast = self.db.doc("podcasts", podcast_id)
        self.assertEqual(podcast["ownerId"], "owner")
        self.assertEqual(podcast["title"], "Deep Dive")
        self.assertEqual(podcast["status"], "approved")
        self.assertTrue(self.db.doc("users", "owner")["hasPodcast"])
        self.assertEqual(self.deliver.call_count, 1)

    def test_wrong_method(self):
        self.login("owner")
        response = self.get("podcasts/submit", uid="owner")
        self.assertEqual(response.status_code, 405)

    def test_validate_rss(self):
        result = {"isValid": True, "feedTitle": "Deep Dive", "itemCount": 12}
        with mock.patch("marketplace.views.podcasts.validate_rss_feed", return_value=result) as validate:
            response = self.post("podcasts/validate-rss", {"url": "https://pod.example.com/feed.xml"})
        self.assertEqual(response.json(), result)
        validate.assert_called_once_with("https://pod.example.com/feed.xml")


class PodcastDetailTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("owner")
        self.login("listener")
        self.db.add("podcasts", "p1", {
            "ownerId": "owner", "title": "Deep Dive", "rssFeedUrl": "https://feeds.example.com/d.xml",
        })

    def test_detail(self):
        response = self.get("podcasts/p1", uid="listener")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["podcast"]["title"], "Deep Dive")

    def test_detail_not_found(self):
        response = self.get("podcasts/missing", uid="listener")
        self.assertEqual(response.status_code, 404)

    @mock.patch("marketplace.views.podcasts.fetch_episodes")
    def test_episodes(self, fetch_episodes):
        fetch_episodes.return_value = [{"title": "Ep 1"}]
        response = self.get("podcasts/p1/episodes")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["episodes"], [{"title": "Ep 1"}])
        fetch_episodes.assert_called_once_with("https://feeds.example.com/d.xml")

    @mock.patch("marketplace.views.podcasts.fetch_episodes")
    def test_episodes_feed_failure(self, fetch_episodes):
        fetch_episodes.side_effect = RSSError("Failed to parse RSS feed", details="bad xml")
        response = self.get("podcasts/p1/episodes")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "rss_parse_failed", "details": "bad xml"})

    def test_episodes_without_feed(self):
        self.db.add("podcasts", "p2", {"ownerId": "owner", "title": "No feed"})
        response = self.get("podcasts/p2/episodes")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "rss_feed_not_configured")

    def test_owner_cannot_claim(self):
        response = self.post("podcasts/p1/claim", {"evidence": "I host it", "email": "o@x.com"}, uid="owner")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "already_owner")

    def test_duplicate_pending_claim(self):
        body = {"evidence": "RSS email matches", "email": "l@x.com"}
        first = self.post("podcasts/p1/claim", body, uid="listener")
        second = self.post("podcasts/p1/claim", body, uid="listener")
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["error"], "claim_pending")
        self.assertEqual(len(self.db.docs("claims")), 1)

    def test_report_reason_must_be_known(self):
        response = self.post("podcasts/p1/report", {"reason": "boring", "description": "zzz"}, uid="listener")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_reason")

    def test_report(self):
        response = self.post("podcasts/p1/report", {"reason": "spam", "description": "ads"}, uid="listener")
        self.assertEqual(response.status_code, 200)
        report = self.db.doc("reports", response.json()["reportId"])
        self.assertEqual(report["status"], "pending")
        self.assertEqual(report["reportedBy"], "listener")


class MyPodcastsTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("owner")
        self.login("other")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})

    def test_list_own(self):
        response = self.get("podcasts/me", uid="owner")
        self.assertEqual([p["id"] for p in response.json()["podcasts"]], ["p1"])

    def test_update_only_whitelisted_fields(self):
        response = self.put("podcasts/me", {
            "podcastId": "p1", "title": "Deeper Dive", "ownerId": "other",
        }, uid="owner")
        self.assertEqual(response.status_code, 200)
        podcast = self.db.doc("podcasts", "p1")
        self.assertEqual(podcast["title"], "Deeper Dive")
        self.assertEqual(podcast["ownerId"], "owner")

    def test_update_by_non_owner(self):
        response = self.put("podcasts/me", {"podcastId": "p1", "title": "Mine now"}, uid="other")
        self.assertEqual(response.status_code, 403)


class PodcastServicesTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("owner")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})

    def test_requires_podcast(self):
        self.login("nobody")
        response = self.get("podcasts/services", uid="nobody")
        self.assertEqual(response.status_code, 404)

    def test_create_and_list(self):
        response = self.post("podcasts/services", {
            "type": "guest_spot", "title": "Guest spot", "description": "One hour", "price": 100,
            "duration": "60 minutes",
        }, uid="owner")
        self.assertEqual(response.status_code, 200)

        listed = self.get("podcasts/services", uid="owner").json()["services"]
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]["type"], "guest_spot")
        self.assertTrue(listed[0]["isActive"])

    def test_rejects_unknown_type(self):
        response = self.post("podcasts/services", {
            "type": "sponsorship", "title": "x", "description": "y", "price": 1, "duration": "5m",
        }, uid="owner")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_service_type")

    def test_deactivate_and_delete(self):
        self.db.add("podcasts/p1/services", "s1", {"title": "Ad read", "type": "ad_read", "isActive": True})

        response = self.put("podcasts/services/s1", {"isActive": False}, uid="owner")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self.db.doc("podcasts/p1/services", "s1")["isActive"])

        response = self.send("delete", "podcasts/services/s1", uid="owner")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.db.doc("podcasts/p1/services", "s1"))
