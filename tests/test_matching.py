from django.test import SimpleTestCase

from marketplace.matching import budget_score, compatibility, guest_popularity, match_score, reasons

from .base import APITestCase


class ScoringTests(SimpleTestCase):

    def test_match_score(self):
        result = match_score(
            {"topics": ["AI", "Design"], "offerAmount": 0},
            {"preferredTopics": ["ai", "music"], "budgetAmount": 0},
            guest_verified=True,
        )
        self.assertEqual(result.topic_overlap, ["AI"])
        # differently spelled topics count separately in the total
        self.assertEqual(result.total_topics, 4)
        self.assertEqual(result.score, 70)
        self.assertEqual(result.budget_alignment, "perfect")

    def test_match_score_without_podcast_topics(self):
        result = match_score({"topics": ["ai"], "offerAmount": 10}, {"budgetAmount": 50}, guest_verified=False)
        self.assertEqual(result.topic_overlap, [])
        self.assertEqual(result.score, 30)
        self.assertEqual(result.budget_alignment, "negotiable")

    def test_match_score_is_capped(self):
        result = match_score(
            {"topics": ["ai"], "offerAmount": 0},
            {"preferredTopics": ["ai"], "budgetAmount": 0},
            guest_verified=True,
        )
        self.assertEqual(result.score, 100)

    def test_budget_score_bands(self):
        self.assertEqual(budget_score(0, 0), 100)
        self.assertEqual(budget_score(50, 0), 90)
        self.assertEqual(budget_score(0, 50), 20)
        self.assertEqual(budget_score(100, 110), 100)
        self.assertEqual(budget_score(100, 130), 60)
        self.assertEqual(budget_score(100, 300), 40)
        self.assertEqual(budget_score(100, 1000), 20)

    def test_compatibility(self):
        result = compatibility(["ai"], ["AI", "music"], 0, 0)
        self.assertEqual(result.topic_score, 50)
        self.assertEqual(result.score, 65)
        self.assertEqual(result.topic_matches, ["ai"])
        self.assertTrue(result.budget_match)

    def test_guest_popularity(self):
        self.assertEqual(guest_popularity({}), 30)
        self.assertEqual(guest_popularity({"isVerifiedGuest": True, "previousAppearances": [1] * 6}), 100)

    def test_reasons(self):
        self.assertEqual(
            reasons(["a", "b", "c", "d"], True, False, True),
            ["Shared interests: a, b, c", "Budget/rate alignment", "Recently active on platform"],
        )


class CheckMatchesTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True, isVerifiedGuest=True)
        self.login("owner")
        self.login("admin", role="admin")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})
        self.db.add("guestWishlists", "g1", {
            "guestId": "amy", "podcastId": "p1", "status": "pending", "topics": ["AI"], "offerAmount": 0,
        })
        self.db.add("podcastGuestWishlists", "w1", {
            "guestId": "amy", "podcastId": "p1", "status": "pending", "isRegistered": True,
            "preferredTopics": ["ai", "music"], "budgetAmount": 0,
        })

    def run_cron(self):
        return self.client.post("/api/matching/check-matches", HTTP_AUTHORIZATION="Bearer cron-secret")

    def test_requires_admin_or_cron(self):
        self.assertEqual(self.post("matching/check-matches", uid="owner").status_code, 403)
        self.assertEqual(
            self.client.post("/api/matching/check-matches", HTTP_AUTHORIZATION="Bearer wrong").status_code,
            401,
        )

    def test_creates_mutual_match(self):
        response = self.run_cron()
        self.assertEqual(response.status_code, 200)
        match_ids = response.json()["matchIds"]
        self.assertEqual(len(match_ids), 1)

        match = self.db.doc("matches", match_ids[0])
        self.assertEqual(match["status"], "active")
        self.assertEqual(match["compatibilityScore"], 73)
        self.assertEqual(match["podcastOwnerId"], "owner")
        self.assertIn("notifiedAt", match)
        self.assertEqual(self.db.doc("guestWishlists", "g1")["status"], "matched")
        self.assertEqual(self.db.doc("podcastGuestWishlists", "w1")["status"], "matched")
        self.assertCountEqual(self.sent_to(), ["amy@example.com", "owner@example.com"])

        notified = {n["userId"] for n in self.db.docs("notifications").values()}
        self.assertEqual(notified, {"amy", "owner"})

        self.assertEqual(self.run_cron().json()["matchIds"], [])

    def test_admin_run_and_statistics(self):
        self.assertEqual(self.post("matching/check-matches", uid="admin").status_code, 200)
        stats = self.get("matching/check-matches", uid="admin").json()["statistics"]
        self.assertEqual(stats["totalMatches"], 1)
        self.assertEqual(stats["activeMatches"], 1)
        self.assertEqual(stats["pendingGuestWishlists"], 0)

    def test_unregistered_podcast_wishlist_is_skipped(self):
        self.db.doc("podcastGuestWishlists", "w1")["isRegistered"] = False
        self.assertEqual(self.run_cron().json()["matchIds"], [])


class MyMatchesTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True)
        self.login("owner")
        self.db.add("matches", "m1", {
            "guestId": "amy", "podcastOwnerId": "owner", "status": "active", "matchedAt": 1,
        })
        self.db.add("matches", "m2", {
            "guestId": "amy", "podcastOwnerId": "owner", "status": "dismissed_by_guest", "matchedAt": 2,
        })

    def test_lists_open_matches_and_stamps_view(self):
        response = self.get("matching/my-matches", uid="amy")
        body = response.json()
        self.assertEqual(body["userType"], "guest")
        self.assertEqual([m["id"] for m in body["matches"]], ["m1"])
        self.assertIn("guestViewedAt", self.db.doc("matches", "m1"))

    def test_owner_sees_podcast_side(self):
        body = self.get("matching/my-matches", uid="owner").json()
        self.assertEqual(body["userType"], "podcast")
        self.assertEqual(len(body["matches"]), 1)
        self.assertIn("podcastViewedAt", self.db.doc("matches", "m1"))

    def test_dismiss(self):
        response = self.post("matching/dismiss-match", {"matchId": "m1", "dismissedBy": "guest"}, uid="amy")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.doc("matches", "m1")["status"], "dismissed_by_guest")

    def test_dismiss_someone_elses_match(self):
        response = self.post("matching/dismiss-match", {"matchId": "m1", "dismissedBy": "podcast"}, uid="amy")
        self.assertEqual(response.status_code, 403)

    def test_requests_are_logged(self):
        with self.assertLogs("marketplace", level="INFO") as logs:
            self.get("matching/my-matches", uid="amy")
            self.post("matching/dismiss-match", {"matchId": "m1", "dismissedBy": "guest"}, uid="amy")
            self.get("matching/recommendations", uid="amy")

        for tag in ("[MATCHING/MINE] GET", "[MATCHING/DISMISS] POST", "[MATCHING/RECOMMENDATIONS] GET"):
            self.assertTrue(any(tag in line for line in logs.output), tag)

    def test_dismiss_validation(self):
        response = self.post("matching/dismiss-match", {"matchId": "m1", "dismissedBy": "me"}, uid="amy")
        self.assertEqual(response.json()["error"], "invalid_dismissed_by")
        response = self.post("matching/dismiss-match", {"matchId": "nope", "dismissedBy": "guest"}, uid="amy")
        self.assertEqual(response.status_code, 404)


class RecommendationTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True, guestTopics=["ai"], guestRate=0)
        self.login("owner", hasPodcast=True)
        self.login("nobody")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "AI Weekly", "categories": ["AI"]})
        self.db.add("podcasts", "p2", {"ownerId": "owner", "title": "Cooking", "categories": ["food"]})
        self.db.add("podcasts", "p3", {"ownerId": "owner", "title": "Wishlisted", "categories": ["AI"]})
        self.db.add("guestWishlists", "g1", {"guestId": "amy", "podcastId": "p3"})

    def test_guest_recommendations(self):
        body = self.get("matching/recommendations", uid="amy").json()
        ids = [r["recommendedId"] for r in body["recommendations"]]
        self.assertEqual(ids, ["p1", "p2"])
        self.assertEqual(body["recommendations"][0]["compatibilityScore"], 85)
        self.assertEqual(body["userType"], "guest")

    def test_podcast_recommendations(self):
        body = self.get("matching/recommendations", uid="owner").json()
        self.assertEqual([r["recommendedId"] for r in body["recommendations"]], ["amy"])
        self.assertEqual(body["userType"], "podcast")

    def test_neither(self):
        response = self.get("matching/recommendations", uid="nobody")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "not_guest_or_podcaster")
