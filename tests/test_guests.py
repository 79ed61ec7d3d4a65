from datetime import timedelta

from django.utils import timezone

from .base import APITestCase


class GuestProfileTests(APITestCase):

    def test_create_profile_keeps_only_profile_fields(self):
        self.login("amy")
        response = self.post("guest/create-profile", {
            "guestBio": "Product designer", "guestTopics": ["design"], "role": "admin",
        }, uid="amy")

        self.assertEqual(response.status_code, 200)
        user = self.db.doc("users", "amy")
        self.assertTrue(user["isGuest"])
        self.assertEqual(user["guestTopics"], ["design"])
        self.assertNotIn("role", user)

    def test_update_requires_guest(self):
        self.login("amy")
        response = self.put("guest/update-profile", {"guestBio": "hi"}, uid="amy")
        self.assertEqual(response.status_code, 403)

    def test_enable_mode_twice(self):
        self.login("amy")
        self.assertEqual(self.post("guest/enable-guest-mode", {}, uid="amy").status_code, 200)
        response = self.post("guest/enable-guest-mode", {}, uid="amy")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "already_guest")

    def test_request_verification_once(self):
        self.login("amy", isGuest=True)
        first = self.post("guest/request-verification", {}, uid="amy")
        second = self.post("guest/request-verification", {}, uid="amy")

        self.assertEqual(first.status_code, 200)
        self.assertIsNotNone(self.db.doc("users", "amy")["guestVerificationRequestedAt"])
        self.assertEqual(second.json()["error"], "verification_already_requested")
        self.assertEqual(self.deliver.call_count, 1)


class GuestInviteTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("owner", displayName="Olga")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})

    def send_invite(self, **overrides):
        body = {"podcastId": "p1", "guestEmail": "new@guest.com", "guestName": "Nia"}
        body.update(overrides)
        return self.post("guest/send-invite", body, uid="owner")

    def test_send_invite(self):
        response = self.send_invite(offeredAmount=50)
        self.assertEqual(response.status_code, 200)

        invite = self.db.doc("guestInvites", response.json()["inviteId"])
        self.assertEqual(invite["status"], "sent")
        self.assertEqual(invite["podcastName"], "Deep Dive")
        self.assertEqual(len(invite["inviteToken"]), 64)
        self.assertEqual((invite["expiresAt"] - invite["sentAt"]).days, 30)
        self.assertEqual(self.sent_to(), ["new@guest.com"])

    def test_rejects_existing_user_and_duplicates(self):
        self.login("taken", email="taken@guest.com")
        response = self.send_invite(guestEmail="taken@guest.com")
        self.assertEqual(response.json()["error"], "user_exists")

        self.send_invite()
        response = self.send_invite()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invite_already_sent")

    def test_invalid_email(self):
        response = self.send_invite(guestEmail="not-an-email")
        self.assertEqual(response.json()["error"], "invalid_email")

    def test_only_owner_can_invite(self):
        self.login("stranger")
        response = self.post("guest/send-invite", {
            "podcastId": "p1", "guestEmail": "new@guest.com", "guestName": "Nia",
        }, uid="stranger")
        self.assertEqual(response.status_code, 403)

    def test_invite_lookup_and_accept(self):
        self.db.add("podcastGuestWishlists", "w1", {"podcastId": "p1", "status": "contacted"})
        invite_id = self.send_invite(wishlistEntryId="w1").json()["inviteId"]
        token = self.db.doc("guestInvites", invite_id)["inviteToken"]

        detail = self.get(f"guest/invite/{token}")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["invite"]["guestName"], "Nia")

        self.login("nia", email="new@guest.com")
        response = self.post("guest/accept-invite", {"token": token}, uid="nia")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.doc("guestInvites", invite_id)["status"], "accepted")
        self.assertTrue(self.db.doc("users", "nia")["isGuest"])
        entry = self.db.doc("podcastGuestWishlists", "w1")
        self.assertEqual(entry["guestId"], "nia")
        self.assertTrue(entry["isRegistered"])

        again = self.get(f"guest/invite/{token}")
        self.assertEqual(again.status_code, 410)

    def test_expired_invite(self):
        self.login("nia")
        self.db.add("guestInvites", "i1", {
            "inviteToken": "tok", "status": "sent", "expiresAt": timezone.now() - timedelta(days=1),
        })
        response = self.post("guest/accept-invite", {"token": "tok"}, uid="nia")
        self.assertEqual(response.status_code, 410)
        self.assertEqual(response.json()["error"], "invite_expired")
        self.assertEqual(self.db.doc("guestInvites", "i1")["status"], "expired")

    def test_unknown_invite(self):
        self.assertEqual(self.get("guest/invite/nothing").status_code, 404)


class GuestWishlistTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True)
        self.login("bob")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})

    def add(self, uid="amy", **overrides):
        body = {"podcastId": "p1", "offerAmount": 0, "topics": ["ai"], "message": "Let me on"}
        body.update(overrides)
        return self.post("guest/wishlist/add-podcast", body, uid=uid)

    def test_add_and_list(self):
        response = self.add()
        self.assertEqual(response.status_code, 201)
        listed = self.get("guest/wishlist", uid="amy").json()["wishlists"]
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]["podcastName"], "Deep Dive")
        self.assertEqual(listed[0]["status"], "pending")

    def test_zero_offer_is_not_missing(self):
        self.assertEqual(self.add(offerAmount=0).status_code, 201)

    def test_non_guest(self):
        self.assertEqual(self.add(uid="bob").status_code, 403)

    def test_duplicate(self):
        self.add()
        response = self.add()
        self.assertEqual(response.status_code, 409)

    def test_negative_offer(self):
        self.assertEqual(self.add(offerAmount=-5).json()["error"], "invalid_offer_amount")

    def test_update_and_remove_own_entry_only(self):
        wishlist_id = self.add().json()["wishlistId"]

        self.assertEqual(self.put("guest/wishlist/update", {"wishlistId": wishlist_id, "offerAmount": 25},
                                  uid="bob").status_code, 403)
        self.put("guest/wishlist/update", {"wishlistId": wishlist_id, "offerAmount": 25}, uid="amy")
        self.assertEqual(self.db.doc("guestWishlists", wishlist_id)["offerAmount"], 25)

        response = self.send("delete", "guest/wishlist/remove", {"wishlistId": wishlist_id}, uid="amy")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.db.doc("guestWishlists", wishlist_id))


class PodcastWishlistTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("owner")
        self.login("amy", isGuest=True)
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})

    def add(self, **overrides):
        body = {"podcastId": "p1", "guestName": "Amy", "budgetAmount": 100, "notes": "Great fit"}
        body.update(overrides)
        return self.post("podcasts/wishlist/add-guest", body, uid="owner")

    def test_add_registered_guest(self):
        response = self.add(isRegistered=True, guestId="amy")
        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.json()["invitationSent"])
        entry = self.db.doc("podcastGuestWishlists", response.json()["wishlistId"])
        self.assertEqual(entry["guestId"], "amy")
        self.assertTrue(entry["isRegistered"])

        duplicate = self.add(isRegistered=True, guestId="amy")
        self.assertEqual(duplicate.status_code, 409)

    def test_unregistered_guest_with_email_gets_invite(self):
        response = self.add(guestName="Nia", guestEmail="nia@new.com")
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()["invitationSent"])

        entry = self.db.doc("podcastGuestWishlists", response.json()["wishlistId"])
        self.assertEqual(entry["status"], "contacted")
        self.assertTrue(entry["inviteSent"])
        self.assertEqual(len(self.db.docs("guestInvites")), 1)

    def test_not_owner(self):
        self.login("bob")
        response = self.post("podcasts/wishlist/add-guest", {
            "podcastId": "p1", "guestName": "Amy", "budgetAmount": 1, "notes": "x",
        }, uid="bob")
        self.assertEqual(response.status_code, 403)

    def test_list_requires_podcast_id(self):
        self.assertEqual(self.get("podcasts/wishlist", uid="owner").status_code, 400)
        self.add(isRegistered=True, guestId="amy")
        listed = self.get("podcasts/wishlist", uid="owner", data={"podcastId": "p1"}).json()["wishlists"]
        self.assertEqual(len(listed), 1)
