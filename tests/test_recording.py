from unittest import mock

from marketplace.errors import FlutterwaveError
from marketplace.flutterwave_client import flutterwave_service

from .base import APITestCase

SLOT = {"date": "2030-05-01", "time": "14:00", "timezone": "UTC", "duration": "60 minutes"}


class RecordingTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True, flutterwaveAccountBank="044", flutterwaveAccountNumber="0690000031")
        self.login("owner")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})
        self.db.add("collaborations", "c1", {
            "type": "guest_appearance", "guestId": "amy", "buyerId": "owner", "podcastId": "p1",
            "status": "scheduled", "schedulingDetails": SLOT,
            "paymentDirection": "podcast_pays_guest", "price": 500,
        })

    def collab(self):
        return self.db.doc("collaborations", "c1")

    def test_link_detects_platform(self):
        response = self.put("collaboration/recording-link", {
            "collaborationId": "c1", "recordingUrl": "https://riverside.fm/studio/deep-dive",
            "prepNotes": "Bring headphones",
        }, uid="owner")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["platform"], "riverside")
        self.assertEqual(self.collab()["prepNotes"], "Bring headphones")
        self.assertEqual(self.sent_to(), ["amy@example.com"])
        notification = next(iter(self.db.docs("notifications").values()))
        self.assertEqual(notification["type"], "recording_link_added")

    def test_link_validation(self):
        body = {"collaborationId": "c1", "recordingUrl": "ftp://files"}
        self.assertEqual(self.put("collaboration/recording-link", body, uid="owner").json()["error"], "invalid_url")

        body["recordingUrl"] = "https://meet.example.com/x"
        self.assertEqual(self.put("collaboration/recording-link", body, uid="amy").status_code, 403)

        response = self.put("collaboration/recording-link", body, uid="owner")
        self.assertEqual(response.json()["platform"], "other")

    def test_complete_moves_to_post_production(self):
        response = self.post("collaboration/recording-complete", {
            "collaborationId": "c1", "recordingNotes": "Great chat",
        }, uid="owner")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.collab()["status"], "post_production")
        self.assertEqual(self.collab()["recordingNotes"], "Great chat")
        self.assertEqual(self.sent_to(), ["amy@example.com"])

        again = self.post("collaboration/recording-complete", {"collaborationId": "c1"}, uid="owner")
        self.assertEqual(again.json()["error"], "invalid_status")

    def test_not_a_guest_appearance(self):
        self.collab()["type"] = "podcast"
        response = self.post("collaboration/recording-complete", {"collaborationId": "c1"}, uid="owner")
        self.assertEqual(response.json()["error"], "not_a_guest_appearance")


class ReleaseEpisodeTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True, flutterwaveAccountBank="044", flutterwaveAccountNumber="0690000031",
                   previousAppearances=["https://old.example.com/ep1"])
        self.login("owner")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})
        self.db.add("collaborations", "c1", {
            "type": "guest_appearance", "guestId": "amy", "buyerId": "owner", "podcastId": "p1",
            "status": "post_production", "paymentDirection": "podcast_pays_guest",
            "price": 500, "legendAmount": 400, "escrowStatus": "held",
        })
        transfer = mock.patch.object(
            flutterwave_service, "initiate_transfer",
            return_value={"status": "success", "data": {"id": 42, "status": "NEW"}},
        )
        self.transfer = transfer.start()
        self.addCleanup(transfer.stop)

    def release(self, uid="owner", url="https://pod.example.com/ep7"):
        return self.post("collaboration/release-episode", {
            "collaborationId": "c1", "episodeUrl": url, "episodeTitle": "Episode 7",
        }, uid=uid)

    def test_release_pays_guest_and_records_appearance(self):
        response = self.release()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["paymentReleased"])
        self.assertIsNone(response.json()["paymentError"])
        self.assertEqual(self.transfer.call_args.args[:3], ("044", "0690000031", 400))

        collab = self.db.doc("collaborations", "c1")
        self.assertEqual(collab["status"], "completed")
        self.assertEqual(collab["escrowStatus"], "released")
        self.assertEqual(collab["payoutTransferId"], 42)
        self.assertEqual(collab["episodeUrl"], "https://pod.example.com/ep7")
        self.assertEqual(
            self.db.doc("users", "amy")["previousAppearances"],
            ["https://old.example.com/ep1", "https://pod.example.com/ep7"],
        )

    def test_transfer_failure_still_completes(self):
        self.transfer.side_effect = FlutterwaveError("Insufficient balance")
        response = self.release()

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["paymentReleased"])
        self.assertEqual(response.json()["paymentError"], "Insufficient balance")
        collab = self.db.doc("collaborations", "c1")
        self.assertEqual(collab["status"], "completed")
        self.assertEqual(collab["escrowStatus"], "held")
        self.assertEqual(collab["payoutError"]["message"], "Insufficient balance")

    def test_guest_without_bank_account(self):
        del self.db.doc("users", "amy")["flutterwaveAccountBank"]
        response = self.release()
        self.assertEqual(response.json()["paymentError"], "Guest bank account not configured")
        self.transfer.assert_not_called()

    def test_no_escrow_no_transfer(self):
        self.db.doc("collaborations", "c1")["escrowStatus"] = None
        response = self.release()
        self.assertFalse(response.json()["paymentReleased"])
        self.transfer.assert_not_called()

    def test_validation(self):
        self.assertEqual(self.release(url="not a url").json()["error"], "invalid_episode_url")
        self.assertEqual(self.release(uid="amy").status_code, 403)
        self.db.doc("collaborations", "c1")["status"] = "scheduled"
        self.assertEqual(self.release().json()["error"], "invalid_status")
