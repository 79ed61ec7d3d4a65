from .base import APITestCase

SLOTS = [
    {"date": "2030-05-01", "time": "14:00", "timezone": "UTC"},
    {"date": "2030-05-02", "time": "09:30", "timezone": "UTC", "duration": "45 minutes"},
]


class ScheduleTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True)
        self.login("owner")
        self.login("stranger")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})
        self.db.add("collaborations", "c1", {
            "type": "guest_appearance", "guestId": "amy", "buyerId": "owner", "podcastId": "p1",
            "status": "scheduling",
        })

    def propose(self, uid="owner", slots=SLOTS):
        return self.post("collaboration/schedule/propose", {"collaborationId": "c1", "slots": slots}, uid=uid)

    def respond(self, proposal_id, uid="amy", **body):
        body.update({"collaborationId": "c1", "proposalId": proposal_id})
        return self.post("collaboration/schedule/respond", body, uid=uid)

    def test_propose_supersedes_open_proposals(self):
        first = self.propose().json()["proposalId"]
        second = self.propose(uid="amy").json()["proposalId"]

        schedules = self.db.docs("collaborations/c1/schedules")
        self.assertEqual(schedules[first]["status"], "superseded")
        self.assertEqual(schedules[second]["status"], "proposed")
        self.assertEqual(schedules[second]["proposedByRole"], "guest")
        self.assertEqual(schedules[first]["slots"][0]["duration"], "60 minutes")
        self.assertEqual(self.sent_to(), ["amy@example.com", "owner@example.com"])

        listed = self.get("collaboration/schedule/propose", uid="amy", data={"collaborationId": "c1"})
        self.assertEqual(len(listed.json()["schedules"]), 2)

    def test_owner_schedules_appearance_the_guest_paid_for(self):
        self.db.doc("collaborations", "c1")["buyerId"] = "amy"
        response = self.propose(uid="owner")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.docs("collaborations/c1/schedules")[response.json()["proposalId"]]["proposedByRole"],
                         "podcast")
        self.assertEqual(self.propose(uid="stranger").status_code, 403)

    def test_propose_validation(self):
        self.assertEqual(self.propose(slots=[{"date": "2030-05-01"}]).json()["error"], "invalid_slot")
        self.assertEqual(self.propose(uid="stranger").status_code, 403)
        self.db.doc("collaborations", "c1")["status"] = "completed"
        self.assertEqual(self.propose().json()["error"], "invalid_status")

    def test_accept_proposal(self):
        proposal_id = self.propose().json()["proposalId"]

        self.assertEqual(
            self.respond(proposal_id, uid="owner", action="accept", acceptedSlotIndex=0).json()["error"],
            "cannot_respond_to_own_proposal",
        )
        self.assertEqual(
            self.respond(proposal_id, action="accept", acceptedSlotIndex=5).json()["error"],
            "invalid_slot_index",
        )

        response = self.respond(proposal_id, action="accept", acceptedSlotIndex=1)
        self.assertEqual(response.status_code, 200)
        collab = self.db.doc("collaborations", "c1")
        self.assertEqual(collab["status"], "scheduled")
        self.assertEqual(collab["schedulingDetails"]["time"], "09:30")
        self.assertEqual(self.db.doc("collaborations/c1/schedules", proposal_id)["status"], "accepted")

        notification = next(iter(self.db.docs("notifications").values()))
        self.assertEqual(notification["userId"], "owner")
        self.assertEqual(notification["type"], "recording_scheduled")

        again = self.respond(proposal_id, action="decline")
        self.assertEqual(again.json()["error"], "proposal_already_answered")

    def test_decline_proposal(self):
        proposal_id = self.propose().json()["proposalId"]
        response = self.respond(proposal_id, action="decline", declineReason="Travelling")
        self.assertEqual(response.status_code, 200)
        proposal = self.db.doc("collaborations/c1/schedules", proposal_id)
        self.assertEqual(proposal["status"], "declined")
        self.assertEqual(self.db.doc("collaborations", "c1")["status"], "scheduling")


class RescheduleTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True)
        self.login("owner")
        self.db.add("collaborations", "c1", {
            "type": "guest_appearance", "guestId": "amy", "buyerId": "owner", "podcastId": "p1",
            "status": "scheduled", "schedulingDetails": SLOTS[0],
        })

    def request(self, uid="amy"):
        return self.post("collaboration/schedule/reschedule", {
            "collaborationId": "c1", "reason": "Sick", "proposedSlots": [SLOTS[1]],
        }, uid=uid)

    def answer(self, reschedule_id, uid="owner", **body):
        body.update({"collaborationId": "c1", "rescheduleId": reschedule_id})
        return self.put("collaboration/schedule/reschedule", body, uid=uid)

    def test_request_and_accept(self):
        reschedule_id = self.request().json()["rescheduleId"]
        self.assertEqual(self.sent_to(), ["owner@example.com"])

        response = self.answer(reschedule_id, action="accept", acceptedSlotIndex=0)
        self.assertEqual(response.status_code, 200)
        collab = self.db.doc("collaborations", "c1")
        self.assertEqual(collab["rescheduleCount"], 1)
        self.assertEqual(collab["schedulingDetails"]["time"], "09:30")
        self.assertEqual(self.db.doc("collaborations/c1/reschedules", reschedule_id)["status"], "accepted")

        listed = self.get("collaboration/schedule/reschedule", uid="owner", data={"collaborationId": "c1"})
        self.assertEqual(len(listed.json()["reschedules"]), 1)

    def test_requester_cannot_answer(self):
        reschedule_id = self.request().json()["rescheduleId"]
        response = self.answer(reschedule_id, uid="amy", action="decline")
        self.assertEqual(response.json()["error"], "cannot_respond_to_own_request")

    def test_limit(self):
        self.db.doc("collaborations", "c1")["rescheduleCount"] = 2
        response = self.request()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "reschedule_limit_reached", "maxReschedules": 2})

    def test_limit_checked_again_on_accept(self):
        self.db.doc("collaborations", "c1")["rescheduleCount"] = 1
        first = self.request().json()["rescheduleId"]
        second = self.request().json()["rescheduleId"]

        self.assertEqual(self.answer(first, action="accept", acceptedSlotIndex=0).status_code, 200)
        response = self.answer(second, action="accept", acceptedSlotIndex=0)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "reschedule_limit_reached", "maxReschedules": 2})
        self.assertEqual(self.db.doc("collaborations", "c1")["rescheduleCount"], 2)
        self.assertEqual(self.db.doc("collaborations/c1/reschedules", second)["status"], "pending")

    def test_accept_needs_scheduled_collaboration(self):
        reschedule_id = self.request().json()["rescheduleId"]
        self.db.doc("collaborations", "c1")["status"] = "completed"
        response = self.answer(reschedule_id, action="accept", acceptedSlotIndex=0)
        self.assertEqual(response.json()["error"], "not_scheduled")
        self.assertNotIn("rescheduleCount", self.db.doc("collaborations", "c1"))

    def test_zero_reschedules_allowed(self):
        self.db.doc("collaborations", "c1")["maxReschedules"] = 0
        response = self.request()
        self.assertEqual(response.json(), {"error": "reschedule_limit_reached", "maxReschedules": 0})

    def test_only_scheduled(self):
        self.db.doc("collaborations", "c1")["status"] = "scheduling"
        self.assertEqual(self.request().json()["error"], "not_scheduled")


class CalendarInviteTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.login("amy", isGuest=True)
        self.login("owner")
        self.db.add("podcasts", "p1", {"ownerId": "owner", "title": "Deep Dive"})
        self.db.add("collaborations", "c1", {
            "type": "guest_appearance", "guestId": "amy", "buyerId": "owner", "podcastId": "p1",
            "status": "scheduled", "schedulingDetails": SLOTS[0],
            "recordingUrl": "https://riverside.fm/studio/deep",
        })

    def test_sends_ics_and_queues_reminder(self):
        response = self.post("collaboration/calendar-invite", {"collaborationId": "c1"}, uid="amy")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.sent_to(), ["amy@example.com", "owner@example.com"])

        [reminder] = self.db.docs("reminders").values()
        self.assertEqual(reminder["collaborationId"], "c1")
        self.assertEqual(reminder["recordingDate"].isoformat(), "2030-05-01T14:00:00+00:00")
        self.assertFalse(reminder["reminder24hSent"])

    def test_not_scheduled(self):
        self.db.doc("collaborations", "c1")["status"] = "scheduling"
        response = self.post("collaboration/calendar-invite", {"collaborationId": "c1"}, uid="amy")
        self.assertEqual(response.json()["error"], "not_scheduled")
