from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

import requests
from django.test import SimpleTestCase

from marketplace.calendar_utils import (
    CalendarEvent,
    duration_minutes,
    format_recording_details,
    generate_ics,
    slot_end,
    slot_start,
    time_until_recording,
)
from marketplace.contracts import ContractData, generate_contract_pdf, generate_guest_release_pdf
from marketplace.emails import deliver
from marketplace.errors import MailgunError
from marketplace.mailgun_client import mailgun_service
from marketplace.rss import fetch_episodes, validate_rss_feed
from marketplace.utils import to_number

from .base import APITestCase

UTC = dt_timezone.utc

FEED = b"""<?xml version="1.0"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Deep Dive</title>
    <image><url>https://pod.example.com/cover.jpg</url></image>
    <item>
      <title>Episode 2</title>
      <description>Second one</description>
      <pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate>
      <link>https://pod.example.com/2</link>
      <enclosure url="https://pod.example.com/2.mp3" type="audio/mpeg" length="1"/>
      <itunes:duration>42:00</itunes:duration>
    </item>
    <item>
      <title>Episode 1</title>
      <link>https://pod.example.com/1</link>
    </item>
  </channel>
</rss>"""


class CalendarTests(SimpleTestCase):

    def event(self):
        return CalendarEvent(
            title="Podcast Recording: Deep Dive",
            description="Guest: Amy\nHost: Owner",
            location="https://zoom.us/j/1",
            start_time=datetime(2030, 5, 1, 14, 0, tzinfo=UTC),
            end_time=datetime(2030, 5, 1, 15, 0, tzinfo=UTC),
            organizer_email="noreply@uvocollab.com",
            attendee_emails=["amy@example.com", "owner@example.com"],
        )

    def test_ics_event(self):
        ics = generate_ics(self.event(), now=datetime(2030, 4, 1, tzinfo=UTC))
        lines = ics.split("\r\n")

        self.assertEqual(lines[0], "BEGIN:VCALENDAR")
        self.assertEqual(lines[-1], "END:VCALENDAR")
        self.assertIn("METHOD:REQUEST", lines)
        self.assertIn("DTSTART:20300501T140000Z", lines)
        self.assertIn("DTEND:20300501T150000Z", lines)
        self.assertIn("DTSTAMP:20300401T000000Z", lines)
        self.assertIn("DESCRIPTION:Guest: Amy\\nHost: Owner", lines)
        self.assertIn("ATTENDEE;ROLE=REQ-PARTICIPANT;RSVP=TRUE:mailto:owner@example.com", lines)
        self.assertIn("TRIGGER:-PT24H", lines)
        self.assertIn("TRIGGER:-PT1H", lines)

    def test_reminder_windows(self):
        now = datetime(2030, 5, 1, tzinfo=UTC)
        day_before = time_until_recording(now + timedelta(hours=23, minutes=30), now)
        self.assertTrue(day_before.send_24_hour)
        self.assertFalse(day_before.send_1_hour)

        hour_before = time_until_recording(now + timedelta(minutes=45), now)
        self.assertTrue(hour_before.send_1_hour)
        self.assertFalse(hour_before.send_24_hour)

        between = time_until_recording(now + timedelta(hours=5), now)
        self.assertFalse(between.send_24_hour or between.send_1_hour)
        self.assertTrue(time_until_recording(now - timedelta(minutes=1), now).is_past)

    def test_slot_times(self):
        slot = {"date": "2030-05-01", "time": "09:30", "timezone": "UTC", "duration": "90 minutes"}
        self.assertEqual(slot_start(slot), datetime(2030, 5, 1, 9, 30, tzinfo=UTC))
        self.assertEqual(slot_end(slot), datetime(2030, 5, 1, 11, 0, tzinfo=UTC))
        self.assertIsNone(slot_start({"time": "09:30"}))

    def test_duration_minutes(self):
        self.assertEqual(duration_minutes("45 minutes"), 45)
        self.assertEqual(duration_minutes(None), 60)
        self.assertEqual(duration_minutes("an hour"), 60)

    def test_recording_details(self):
        text = format_recording_details(
            {"date": "2030-05-01", "time": "14:00", "timezone": "UTC"},
            "https://zoom.us/j/1",
            "Bring notes",
        )
        self.assertIn("Time: 14:00 UTC", text)
        self.assertIn("Duration: 60 minutes", text)
        self.assertIn("Recording Link: https://zoom.us/j/1", text)
        self.assertIn("Preparation Notes:\nBring notes", text)


class ContractPDFTests(SimpleTestCase):

    def data(self, **overrides):
        values = dict(
            buyer_name="Artist & Co", buyer_email="artist@example.com",
            seller_name="Legend", seller_email="legend@example.com",
            service_description="16 bars <verse>", price=1000.0,
            collaboration_id="c1", created_date="May 1, 2030",
        )
        values.update(overrides)
        return ContractData(**values)

    def test_contract_pdf(self):
        pdf = generate_contract_pdf(self.data())
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_guest_release_pdf(self):
        pdf = generate_guest_release_pdf(self.data(type="podcast"))
        self.assertTrue(pdf.startswith(b"%PDF"))


class RSSTests(SimpleTestCase):

    def fetch(self, content=FEED, status=200):
        response = mock.Mock(content=content, status_code=status)
        if status >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
        return mock.patch("marketplace.rss.requests.get", return_value=response)

    def test_validate_feed(self):
        with self.fetch():
            result = validate_rss_feed("https://pod.example.com/feed.xml")
        self.assertEqual(result, {"isValid": True, "feedTitle": "Deep Dive", "itemCount": 2})

    def test_validate_rejects_bad_urls(self):
        self.assertEqual(validate_rss_feed("")["error"], "RSS feed URL is required")
        self.assertEqual(validate_rss_feed("pod.example.com")["error"], "Invalid URL format")
        self.assertEqual(
            validate_rss_feed("ftp://pod.example.com/feed")["error"],
            "RSS feed URL must use HTTP or HTTPS protocol",
        )

    def test_validate_unreachable_feed(self):
        with self.fetch(status=404):
            result = validate_rss_feed("https://pod.example.com/feed.xml")
        self.assertFalse(result["isValid"])
        self.assertIn("Unable to fetch RSS feed", result["error"])

    def test_episodes(self):
        with self.fetch():
            episodes = fetch_episodes("https://pod.example.com/feed.xml", limit=1)

        self.assertEqual(len(episodes), 1)
        episode = episodes[0]
        self.assertEqual(episode["title"], "Episode 2")
        self.assertEqual(episode["audioUrl"], "https://pod.example.com/2.mp3")
        self.assertEqual(episode["link"], "https://pod.example.com/2")
        self.assertEqual(episode["duration"], "42:00")


class HealthTests(APITestCase):

    def test_health(self):
        response = self.get("health")
        self.assertEqual(response.json(), {"status": "ok", "firestore": "connected"})
        self.assertEqual(self.post("health").status_code, 405)


class EmailDeliveryTests(SimpleTestCase):

    def test_deliver_sends_through_mailgun(self):
        with mock.patch.object(mailgun_service, "send_email", return_value=True) as send_email:
            self.assertTrue(deliver("amy@example.com", "Hello", "Hi Amy"))
        send_email.assert_called_once_with("amy@example.com", "Hello", "Hi Amy", None)

    def test_deliver_swallows_failures(self):
        with mock.patch.object(mailgun_service, "send_email", side_effect=MailgunError("rejected")), \
                self.assertLogs("marketplace", level="ERROR"):
            self.assertFalse(deliver("amy@example.com", "Hello", "Hi Amy"))

    def test_deliver_without_recipient(self):
        with mock.patch.object(mailgun_service, "send_email") as send_email:
            self.assertFalse(deliver(None, "Hello", "Hi"))
        send_email.assert_not_called()


class NumberTests(SimpleTestCase):

    def test_to_number(self):
        self.assertEqual(to_number("12.5"), 12.5)
        self.assertEqual(to_number(3), 3.0)
        self.assertIsNone(to_number(True))
        self.assertIsNone(to_number("abc"))

    def test_non_finite_values_are_rejected(self):
        for value in ("NaN", "nan", "inf", "-Infinity", float("inf"), float("nan")):
            self.assertIsNone(to_number(value), value)
