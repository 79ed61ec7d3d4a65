"""
Recording calendar helpers: ICS invites, reminder timing and slot formatting.
"""
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import List, Optional

from django.utils import timezone

from .constants import DEFAULT_SLOT_DURATION
from .utils import long_date, parse_when

PRODID = "-//UvoCollab//Podcast Recording//EN"
DURATION_RE = re.compile(r"(\d+)")
TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")


@dataclass
class CalendarEvent:
    title: str
    description: str
    location: str
    start_time: datetime
    end_time: datetime
    organizer_email: str
    attendee_emails: List[str] = field(default_factory=list)


@dataclass
class ReminderTiming:
    hours: float
    is_past: bool
    send_24_hour: bool
    send_1_hour: bool


def _ics_date(value: datetime) -> str:
    return value.astimezone(dt_timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _ics_escape(text: str) -> str:
    return (
        (text or "")
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def generate_ics(event: CalendarEvent, now: Optional[datetime] = None) -> str:
    """iCalendar REQUEST with 24 hour and 1 hour display alarms."""
    now = now or timezone.now()
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{uuid.uuid4().hex}@uvocollab.com",
        f"DTSTAMP:{_ics_date(now)}",
        f"DTSTART:{_ics_date(event.start_time)}",
        f"DTEND:{_ics_date(event.end_time)}",
        f"SUMMARY:{_ics_escape(event.title)}",
        f"DESCRIPTION:{_ics_escape(event.description)}",
        f"LOCATION:{_ics_escape(event.location)}",
        f"ORGANIZER:mailto:{event.organizer_email}",
    ]
    for email in event.attendee_emails:
        lines.append(f"ATTENDEE;ROLE=REQ-PARTICIPANT;RSVP=TRUE:mailto:{email}")
    lines += [
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "BEGIN:VALARM",
        "TRIGGER:-PT24H",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder: Podcast recording in 24 hours",
        "END:VALARM",
        "BEGIN:VALARM",
        "TRIGGER:-PT1H",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder: Podcast recording in 1 hour",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def time_until_recording(recording_at: datetime, now: Optional[datetime] = None) -> ReminderTiming:
    now = now or timezone.now()
    hours = (recording_at - now).total_seconds() / 3600
    return ReminderTiming(
        hours=hours,
        is_past=hours < 0,
        send_24_hour=23 < hours <= 24,
        send_1_hour=0 < hours <= 1,
    )


def duration_minutes(duration: Optional[str]) -> int:
    match = DURATION_RE.search(duration or "")
    return int(match.group(1)) if match else 60


def slot_start(details: dict) -> Optional[datetime]:
    """Start of a scheduled slot: its date plus the HH:MM time, if any."""
    day = parse_when(details.get("date"))
    if day is None:
        return None
    match = TIME_RE.match(details.get("time") or "")
    if match:
        day = day.replace(hour=int(match.group(1)), minute=int(match.group(2)), second=0, microsecond=0)
    return day


def slot_end(details: dict) -> Optional[datetime]:
    start = slot_start(details)
    if start is None:
        return None
    return start + timedelta(minutes=duration_minutes(details.get("duration")))


def normalize_slot(slot: dict) -> dict:
    return {
        "date": parse_when(slot.get("date")),
        "time": slot.get("time"),
        "timezone": slot.get("timezone"),
        "duration": slot.get("duration") or DEFAULT_SLOT_DURATION,
    }


def is_complete_slot(slot) -> bool:
    return (
        isinstance(slot, dict)
        and bool(slot.get("time"))
        and bool(slot.get("timezone"))
        and parse_when(slot.get("date")) is not None
    )


def format_slot(slot: dict) -> str:
    return f"{long_date(slot.get('date'))} at {slot.get('time')} {slot.get('timezone')}"


def format_recording_details(details: dict, recording_url: str = None, prep_notes: str = None) -> str:
    rule = "-" * 38
    lines = [
        "Recording Details:",
        rule,
        f"Date: {long_date(details.get('date'))}",
        f"Time: {details.get('time')} {details.get('timezone')}",
        f"Duration: {details.get('duration') or DEFAULT_SLOT_DURATION}",
    ]
    if recording_url:
        lines.append(f"Recording Link: {recording_url}")
    lines.append(rule)
    text = "\n".join(lines) + "\n"
    if prep_notes:
        text += f"\nPreparation Notes:\n{prep_notes}\n"
    return text
