import logging
from datetime import timedelta

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import is_cron_request
from ..calendar_utils import format_recording_details, time_until_recording
from ..firebase_service import firestore_service
from ..utils import parse_when

logger = logging.getLogger("marketplace")

LOOKAHEAD = timedelta(hours=25)
RETENTION = timedelta(days=7)


def _remind(reminder: dict, collab: dict, hours: int) -> None:
    details = format_recording_details(
        collab.get("schedulingDetails") or {},
        collab.get("recordingUrl"),
        collab.get("prepNotes"),
    )
    for to in (reminder.get("guestEmail"), reminder.get("ownerEmail")):
        emails.recording_reminder(to, details, collab.get("recordingUrl"), reminder["collaborationId"], hours)


@csrf_exempt
def send_reminders(request):
    """
    Cron job: 24 hour and 1 hour recording reminders to both parties, then
    cleanup of reminders for recordings more than a week old.
    """
    logger.info(f"[CRON/REMINDERS] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not is_cron_request(request):
        return JsonResponse({"error": "unauthorized"}, status=401)

    now = timezone.now()
    upcoming = firestore_service.query(constants.REMINDERS, [
        ("recordingDate", ">=", now),
        ("recordingDate", "<=", now + LOOKAHEAD),
    ])

    sent = 0
    results = []
    for reminder in upcoming:
        recording_at = parse_when(reminder.get("recordingDate"))
        if recording_at is None:
            continue
        timing = time_until_recording(recording_at, now)
        if timing.is_past:
            continue

        collab = firestore_service.get(constants.COLLABORATIONS, reminder.get("collaborationId"))
        if not collab:
            continue

        updates = {}
        if timing.send_24_hour and not reminder.get("reminder24hSent"):
            _remind(reminder, collab, 24)
            updates["reminder24hSent"] = True
            results.append({"type": "24h", "collaborationId": reminder["collaborationId"]})
        if timing.send_1_hour and not reminder.get("reminder1hSent"):
            _remind(reminder, collab, 1)
            updates["reminder1hSent"] = True
            results.append({"type": "1h", "collaborationId": reminder["collaborationId"]})

        if updates:
            firestore_service.update(constants.REMINDERS, reminder["id"], updates)
            sent += len(updates)

    stale = firestore_service.query(constants.REMINDERS, [("recordingDate", "<", now - RETENTION)])
    deleted = firestore_service.batch_write(
        ("delete", constants.REMINDERS, item["id"], None) for item in stale
    )
    logger.info(f"[CRON/REMINDERS] {sent} sent, {len(upcoming)} processed, {deleted} deleted")

    return JsonResponse({
        "success": True,
        "remindersSent": sent,
        "remindersProcessed": len(upcoming),
        "oldRemindersDeleted": deleted,
        "results": results,
    })
