"""
Recording time negotiation for guest appearances: proposals, responses,
reschedule requests and the calendar invite.
"""
import logging
import os

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..calendar_utils import (
    CalendarEvent,
    format_recording_details,
    generate_ics,
    is_complete_slot,
    normalize_slot,
    slot_end,
    slot_start,
)
from ..collaborations import other_party_id
from ..firebase_service import firestore_service, subcollection
from ..http import json_body, require_fields
from ..notifications import create_notification
from ..utils import app_url, display_name, serialize

logger = logging.getLogger("marketplace")

SCHEDULABLE_STATUSES = (constants.SCHEDULING, constants.SCHEDULED)


def _parties(collab: dict):
    """(guest id, podcast side id) of a guest appearance."""
    guest_id = collab.get("guestId")
    return guest_id, other_party_id(collab, guest_id)


def _party_collaboration(uid: str, collaboration_id: str):
    """(collab, error_response) for a collaboration where uid is the guest or the podcast side."""
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return None, JsonResponse({"error": "collaboration_not_found"}, status=404)
    if uid not in _parties(collab):
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return collab, None


def _role(collab: dict, uid: str) -> str:
    return "guest" if uid == collab.get("guestId") else "podcast"


def _slots(data: dict, key: str):
    """(normalized slots, error_response)."""
    slots = data.get(key)
    if not isinstance(slots, list) or not slots:
        return None, JsonResponse({"error": "missing_fields", "required": [key]}, status=400)
    if not all(is_complete_slot(slot) for slot in slots):
        return None, JsonResponse({
            "error": "invalid_slot",
            "message": "Each slot needs a date, time and timezone",
        }, status=400)
    return [normalize_slot(slot) for slot in slots], None


def _slot_index(data: dict, slots: list):
    try:
        index = int(data.get("acceptedSlotIndex"))
    except (TypeError, ValueError):
        return None
    if 0 <= index < len(slots):
        return index
    return None


def _list_subcollection(request, name: str, key: str):
    collaboration_id = request.GET.get("collaborationId")
    if not collaboration_id:
        return JsonResponse({"error": "missing_fields", "required": ["collaborationId"]}, status=400)

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    collab, collab_error = _party_collaboration(claims["uid"], collaboration_id)
    if collab_error:
        return collab_error

    items = firestore_service.query(
        subcollection(constants.COLLABORATIONS, collaboration_id, name),
        order_by="createdAt",
        descending=True,
    )
    return JsonResponse({key: serialize(items)})


@csrf_exempt
def schedule_propose(request):
    """
    GET  ?collaborationId=   list proposals, newest first
    POST                     propose recording slots; older open proposals are superseded
    """
    logger.info(f"[SCHEDULE/PROPOSE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    if request.method == "GET":
        return _list_subcollection(request, constants.SCHEDULES, "schedules")

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "slots")
    if missing:
        return missing

    slots, slot_error = _slots(data, "slots")
    if slot_error:
        return slot_error

    uid = claims["uid"]
    collaboration_id = data["collaborationId"]
    collab, collab_error = _party_collaboration(uid, collaboration_id)
    if collab_error:
        return collab_error
    if collab.get("status") not in SCHEDULABLE_STATUSES:
        return JsonResponse({
            "error": "invalid_status",
            "currentStatus": collab.get("status"),
        }, status=400)

    schedules_path = subcollection(constants.COLLABORATIONS, collaboration_id, constants.SCHEDULES)
    open_proposals = firestore_service.query(schedules_path, [("status", "==", constants.PROPOSAL_PROPOSED)])
    proposal_id = firestore_service.new_id(schedules_path)

    operations = [
        ("update", schedules_path, proposal["id"], {"status": constants.PROPOSAL_SUPERSEDED})
        for proposal in open_proposals
    ]
    operations.append(("set", schedules_path, proposal_id, {
        "collaborationId": collaboration_id,
        "proposedBy": uid,
        "proposedByRole": _role(collab, uid),
        "slots": slots,
        "message": data.get("message") or "",
        "status": constants.PROPOSAL_PROPOSED,
        "createdAt": timezone.now(),
    }))
    firestore_service.batch_write(operations)
    logger.info(f"[SCHEDULE/PROPOSE] {collaboration_id}: proposal {proposal_id} with {len(slots)} slots")

    recipient = firestore_service.get_user(other_party_id(collab, uid))
    proposer = firestore_service.get_user(uid)
    if recipient:
        emails.schedule_proposed(recipient.get("email"), display_name(proposer, "Your collaborator"),
                                 slots, collaboration_id)

    return JsonResponse({
        "success": True,
        "proposalId": proposal_id,
        "message": "Schedule proposal sent successfully",
    })


@csrf_exempt
def schedule_respond(request):
    logger.info(f"[SCHEDULE/RESPOND] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "proposalId", "action")
    if missing:
        return missing

    action = data["action"]
    if action not in ("accept", "decline"):
        return JsonResponse({"error": "invalid_action", "allowed": ["accept", "decline"]}, status=400)
    if action == "accept" and data.get("acceptedSlotIndex") is None:
        return JsonResponse({"error": "missing_fields", "required": ["acceptedSlotIndex"]}, status=400)

    uid = claims["uid"]
    collaboration_id = data["collaborationId"]
    collab, collab_error = _party_collaboration(uid, collaboration_id)
    if collab_error:
        return collab_error

    schedules_path = subcollection(constants.COLLABORATIONS, collaboration_id, constants.SCHEDULES)
    proposal = firestore_service.get(schedules_path, data["proposalId"])
    if not proposal:
        return JsonResponse({"error": "proposal_not_found"}, status=404)
    if proposal.get("proposedBy") == uid:
        return JsonResponse({"error": "cannot_respond_to_own_proposal"}, status=400)
    if proposal.get("status") != constants.PROPOSAL_PROPOSED:
        return JsonResponse({"error": "proposal_already_answered"}, status=400)

    now = timezone.now()
    if action == "decline":
        firestore_service.update(schedules_path, proposal["id"], {
            "status": constants.PROPOSAL_DECLINED,
            "declineReason": data.get("declineReason") or "",
            "respondedAt": now,
        })
        return JsonResponse({"success": True, "message": "Schedule proposal declined"})

    slots = proposal.get("slots") or []
    index = _slot_index(data, slots)
    if index is None:
        return JsonResponse({"error": "invalid_slot_index"}, status=400)
    slot = slots[index]

    others = firestore_service.query(schedules_path, [("status", "==", constants.PROPOSAL_PROPOSED)])
    operations = [
        ("update", schedules_path, proposal["id"], {
            "status": constants.PROPOSAL_ACCEPTED,
            "acceptedSlotIndex": index,
            "respondedAt": now,
        }),
        ("update", constants.COLLABORATIONS, collaboration_id, {
            "status": constants.SCHEDULED,
            "schedulingDetails": slot,
            "updatedAt": now,
        }),
    ]
    operations += [
        ("update", schedules_path, other["id"], {"status": constants.PROPOSAL_SUPERSEDED})
        for other in others
        if other["id"] != proposal["id"]
    ]
    firestore_service.batch_write(operations)
    logger.info(f"[SCHEDULE/RESPOND] {collaboration_id}: slot {index} of {proposal['id']} accepted")

    for party_id in _parties(collab):
        party = firestore_service.get_user(party_id)
        if party:
            emails.schedule_confirmed(party.get("email"), slot, collab.get("recordingUrl"), collaboration_id)
    create_notification(
        proposal.get("proposedBy"),
        "recording_scheduled",
        {"name": display_name(firestore_service.get_user(uid), "Your collaborator"),
         "date": slot.get("date")},
        action_url=app_url(f"collaboration/{collaboration_id}"),
        metadata={"collaborationId": collaboration_id},
    )

    return JsonResponse({"success": True, "message": "Schedule confirmed", "schedulingDetails": serialize(slot)})


def _reschedule_limit_error(collab: dict):
    max_reschedules = collab.get("maxReschedules")
    if max_reschedules is None:
        max_reschedules = constants.DEFAULT_MAX_RESCHEDULES
    if (collab.get("rescheduleCount") or 0) >= max_reschedules:
        return JsonResponse({
            "error": "reschedule_limit_reached",
            "maxReschedules": max_reschedules,
        }, status=400)
    return None


def _request_reschedule(request, claims):
    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "reason", "proposedSlots")
    if missing:
        return missing

    slots, slot_error = _slots(data, "proposedSlots")
    if slot_error:
        return slot_error

    uid = claims["uid"]
    collaboration_id = data["collaborationId"]
    collab, collab_error = _party_collaboration(uid, collaboration_id)
    if collab_error:
        return collab_error
    if collab.get("status") != constants.SCHEDULED:
        return JsonResponse({"error": "not_scheduled"}, status=400)

    limit_error = _reschedule_limit_error(collab)
    if limit_error:
        return limit_error

    reschedules_path = subcollection(constants.COLLABORATIONS, collaboration_id, constants.RESCHEDULES)
    reschedule_id = firestore_service.create(reschedules_path, {
        "collaborationId": collaboration_id,
        "requestedBy": uid,
        "requestedByRole": _role(collab, uid),
        "reason": data["reason"],
        "previousSchedule": collab.get("schedulingDetails"),
        "proposedSlots": slots,
        "status": constants.RESCHEDULE_PENDING,
        "createdAt": timezone.now(),
    })
    logger.info(f"[SCHEDULE/RESCHEDULE] {collaboration_id}: request {reschedule_id} by {uid}")

    requester = firestore_service.get_user(uid)
    recipient_id = other_party_id(collab, uid)
    recipient = firestore_service.get_user(recipient_id)
    requester_name = display_name(requester, "Your collaborator")
    if recipient:
        emails.reschedule_requested(
            recipient.get("email"),
            requester_name,
            collab.get("schedulingDetails"),
            data["reason"],
            slots,
            collaboration_id,
        )
    create_notification(
        recipient_id,
        "recording_rescheduled",
        {"name": requester_name},
        action_url=app_url(f"collaboration/{collaboration_id}"),
        metadata={"collaborationId": collaboration_id, "rescheduleId": reschedule_id},
    )

    return JsonResponse({
        "success": True,
        "rescheduleId": reschedule_id,
        "message": "Reschedule request created successfully",
    })


def _answer_reschedule(request, claims):
    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "rescheduleId", "action")
    if missing:
        return missing

    action = data["action"]
    if action not in ("accept", "decline"):
        return JsonResponse({"error": "invalid_action", "allowed": ["accept", "decline"]}, status=400)
    if action == "accept" and data.get("acceptedSlotIndex") is None:
        return JsonResponse({"error": "missing_fields", "required": ["acceptedSlotIndex"]}, status=400)

    uid = claims["uid"]
    collaboration_id = data["collaborationId"]
    collab, collab_error = _party_collaboration(uid, collaboration_id)
    if collab_error:
        return collab_error

    reschedules_path = subcollection(constants.COLLABORATIONS, collaboration_id, constants.RESCHEDULES)
    reschedule = firestore_service.get(reschedules_path, data["rescheduleId"])
    if not reschedule:
        return JsonResponse({"error": "reschedule_not_found"}, status=404)
    if reschedule.get("requestedBy") == uid:
        return JsonResponse({"error": "cannot_respond_to_own_request"}, status=400)
    if reschedule.get("status") != constants.RESCHEDULE_PENDING:
        return JsonResponse({"error": "reschedule_already_answered"}, status=400)

    now = timezone.now()
    if action == "decline":
        firestore_service.update(reschedules_path, reschedule["id"], {
            "status": constants.PROPOSAL_DECLINED,
            "declineReason": data.get("declineReason") or "",
            "respondedAt": now,
        })
        return JsonResponse({"success": True, "message": "Reschedule declined"})

    # the collaboration may have moved on since the request was made
    if collab.get("status") != constants.SCHEDULED:
        return JsonResponse({"error": "not_scheduled"}, status=400)
    limit_error = _reschedule_limit_error(collab)
    if limit_error:
        return limit_error

    slots = reschedule.get("proposedSlots") or []
    index = _slot_index(data, slots)
    if index is None:
        return JsonResponse({"error": "invalid_slot_index"}, status=400)
    slot = slots[index]

    firestore_service.batch_write([
        ("update", reschedules_path, reschedule["id"], {
            "status": constants.PROPOSAL_ACCEPTED,
            "acceptedSlotIndex": index,
            "respondedAt": now,
        }),
        ("update", constants.COLLABORATIONS, collaboration_id, {
            "schedulingDetails": slot,
            "rescheduleCount": (collab.get("rescheduleCount") or 0) + 1,
            "updatedAt": now,
        }),
    ])
    logger.info(f"[SCHEDULE/RESCHEDULE] {collaboration_id}: request {reschedule['id']} accepted")

    for party_id in _parties(collab):
        party = firestore_service.get_user(party_id)
        if party:
            emails.reschedule_accepted(party.get("email"), slot, collab.get("recordingUrl"), collaboration_id)

    return JsonResponse({"success": True, "message": "Reschedule accepted"})


@csrf_exempt
def schedule_reschedule(request):
    """
    GET  ?collaborationId=   list reschedule requests
    POST                     request a new time for a scheduled recording
    PUT                      accept or decline a pending request
    """
    logger.info(f"[SCHEDULE/RESCHEDULE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method not in ("GET", "POST", "PUT"):
        return HttpResponseNotAllowed(["GET", "POST", "PUT"])

    if request.method == "GET":
        return _list_subcollection(request, constants.RESCHEDULES, "reschedules")

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    if request.method == "POST":
        return _request_reschedule(request, claims)
    return _answer_reschedule(request, claims)


@csrf_exempt
def calendar_invite(request):
    """Email both parties the recording details plus an ICS event and queue reminders."""
    logger.info(f"[CALENDAR/INVITE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId")
    if missing:
        return missing

    collaboration_id = data["collaborationId"]
    collab, collab_error = _party_collaboration(claims["uid"], collaboration_id)
    if collab_error:
        return collab_error

    details = collab.get("schedulingDetails")
    start = slot_start(details) if details else None
    if collab.get("status") != constants.SCHEDULED or start is None:
        return JsonResponse({"error": "not_scheduled"}, status=400)

    guest_id, owner_id = _parties(collab)
    guest = firestore_service.get_user(guest_id)
    owner = firestore_service.get_user(owner_id)
    if not guest or not owner:
        return JsonResponse({"error": "user_not_found"}, status=404)
    if not guest.get("email") or not owner.get("email"):
        return JsonResponse({"error": "missing_email"}, status=400)

    podcast = firestore_service.get(constants.PODCASTS, collab.get("podcastId")) or {}
    podcast_name = podcast.get("title") or "Podcast"
    recording_url = collab.get("recordingUrl")
    prep_notes = collab.get("prepNotes")

    description = (
        f"Guest appearance on {podcast_name}\n\n"
        f"Guest: {display_name(guest)}\nHost: {display_name(owner)}\n\n"
    )
    if recording_url:
        description += f"Recording Link: {recording_url}\n\n"
    if prep_notes:
        description += f"Prep Notes:\n{prep_notes}"

    event = CalendarEvent(
        title=f"Podcast Recording: {podcast_name}",
        description=description,
        location=recording_url or "Recording link to be provided",
        start_time=start,
        end_time=slot_end(details),
        organizer_email=os.environ.get("MAILGUN_FROM_EMAIL") or "noreply@uvocollab.com",
        attendee_emails=[guest["email"], owner["email"]],
    )
    ics = generate_ics(event)
    summary = format_recording_details(details, recording_url, prep_notes)

    for email in (guest["email"], owner["email"]):
        emails.calendar_invite(email, summary, collaboration_id, ics)

    firestore_service.create(constants.REMINDERS, {
        "collaborationId": collaboration_id,
        "recordingDate": start,
        "guestEmail": guest["email"],
        "ownerEmail": owner["email"],
        "reminder24hSent": False,
        "reminder1hSent": False,
        "createdAt": timezone.now(),
    })
    logger.info(f"[CALENDAR/INVITE] {collaboration_id}: invites sent, reminder queued for {start.isoformat()}")

    return JsonResponse({"success": True, "message": "Calendar invites sent successfully"})
