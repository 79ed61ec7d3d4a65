import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from .. import constants, emails
from ..auth import authenticate
from ..collaborations import detect_platform, release_guest_escrow
from ..errors import ServiceError
from ..firebase_service import firestore_service
from ..http import json_body, require_fields
from ..notifications import create_notification
from ..utils import app_url, display_name, is_http_url, parse_when

logger = logging.getLogger("marketplace")


def _owned_appearance(uid: str, collaboration_id: str):
    """(collab, error_response) for a guest appearance the caller (podcast side) bought."""
    collab = firestore_service.get(constants.COLLABORATIONS, collaboration_id)
    if not collab:
        return None, JsonResponse({"error": "collaboration_not_found"}, status=404)
    if collab.get("type") != constants.COLLABORATION_TYPE_GUEST:
        return None, JsonResponse({"error": "not_a_guest_appearance"}, status=400)
    if collab.get("buyerId") != uid:
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return collab, None


def _podcast_name(collab: dict) -> str:
    podcast = firestore_service.get(constants.PODCASTS, collab.get("podcastId"))
    return (podcast or {}).get("title") or "the podcast"


@csrf_exempt
def recording_link(request):
    logger.info(f"[RECORDING/LINK] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "PUT":
        return HttpResponseNotAllowed(["PUT"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "recordingUrl")
    if missing:
        return missing

    recording_url = data["recordingUrl"]
    if not is_http_url(recording_url):
        return JsonResponse({"error": "invalid_url"}, status=400)

    collab, collab_error = _owned_appearance(claims["uid"], data["collaborationId"])
    if collab_error:
        return collab_error

    platform = data.get("recordingPlatform") or detect_platform(recording_url)
    updates = {
        "recordingUrl": recording_url,
        "recordingPlatform": platform,
        "updatedAt": timezone.now(),
    }
    if data.get("prepNotes"):
        updates["prepNotes"] = data["prepNotes"]
    firestore_service.update(constants.COLLABORATIONS, collab["id"], updates)
    logger.info(f"[RECORDING/LINK] {collab['id']}: {platform} link set")

    prep_notes = updates.get("prepNotes") or collab.get("prepNotes")
    if collab.get("status") == constants.SCHEDULED and collab.get("schedulingDetails"):
        guest = firestore_service.get_user(collab.get("guestId"))
        if guest:
            emails.recording_link_added(
                guest.get("email"),
                collab["schedulingDetails"],
                platform,
                recording_url,
                prep_notes,
                collab["id"],
            )
        create_notification(
            collab.get("guestId"),
            "recording_link_added",
            {"name": _podcast_name(collab)},
            action_url=app_url(f"collaboration/{collab['id']}"),
            metadata={"collaborationId": collab["id"]},
        )

    return JsonResponse({
        "success": True,
        "message": "Recording link updated successfully",
        "platform": platform,
    })


@csrf_exempt
def recording_complete(request):
    """Podcast side marks the recording done; the collaboration moves to post_production."""
    logger.info(f"[RECORDING/COMPLETE] {request.method} from {request.META.get('REMOTE_ADDR')}")

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

    collab, collab_error = _owned_appearance(claims["uid"], data["collaborationId"])
    if collab_error:
        return collab_error
    if collab.get("status") not in (constants.SCHEDULED, constants.IN_PROGRESS):
        return JsonResponse({
            "error": "invalid_status",
            "currentStatus": collab.get("status"),
        }, status=400)

    now = timezone.now()
    notes = data.get("recordingNotes")
    updates = {
        "status": constants.POST_PRODUCTION,
        "recordingCompletedAt": now,
        "updatedAt": now,
    }
    if notes:
        updates["recordingNotes"] = notes
    firestore_service.update(constants.COLLABORATIONS, collab["id"], updates)
    logger.info(f"[RECORDING/COMPLETE] {collab['id']} -> post_production")

    guest = firestore_service.get_user(collab.get("guestId"))
    podcast_name = _podcast_name(collab)
    if guest:
        escrow_note = (collab.get("price") or 0) > 0 and collab.get("paymentDirection") == "podcast_pays_guest"
        emails.recording_complete(
            guest.get("email"),
            display_name(guest, "Guest"),
            podcast_name,
            notes,
            escrow_note,
            collab["id"],
        )
    create_notification(
        collab.get("guestId"),
        "recording_completed",
        {"name": podcast_name},
        action_url=app_url(f"collaboration/{collab['id']}"),
        metadata={"collaborationId": collab["id"]},
    )

    return JsonResponse({
        "success": True,
        "message": "Recording marked as complete and guest notified",
    })


@csrf_exempt
def release_episode(request):
    """
    Podcast side publishes the episode. The collaboration is completed, held
    escrow is paid to the guest when the podcast paid for the appearance and
    the episode is added to the guest's previous appearances.
    """
    logger.info(f"[RECORDING/RELEASE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    claims, auth_error = authenticate(request)
    if auth_error:
        return auth_error

    data, error = json_body(request)
    if error:
        return error

    missing = require_fields(data, "collaborationId", "episodeUrl")
    if missing:
        return missing

    episode_url = data["episodeUrl"]
    if not is_http_url(episode_url):
        return JsonResponse({"error": "invalid_episode_url"}, status=400)

    collab, collab_error = _owned_appearance(claims["uid"], data["collaborationId"])
    if collab_error:
        return collab_error
    if collab.get("status") != constants.POST_PRODUCTION:
        return JsonResponse({
            "error": "invalid_status",
            "currentStatus": collab.get("status"),
        }, status=400)

    now = timezone.now()
    firestore_service.update(constants.COLLABORATIONS, collab["id"], {
        "status": constants.COMPLETED,
        "completedAt": now,
        "updatedAt": now,
        "episodeUrl": episode_url,
        "episodeReleaseDate": parse_when(data.get("episodeReleaseDate")) or now,
    })
    logger.info(f"[RECORDING/RELEASE] {collab['id']} completed, episode {episode_url}")

    guest_id = collab.get("guestId")
    guest = firestore_service.get_user(guest_id)
    podcast_name = _podcast_name(collab)

    payment_released, payment_error = False, None
    owes_guest = (
        (collab.get("price") or 0) > 0
        and collab.get("escrowStatus") == constants.ESCROW_HELD
        and collab.get("legendAmount")
        and guest_id
        and collab.get("buyerId") != guest_id
    )
    if owes_guest:
        payment_released, payment_error = release_guest_escrow(collab, guest, podcast_name)

    if guest:
        try:
            firestore_service.add_to_array(constants.USERS, guest_id, "previousAppearances", episode_url)
        except ServiceError as e:
            logger.warning(f"[RECORDING/RELEASE] Could not add appearance for {guest_id}: {e}")
        emails.episode_released(
            guest.get("email"),
            display_name(guest, "Guest"),
            podcast_name,
            episode_url,
            payment_released,
            payment_error,
            collab["id"],
        )
        create_notification(
            guest_id,
            "episode_released",
            {"name": podcast_name, "title": data.get("episodeTitle") or podcast_name},
            action_url=episode_url,
            metadata={"collaborationId": collab["id"]},
        )

    return JsonResponse({
        "success": True,
        "message": "Episode released successfully",
        "paymentReleased": payment_released,
        "paymentError": payment_error,
    })
